"""Gradient-following movement."""
from __future__ import annotations
from typing import Iterable
import numpy as np

from diffusim.agents.agent import Agent
from .base import BehaviorModule, StepContext


class Chemotaxis(BehaviorModule):
    """Move up (positive weight) or down (negative weight) substance gradients.

    All weighted gradients are summed into one displacement and applied
    with a single position update, so the result does not depend on the
    order of the ``(substance, weight)`` pairs.
    """

    kind = "chemotaxis"

    def __init__(self, weights: Iterable[tuple[int, float]] = ()):
        self.weights: list[tuple[int, float]] = []
        for substance_id, weight in weights:
            self.add_substance(substance_id, weight)

    def __repr__(self) -> str:
        return f"Chemotaxis(weights={self.weights!r})"

    def add_substance(self, substance_id: int, weight: float) -> None:
        if any(sid == substance_id for sid, _ in self.weights):
            raise ValueError(f"substance {substance_id} already configured")
        self.weights.append((substance_id, float(weight)))

    def required_substances(self) -> tuple[int, ...]:
        return tuple(sid for sid, _ in self.weights)

    def displacement(self, position: np.ndarray, context: StepContext) -> np.ndarray:
        total = np.zeros(3, dtype=np.float64)
        for substance_id, weight in self.weights:
            total += weight * np.asarray(context.substance(substance_id).get_gradient(position), dtype=np.float64)
        return total

    def run(self, agent: Agent, context: StepContext) -> None:
        if self.weights:
            agent.update_position(self.displacement(agent.position, context))
