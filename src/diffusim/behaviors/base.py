"""Behavior module capability, per-step context and deferred division events."""
from __future__ import annotations
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Mapping
import numpy as np

from diffusim.agents.agent import Agent
from diffusim.core.errors import DivisionRejected, UnknownSubstanceError
from diffusim.core.rng import random_unit_vector
from diffusim.core.units import sphere_diameter
from diffusim.fields.substance import GradientSampler


class BehaviorModule(ABC):
    """Per-agent unit of behavior, invoked once per step in registration order."""

    kind: str = "behavior"

    @abstractmethod
    def run(self, agent: Agent, context: StepContext) -> None:
        ...

    def required_substances(self) -> tuple[int, ...]:
        return ()


@dataclass(frozen=True)
class DivisionEvent:
    parent: Agent
    step: int
    threshold: float | None = None

    def apply(self, rng: np.random.Generator) -> Agent:
        """Split the parent into two equal-volume halves and return the child.

        Both cells are displaced by half the new diameter in opposite
        directions along a random axis. Raises ``DivisionRejected`` before
        touching the parent if the halves would be degenerate or, when a
        threshold is set, would still be at or above it.
        """
        parent = self.parent
        volume = parent.volume / 2.0
        diameter = sphere_diameter(volume)
        mass = parent.mass / 2.0
        if not (np.isfinite(diameter) and diameter > 0):
            raise DivisionRejected(parent.uid, f"non-positive diameter {diameter:.4g}", step=self.step)
        if not (np.isfinite(mass) and mass > 0):
            raise DivisionRejected(parent.uid, f"non-positive mass {mass:.4g}", step=self.step)
        if self.threshold is not None and diameter >= self.threshold:
            raise DivisionRejected(
                parent.uid, f"halves of {diameter:.4g} not below threshold {self.threshold:.4g}", step=self.step
            )
        offset = random_unit_vector(rng) * diameter / 2.0
        origin = parent.position.copy()
        child = parent.clone()
        for cell, sign in ((parent, -1.0), (child, 1.0)):
            cell.diameter = diameter
            cell.mass = mass
            cell.set_position(origin + sign * offset)
        return child


class DivisionBuffer:
    """Append-only, thread-safe collection of pending division events."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: list[DivisionEvent] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def append(self, event: DivisionEvent) -> None:
        with self._lock:
            self._events.append(event)

    def drain(self) -> list[DivisionEvent]:
        """Remove and return all events ordered by parent uid."""
        with self._lock:
            events, self._events = self._events, []
        return sorted(events, key=lambda e: e.parent.uid)


@dataclass
class StepContext:
    """What a behavior may see during one step: time, fields and the division buffer."""

    step: int
    time: float
    fields: Mapping[int, GradientSampler]
    divisions: DivisionBuffer = field(default_factory=DivisionBuffer)

    def substance(self, substance_id: int) -> GradientSampler:
        try:
            return self.fields[substance_id]
        except KeyError:
            raise UnknownSubstanceError(substance_id) from None

    def request_division(self, agent: Agent, threshold: float | None = None) -> None:
        self.divisions.append(DivisionEvent(agent, self.step, threshold))
