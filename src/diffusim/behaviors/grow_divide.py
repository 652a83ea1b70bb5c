"""Growth followed by deferred division."""
from __future__ import annotations

from diffusim.agents.agent import Agent
from .base import BehaviorModule, StepContext


class GrowDivide(BehaviorModule):
    """Grow the agent's diameter each step and request division at a threshold.

    Attributes
    ----------
    growth_rate:
        Diameter increment per active step. Mass follows at constant density.
    threshold:
        Diameter at or above which a division event is requested. Growth
        stops at the threshold, so both halves end up below it.
    max_active_steps:
        Number of steps the module acts for, ``None`` for unbounded. The
        counter is part of the module state, so a daughter cell inherits the
        remaining budget of its parent.
    """

    kind = "grow_divide"

    def __init__(self, growth_rate: float, threshold: float, max_active_steps: int | None = None):
        if growth_rate < 0:
            raise ValueError("growth_rate must be non-negative")
        if threshold <= 0:
            raise ValueError("threshold must be positive")
        if max_active_steps is not None and max_active_steps < 0:
            raise ValueError("max_active_steps must be non-negative or None")
        self.growth_rate = float(growth_rate)
        self.threshold = float(threshold)
        self.max_active_steps = max_active_steps
        self.active_steps = 0

    def __repr__(self) -> str:
        return (
            f"GrowDivide(growth_rate={self.growth_rate}, threshold={self.threshold}, "
            f"max_active_steps={self.max_active_steps}, active_steps={self.active_steps})"
        )

    @property
    def exhausted(self) -> bool:
        return self.max_active_steps is not None and self.active_steps >= self.max_active_steps

    def run(self, agent: Agent, context: StepContext) -> None:
        if self.exhausted:
            return
        self.active_steps += 1
        if agent.diameter < self.threshold:
            agent.change_diameter(min(agent.diameter + self.growth_rate, self.threshold))
        if agent.diameter >= self.threshold:
            context.request_division(agent, self.threshold)
