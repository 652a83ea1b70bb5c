"""Agent state and spatial bound enforcement."""
from __future__ import annotations
import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence
import numpy as np

from diffusim.core.units import sphere_volume

if TYPE_CHECKING:  # pragma: no cover
    from diffusim.behaviors.base import BehaviorModule, StepContext

logger = logging.getLogger(__name__)

BOUND_POLICIES = ("clamp", "warn")


@dataclass
class SpaceBounds:
    """Cubic simulation space ``[min_bound, max_bound]^3``.

    ``policy="clamp"`` projects escaping agents back onto the box;
    ``policy="warn"`` leaves the position as computed, logs a warning and
    counts the violation on the agent.
    """

    min_bound: float = 0.0
    max_bound: float = 1000.0
    enabled: bool = True
    policy: str = "clamp"

    def __post_init__(self):
        if self.max_bound <= self.min_bound:
            raise ValueError("max_bound must exceed min_bound")
        if self.policy not in BOUND_POLICIES:
            raise ValueError(f"policy must be one of {BOUND_POLICIES}")

    def contains(self, position: np.ndarray) -> bool:
        return bool(np.all(position >= self.min_bound) and np.all(position <= self.max_bound))

    def enforce(self, agent: Agent) -> None:
        if not self.enabled or self.contains(agent.position):
            return
        if self.policy == "clamp":
            agent.position = np.clip(agent.position, self.min_bound, self.max_bound)
            return
        agent.boundary_violations += 1
        logger.warning("agent %d outside bounds at %s", agent.uid, np.array2string(agent.position, precision=3))


@dataclass(eq=False)
class Agent:
    """Spherical agent carrying an ordered list of behavior modules."""

    position: np.ndarray
    diameter: float = 10.0
    mass: float = 1.0
    adherence: float = 0.0
    cell_type: int = 0
    behaviors: list[BehaviorModule] = field(default_factory=list)
    bounds: SpaceBounds | None = None
    uid: int = -1
    boundary_violations: int = 0

    def __post_init__(self):
        self.position = np.array(self.position, dtype=np.float64).reshape(3)
        if not self.diameter > 0:
            raise ValueError("diameter must be positive")
        if not self.mass > 0:
            raise ValueError("mass must be positive")
        if self.bounds is not None:
            self.bounds.enforce(self)

    @property
    def volume(self) -> float:
        return sphere_volume(self.diameter)

    @property
    def density(self) -> float:
        return self.mass / self.volume

    def add_behavior(self, module: BehaviorModule) -> None:
        self.behaviors.append(module)

    def get_behaviors(self, kind: type) -> list:
        return [m for m in self.behaviors if isinstance(m, kind)]

    def update_position(self, delta: Sequence[float]) -> None:
        self.position = self.position + np.asarray(delta, dtype=np.float64)
        if self.bounds is not None:
            self.bounds.enforce(self)

    def set_position(self, position: Sequence[float]) -> None:
        self.position = np.array(position, dtype=np.float64).reshape(3)
        if self.bounds is not None:
            self.bounds.enforce(self)

    def change_diameter(self, diameter: float) -> None:
        """Resize at constant density so mass follows the sphere volume."""
        if not diameter > 0:
            raise ValueError("diameter must be positive")
        self.mass *= (diameter / self.diameter) ** 3
        self.diameter = float(diameter)

    def run(self, context: StepContext) -> None:
        for module in self.behaviors:
            module.run(self, context)

    def clone(self) -> Agent:
        """Deep copy of attributes and behaviors; the bounds object stays shared."""
        memo = {id(self.bounds): self.bounds} if self.bounds is not None else {}
        child = copy.deepcopy(self, memo)
        child.uid = -1
        child.boundary_violations = 0
        return child
