"""Global step loop coupling substance fields and agent behaviors."""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable

import numpy as np

from diffusim.agents.agent import Agent
from diffusim.agents.store import AgentStore
from diffusim.behaviors.base import DivisionEvent, StepContext
from diffusim.core.errors import ConfigurationError, DivisionRejected, UnknownSubstanceError
from diffusim.core.rng import make_rng
from diffusim.engine.parallel import parallel_map
from diffusim.fields.substance import SubstanceField

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class Scheduler:
    """Advance fields and agents in lockstep.

    Each step runs three phases: every field diffuses, every agent present
    at the start of the step runs its behaviors in registration order, then
    pending divisions are committed to the store. ``workers > 1`` spreads the
    diffusion slabs and the agents over a thread pool. Agents only write
    their own state and divisions are committed in parent-uid order, so the
    outcome matches the serial run.
    """

    def __init__(
        self,
        fields: Iterable[SubstanceField] = (),
        agents: AgentStore | Iterable[Agent] | None = None,
        *,
        time_step: float = 0.01,
        workers: int = 1,
        rng: np.random.Generator | None = None,
        seed: int = 0,
    ):
        if time_step <= 0:
            raise ConfigurationError("time_step must be positive")
        if workers < 1:
            raise ConfigurationError("workers must be at least 1")
        self.time_step = float(time_step)
        self.workers = int(workers)
        self.rng = rng if rng is not None else make_rng(seed)
        self.step_index = 0
        self.state = SchedulerState.IDLE
        self.rejected_divisions: list[DivisionRejected] = []
        self.agents = agents if isinstance(agents, AgentStore) else AgentStore(list(agents or []))
        self.fields: dict[int, SubstanceField] = {}
        for field in fields:
            self.add_field(field)

    def add_field(self, field: SubstanceField) -> None:
        if self.state is SchedulerState.RUNNING:
            raise RuntimeError("fields cannot be registered while running")
        if field.substance_id in self.fields:
            raise ConfigurationError(f"substance id {field.substance_id} registered twice")
        if field.time_step != self.time_step:
            raise ConfigurationError(
                f"substance '{field.name}' steps with time_step {field.time_step}, scheduler uses {self.time_step}"
            )
        self.fields[field.substance_id] = field

    def get_field(self, substance_id: int) -> SubstanceField:
        try:
            return self.fields[substance_id]
        except KeyError:
            raise UnknownSubstanceError(substance_id) from None

    def get_simulated_steps(self) -> int:
        return self.step_index

    @property
    def simulated_time(self) -> float:
        return self.step_index * self.time_step

    def validate(self) -> None:
        """Check every behavior's substance references against the registered fields."""
        for agent in self.agents:
            for module in agent.behaviors:
                for substance_id in module.required_substances():
                    if substance_id not in self.fields:
                        raise UnknownSubstanceError(substance_id, f"{module.kind} on agent {agent.uid}")

    def simulate(self, steps: int, on_step: Callable[[Scheduler], None] | None = None) -> None:
        """Run ``steps`` full steps; ``on_step`` is called after each one."""
        if steps < 0:
            raise ValueError("steps must be non-negative")
        if self.state is SchedulerState.RUNNING:
            raise RuntimeError("simulation already running")
        if self.state is SchedulerState.ABORTED:
            raise RuntimeError("cannot resume an aborted simulation")
        self.validate()
        self.state = SchedulerState.RUNNING
        executor = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else None
        try:
            for _ in range(steps):
                self._step(executor)
                if on_step is not None:
                    on_step(self)
        except Exception:
            self.state = SchedulerState.ABORTED
            logger.error("simulation aborted at step %d", self.step_index)
            raise
        finally:
            if executor is not None:
                executor.shutdown()
        self.state = SchedulerState.COMPLETED

    def _step(self, executor: ThreadPoolExecutor | None) -> None:
        step = self.step_index
        for field in self.fields.values():
            field.diffuse(step, executor=executor, workers=self.workers)
        context = StepContext(step=step, time=step * self.time_step, fields=MappingProxyType(self.fields))
        agents = self.agents.snapshot()
        parallel_map(lambda agent: agent.run(context), agents, self.workers, executor=executor)
        self._commit(context.divisions.drain())
        self.step_index += 1

    def _commit(self, events: list[DivisionEvent]) -> None:
        divided: set[int] = set()
        for event in events:
            if event.parent.uid in divided:
                continue
            divided.add(event.parent.uid)
            try:
                child = event.apply(self.rng)
            except DivisionRejected as exc:
                self.rejected_divisions.append(exc)
                logger.warning("%s", exc)
                continue
            self.agents.append(child)
            logger.debug("step %d: agent %d divided into %d", event.step, event.parent.uid, child.uid)
