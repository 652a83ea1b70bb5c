"""Per-agent gene concentration dynamics."""
from __future__ import annotations
from functools import partial
from typing import Callable

from diffusim.agents.agent import Agent
from .base import BehaviorModule, StepContext

GeneRule = Callable[[float, float], float]


def time_scaled(curr_time: float, concentration: float, *, offset: float = 0.2) -> float:
    return curr_time * concentration + offset


def time_squared(curr_time: float, concentration: float) -> float:
    return concentration * concentration * curr_time


def time_shifted(curr_time: float, concentration: float, *, offset: float = 3.0) -> float:
    return concentration + curr_time + offset


def first_order(curr_time: float, concentration: float, *, rate: float = 0.1, offset: float = 0.0) -> float:
    return concentration - rate * concentration + offset


def constant(curr_time: float, concentration: float, *, offset: float = 0.0) -> float:
    return offset


GENE_RULES: dict[str, Callable[..., float]] = {
    "time_scaled": time_scaled,
    "time_squared": time_squared,
    "time_shifted": time_shifted,
    "first_order": first_order,
    "constant": constant,
}


def make_rule(name: str, **params: float) -> GeneRule:
    """Bind a named rule's parameters, e.g. ``make_rule("time_scaled", offset=0.2)``."""
    try:
        fn = GENE_RULES[name]
    except KeyError:
        raise ValueError(f"unknown gene rule '{name}'; expected one of {sorted(GENE_RULES)}") from None
    return partial(fn, **params) if params else fn


class GeneRegulation(BehaviorModule):
    """Ordered genes, each a ``(rule, concentration)`` pair.

    Every step each gene becomes ``rule(time, previous)``. Genes do not see
    each other's values from the same step.
    """

    kind = "gene_regulation"

    def __init__(self):
        self._rules: list[GeneRule] = []
        self._concentrations: list[float] = []
        self._sealed = False

    def __repr__(self) -> str:
        return f"GeneRegulation(concentrations={self._concentrations!r})"

    def __len__(self) -> int:
        return len(self._rules)

    def add_gene(self, rule: GeneRule, initial_concentration: float) -> None:
        if self._sealed:
            raise RuntimeError("genes cannot be added once the module has run")
        if not callable(rule):
            raise TypeError("gene rule must be callable")
        self._rules.append(rule)
        self._concentrations.append(float(initial_concentration))

    def get_concentrations(self) -> tuple[float, ...]:
        return tuple(self._concentrations)

    def run(self, agent: Agent, context: StepContext) -> None:
        self._sealed = True
        previous = self._concentrations
        self._concentrations = [float(rule(context.time, c)) for rule, c in zip(self._rules, previous)]
