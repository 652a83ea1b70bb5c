"""Behavior modules attached to agents."""
from .base import BehaviorModule, DivisionBuffer, DivisionEvent, StepContext
from .chemotaxis import Chemotaxis
from .gene_regulation import GENE_RULES, GeneRegulation, make_rule
from .grow_divide import GrowDivide

__all__ = [
    "BehaviorModule",
    "DivisionBuffer",
    "DivisionEvent",
    "StepContext",
    "Chemotaxis",
    "GENE_RULES",
    "GeneRegulation",
    "make_rule",
    "GrowDivide",
]
