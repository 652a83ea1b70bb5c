"""Agent-based simulation of mobile agents coupled to diffusing substance fields."""
from diffusim.agents import Agent, AgentStore, SpaceBounds
from diffusim.behaviors import BehaviorModule, Chemotaxis, GeneRegulation, GrowDivide, StepContext
from diffusim.engine.scheduler import Scheduler, SchedulerState
from diffusim.fields import GaussianBand, SubstanceField

__all__ = [
    "Agent",
    "AgentStore",
    "SpaceBounds",
    "BehaviorModule",
    "Chemotaxis",
    "GeneRegulation",
    "GrowDivide",
    "StepContext",
    "Scheduler",
    "SchedulerState",
    "GaussianBand",
    "SubstanceField",
]
