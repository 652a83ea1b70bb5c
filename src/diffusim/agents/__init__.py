"""Discrete agents and their container."""
from .agent import Agent, SpaceBounds
from .store import AgentStore

__all__ = ["Agent", "SpaceBounds", "AgentStore"]
