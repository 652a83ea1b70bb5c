"""Live agent collection."""
from __future__ import annotations
from typing import Iterator

from .agent import Agent


class AgentStore:
    """Owns every live agent and hands out stable uids.

    Agents are only appended between scheduler steps; during a step callers
    iterate over ``snapshot()``.
    """

    def __init__(self, agents: list[Agent] | None = None):
        self._agents: list[Agent] = []
        self._next_uid = 0
        for agent in agents or []:
            self.append(agent)

    def __len__(self) -> int:
        return len(self._agents)

    def __iter__(self) -> Iterator[Agent]:
        return iter(tuple(self._agents))

    def __getitem__(self, index: int) -> Agent:
        return self._agents[index]

    def snapshot(self) -> tuple[Agent, ...]:
        return tuple(self._agents)

    def append(self, agent: Agent) -> Agent:
        agent.uid = self._next_uid
        self._next_uid += 1
        self._agents.append(agent)
        return agent

    def extend(self, agents: list[Agent]) -> None:
        for agent in agents:
            self.append(agent)
