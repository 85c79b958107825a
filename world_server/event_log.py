"""Append-only event log view over ``WorldState.events``.

Supports ``append()``, ``len()``, iteration, ``since_turn`` and
``visible_to`` filtering.
"""

from typing import Iterator, List

from world_server.schemas import AgentType, GameEvent, WorldState


class EventLog:
    """List-like wrapper so callers never mutate the event list by hand."""

    def __init__(self, state: WorldState) -> None:
        self._state = state

    def append(self, event: GameEvent) -> None:
        self._state.events.append(event)

    def extend(self, events: List[GameEvent]) -> None:
        self._state.events.extend(events)

    def since_turn(self, turn: int) -> List[GameEvent]:
        return [e for e in self._state.events if e.turn > turn]

    def at_turn(self, turn: int) -> List[GameEvent]:
        return [e for e in self._state.events if e.turn == turn]

    def visible_to(self, agent_type: AgentType) -> List[GameEvent]:
        return [e for e in self._state.events if e.visible_to(agent_type)]

    def __len__(self) -> int:
        return len(self._state.events)

    def __iter__(self) -> Iterator[GameEvent]:
        return iter(self._state.events)

    def __getitem__(self, index):
        return self._state.events[index]
