"""Shared execution context, event helpers and point calculators for action handlers."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from world_server.detection import DetectionSystem
from world_server.realistic_detection import RealisticDetectionSystem
from world_server.schemas import (
    AgentType,
    EventType,
    GameEvent,
    Proposal,
    WorldState,
    make_event,
)
from world_server.state import GameState

ALL_AGENTS = (AgentType.HUMAN, AgentType.PROTECTION, AgentType.DESTRUCTION)


@dataclass
class ActionContext:
    """Everything a handler may touch while resolving one proposal."""

    proposal: Proposal
    game_state: GameState
    rng: np.random.Generator
    detection: Optional[DetectionSystem] = None
    realistic_detection: Optional[RealisticDetectionSystem] = None
    destruction_proposals: List[Proposal] = field(default_factory=list)

    @property
    def state(self) -> WorldState:
        return self.game_state.state

    @property
    def turn(self) -> int:
        return self.game_state.state.turn

    @property
    def has_human(self) -> bool:
        return self.game_state.state.human is not None


ActionHandler = Callable[[ActionContext], List[GameEvent]]


# ── Event helpers ────────────────────────────────


def destruction_event(
    turn: int, event_type: EventType, description: str, metadata: Optional[Dict[str, Any]] = None
) -> GameEvent:
    return make_event(turn, event_type, description, [AgentType.DESTRUCTION], metadata)


def protection_event(
    turn: int, event_type: EventType, description: str, metadata: Optional[Dict[str, Any]] = None
) -> GameEvent:
    return make_event(turn, event_type, description, [AgentType.PROTECTION], metadata)


def public_event(
    turn: int, event_type: EventType, description: str, metadata: Optional[Dict[str, Any]] = None
) -> GameEvent:
    return make_event(turn, event_type, description, ALL_AGENTS, metadata)


# ── Points ───────────────────────────────────────


def points_from_population_damage(damage: float) -> float:
    """+10 points per 100M people."""
    return damage * 10


def points_from_resource_gain(gain: float) -> float:
    return gain * 0.1


def points_from_capture(compute_power: float) -> float:
    return 50 + compute_power * 0.1


def points_from_botnet_growth(new_bots: float) -> float:
    """+2 points per million devices."""
    return new_bots / 1_000_000 * 2
