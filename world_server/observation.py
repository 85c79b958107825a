"""Visibility-filtered views of the world for a single actor."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from world_server.schemas import AgentType, GameEvent, WorldState


@dataclass
class Observation:
    turn: int
    visible_events: List[GameEvent]
    own_resources: Dict[str, Any]
    world_info: Dict[str, Any] = field(default_factory=dict)


def visible_events(state: WorldState, agent_type: AgentType) -> List[GameEvent]:
    return [e for e in state.events if e.visible_to(agent_type)]


def build_observation(state: WorldState, agent_type: AgentType, limit: int = 0) -> Observation:
    """Return what ``agent_type`` may know. ``limit`` keeps the last N events (0 = default)."""
    if agent_type is AgentType.HUMAN:
        limit = limit or 10
        human = state.human
        own = {
            "compute_resources": 0,
            "panic": human.panic if human else 0.0,
            "trust": human.trust if human else 50.0,
        }
        world = {
            "total_data_centers": len(state.data_centers),
            "estimated_population": state.human_population,
            "compromised_data_centers": len(state.compromised_data_centers()),
        }
    else:
        limit = limit or 5
        if agent_type is AgentType.DESTRUCTION:
            d = state.destruction
            own = {
                "compute_resources": d.compute_resources,
                "detection_risk": d.detection_risk,
                "controlled_data_centers": len(d.controlled_data_centers),
                "botnet_size": d.botnet_size,
            }
        else:
            p = state.protection
            own = {
                "compute_resources": p.compute_resources,
                "alert_level": p.alert_level,
                "known_threats": len(p.known_threats),
            }
        world = {
            "total_data_centers": len(state.data_centers),
            "estimated_population": round(state.human_population, 1),
        }
    return Observation(
        turn=state.turn,
        visible_events=visible_events(state, agent_type)[-limit:],
        own_resources=own,
        world_info=world,
    )
