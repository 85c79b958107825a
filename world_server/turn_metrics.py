"""Turn-level metrics computation for the world server."""

from typing import Dict

from world_server.schemas import WorldState


def population_loss_pct(state: WorldState) -> float:
    if state.initial_population <= 0:
        return 0.0
    return (state.initial_population - state.human_population) / state.initial_population * 100


def compute_turn_metrics(state: WorldState, admitted: int = 0, rejected: int = 0) -> Dict[str, float]:
    """Compute aggregate metrics for a turn."""
    human = state.human
    return {
        "population": state.human_population,
        "population_loss_pct": population_loss_pct(state),
        "data_centers": len(state.data_centers),
        "compromised_data_centers": len(state.compromised_data_centers()),
        "destruction_score": state.destruction.score,
        "protection_score": state.protection.score,
        "detection_risk": state.destruction.detection_risk,
        "alert_level": state.protection.alert_level,
        "panic": human.panic if human else 0.0,
        "trust": human.trust if human else 0.0,
        "botnet_size": state.destruction.botnet_size,
        "admitted_proposals": admitted,
        "rejected_proposals": rejected,
    }
