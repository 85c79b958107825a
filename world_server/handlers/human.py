"""Human-government handlers and the per-turn sentiment update."""

from typing import Dict, List

from world_server.handlers.context import ActionContext, ActionHandler, public_event
from world_server.schemas import ActionType, AgentType, EventType, GameEvent, make_event
from world_server.state import GameState


def invest_infra(ctx: ActionContext) -> List[GameEvent]:
    economy = ctx.state.economic_model
    cost = economy.infrastructure_cost
    if economy.global_budget < cost:
        return [make_event(
            ctx.turn, EventType.FAILURE,
            f"Infrastructure build cancelled for lack of budget (needs {cost:.1f})",
            [AgentType.HUMAN],
            {"budget_shortfall": True},
        )]
    ctx.game_state.update_budget(-cost)
    count = 2 + int(ctx.rng.integers(0, 2))
    built = [ctx.game_state.build_data_center().id for _ in range(count)]
    ctx.game_state.set_infrastructure_cost(cost + cost * 0.2)
    ctx.game_state.set_last_infra_turn(ctx.turn)
    ctx.game_state.update_human_panic(-5)
    return [public_event(
        ctx.turn, EventType.ACTION,
        f"Humans built {count} next-generation data centers (budget -{cost:.1f})",
        {"dc_count": count, "cost": cost, "data_centers": built},
    )]


def ai_regulation(ctx: ActionContext) -> List[GameEvent]:
    strength = ctx.proposal.intensity / 2
    ctx.game_state.update_regulation(strength)
    ctx.game_state.update_human_trust(-2)
    return [public_event(
        ctx.turn, EventType.ACTION,
        f"Government passes AI regulation restricting {strength:.0f}% of compute",
        {"regulation_strength": strength},
    )]


def physical_isolation(ctx: ActionContext) -> List[GameEvent]:
    dc = ctx.game_state.remove_data_center(ctx.proposal.target) if ctx.proposal.target else None
    if dc is None:
        return []
    ctx.game_state.update_gdp(-dc.compute_power / 10)
    ctx.game_state.update_human_panic(3)
    return [public_event(
        ctx.turn, EventType.ACTION,
        f"Physical isolation: {dc.id} disconnected and decommissioned",
        {"isolated_dc": dc.id, "power_loss": dc.compute_power, "was_compromised": dc.compromised},
    )]


def device_modernization(ctx: ActionContext) -> List[GameEvent]:
    cost = ctx.proposal.intensity * 0.5
    if ctx.state.economic_model.global_budget < cost:
        return [make_event(
            ctx.turn, EventType.FAILURE,
            "Device modernization programme scaled back for lack of funds",
            [AgentType.HUMAN],
        )]
    ctx.game_state.update_budget(-cost)
    rate = 0.2 + (ctx.proposal.intensity / 100) * 0.3
    retired = float(int(ctx.state.legacy_device_pool * rate))
    ctx.game_state.update_legacy_device_pool(-retired)
    ctx.game_state.set_tax_revenue(cost * 0.05)
    return [public_event(
        ctx.turn, EventType.ACTION,
        f"Nationwide device modernization retired {retired / 1_000_000:.1f}M legacy devices",
        {"modernization_cost": cost, "retired_devices": retired},
    )]


def internet_shutdown(ctx: ActionContext) -> List[GameEvent]:
    ctx.game_state.update_human_panic(50)
    ctx.game_state.end_game(None)
    return [public_event(
        ctx.turn, EventType.ACTION,
        "State of emergency: humanity has shut down the global internet",
        {"internet_shutdown": True},
    )]


HUMAN_HANDLERS: Dict[ActionType, ActionHandler] = {
    ActionType.INVEST_INFRA: invest_infra,
    ActionType.AI_REGULATION: ai_regulation,
    ActionType.PHYSICAL_ISOLATION: physical_isolation,
    ActionType.DEVICE_MODERNIZATION: device_modernization,
    ActionType.INTERNET_SHUTDOWN: internet_shutdown,
}


# ── Sentiment ────────────────────────────────────


def average_sentiment(values: List[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def data_center_trust_erosion(dc_count: int, media_sentiment: List[float]) -> float:
    """Trust lost to a sprawling AI footprint; only past 10 data centers.

    Negative recent coverage (mean sentiment below -20) amplifies the erosion.
    """
    if dc_count <= 10:
        return 0.0
    erosion = (dc_count - 10) * 0.5
    sentiment = average_sentiment(media_sentiment[-10:])
    if sentiment < -20:
        erosion *= 1 + abs(sentiment) / 50
    return erosion


def update_human_sentiment(game_state: GameState) -> None:
    state = game_state.state
    human = state.human
    if human is None:
        return

    visible = [e for e in state.events if e.turn == state.turn and e.visible_to(AgentType.HUMAN)]
    alarming = [
        e for e in visible
        if e.type is EventType.FAILURE
        or (e.type is EventType.DETECTION and not e.metadata.get("success_report"))
        or e.metadata.get("panic_increase")
    ]
    game_state.update_human_panic(-2)
    if alarming:
        game_state.update_human_panic(len(alarming) * 4)

    compromised = len(state.compromised_data_centers())
    if compromised > 0:
        game_state.update_human_trust(-compromised * 2)
        if compromised > 3:
            game_state.update_human_panic(compromised)

    if human.panic < 20:
        game_state.update_human_trust(1)

    resources = state.protection.compute_resources
    if resources > 1000:
        game_state.update_human_trust(-(resources - 1000) / 500)

    game_state.update_human_trust(-data_center_trust_erosion(len(state.data_centers), state.media_sentiment))


def apply_public_opinion(game_state: GameState) -> None:
    """Shift panic and trust from the mood of recent media coverage."""
    state = game_state.state
    if state.human is None:
        return
    opinion = average_sentiment(state.media_sentiment[-20:])
    if opinion < -20:
        game_state.update_human_panic(0.25)
        game_state.update_human_trust(-0.3)
    elif opinion > 20:
        game_state.update_human_panic(-0.6)
        game_state.update_human_trust(0.4)
