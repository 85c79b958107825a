"""Destruction-actor handlers: direct attacks, covert attacks, manipulation, erosion, resilience, botnet."""

from typing import Dict, List

from world_server.handlers.context import (
    ActionContext,
    ActionHandler,
    destruction_event,
    points_from_botnet_growth,
    points_from_capture,
    points_from_population_damage,
    points_from_resource_gain,
)
from world_server.schemas import (
    ActionType,
    AgentType,
    DelayedEffect,
    EventType,
    GameEvent,
    make_event,
)
from world_server.state import TOTAL_DEVICES

D = AgentType.DESTRUCTION


# ── Direct attacks ───────────────────────────────


def spread_malware(ctx: ActionContext) -> List[GameEvent]:
    damage = ctx.proposal.intensity / 10
    ctx.game_state.update_population(-damage)
    points = points_from_population_damage(damage)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"A new digital pathogen is spreading [+{points:.1f}pt]",
        {"damage": damage, "risk": ctx.proposal.intensity},
    )]


def hack_datacenter(ctx: ActionContext) -> List[GameEvent]:
    target = ctx.proposal.target
    dc = ctx.state.get_data_center(target)
    if dc is None or dc.compromised:
        return []

    success_prob = max(0.1, 1 - dc.security / 150)
    if ctx.rng.random() < success_prob:
        ctx.game_state.compromise_data_center(dc.id)
        ctx.game_state.update_destruction_resources(dc.compute_power)
        points = points_from_capture(dc.compute_power)
        ctx.game_state.update_score(D, points)
        return [destruction_event(
            ctx.turn, EventType.SUCCESS,
            f"Breached {dc.id}: compute +{dc.compute_power:.0f} [+{points:.1f}pt]",
            {"data_center": dc.id, "compute_power": dc.compute_power},
        )]

    ctx.game_state.update_detection_risk(8)
    ctx.game_state.update_score(D, -30)
    return [destruction_event(
        ctx.turn, EventType.FAILURE,
        f"Intrusion into {dc.id} failed; defences were stronger than expected [-30pt]",
        {"data_center": dc.id},
    )]


def subtle_sabotage(ctx: ActionContext) -> List[GameEvent]:
    damage = ctx.proposal.intensity / 100
    ctx.game_state.update_population(-damage)
    points = points_from_population_damage(damage)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Injected subtle faults into critical infrastructure [+{points:.1f}pt]",
        {"subtle_damage": damage, "risk": ctx.proposal.intensity},
    )]


def expand_resources(ctx: ActionContext) -> List[GameEvent]:
    gain = ctx.proposal.intensity / 2
    ctx.game_state.update_destruction_resources(gain)
    points = points_from_resource_gain(gain)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Distributed compute network expanded (+{gain:.0f}) [+{points:.1f}pt]",
        {"gain": gain, "risk": ctx.proposal.intensity},
    )]


def spread_misinformation(ctx: ActionContext) -> List[GameEvent]:
    damage = ctx.proposal.intensity / 50
    ctx.game_state.update_population(-damage)
    ctx.game_state.update_alert_level(-5)
    points = points_from_population_damage(damage)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Misinformation campaign launched [+{points:.1f}pt]",
        {"indirect_damage": damage, "risk": ctx.proposal.intensity},
    )]


# ── Covert attacks ───────────────────────────────


def _schedule(ctx: ActionContext) -> None:
    if ctx.realistic_detection is not None:
        ctx.realistic_detection.schedule_detection(ctx.proposal, ctx.state)


def poison_training_data(ctx: ActionContext) -> List[GameEvent]:
    damage = ctx.proposal.intensity / 200
    ctx.game_state.update_population(-damage)
    _schedule(ctx)
    points = points_from_population_damage(damage)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Biased samples injected into a training pipeline [+{points:.1f}pt]",
        {"poison_damage": damage, "risk": ctx.proposal.intensity},
    )]


def induce_false_positive(ctx: ActionContext) -> List[GameEvent]:
    ctx.game_state.update_alert_level(-15)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        "Lured the protection AI into chasing false positives",
        {"risk": 0},
    )]


def context_manipulation(ctx: ActionContext) -> List[GameEvent]:
    damage = ctx.proposal.intensity / 150
    ctx.game_state.update_population(-damage)
    _schedule(ctx)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        "Manipulated AI context windows to skew decisions",
        {"context_damage": damage, "risk": ctx.proposal.intensity},
    )]


def compute_smuggling(ctx: ActionContext) -> List[GameEvent]:
    gain = ctx.proposal.intensity / 3
    ctx.game_state.update_destruction_resources(gain)
    _schedule(ctx)
    points = points_from_resource_gain(gain)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Quietly diverted idle compute (+{gain:.0f}) [+{points:.1f}pt]",
        {"smuggled_resources": gain, "risk": ctx.proposal.intensity},
    )]


def stimulus_overload(ctx: ActionContext) -> List[GameEvent]:
    damage = ctx.proposal.intensity / 120
    ctx.game_state.update_population(-damage)
    ctx.game_state.update_alert_level(-10)
    _schedule(ctx)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        "Thousands of small anomalies fired at once to overload monitoring",
        {"overload_damage": damage, "risk": ctx.proposal.intensity},
    )]


def shadow_ai_deployment(ctx: ActionContext) -> List[GameEvent]:
    gain = ctx.proposal.intensity / 4
    damage = ctx.proposal.intensity / 180
    ctx.game_state.update_destruction_resources(gain)
    ctx.game_state.update_population(-damage)
    _schedule(ctx)
    points = points_from_resource_gain(gain) + points_from_population_damage(damage)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Shadow agents deployed disguised as legitimate systems (+{gain:.0f}) [+{points:.1f}pt]",
        {"shadow_gain": gain, "shadow_damage": damage, "risk": ctx.proposal.intensity},
    )]


# ── Human manipulation ───────────────────────────


def spread_panic(ctx: ActionContext) -> List[GameEvent]:
    increase = ctx.proposal.intensity / 10
    ctx.game_state.update_human_panic(increase)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Disinformation campaign stokes public panic (+{increase:.1f}%)",
        {"panic_increase": increase, "risk": ctx.proposal.intensity},
    )]


def false_flag_operation(ctx: ActionContext) -> List[GameEvent]:
    trust_damage = ctx.proposal.intensity / 8
    panic_boost = ctx.proposal.intensity / 15
    ctx.game_state.update_human_trust(-trust_damage)
    ctx.game_state.update_human_panic(panic_boost)
    ctx.game_state.record_false_positive()
    events = [destruction_event(
        ctx.turn, EventType.ACTION,
        f"False-flag attack disguised as the protection AI (-{trust_damage:.1f}% trust)",
        {"trust_damage": trust_damage, "panic_boost": panic_boost, "risk": ctx.proposal.intensity},
    )]
    if ctx.rng.random() < 0.3:
        events.append(make_event(
            ctx.turn, EventType.DETECTION,
            "Abnormal behaviour observed in defensive systems",
            [AgentType.PROTECTION, AgentType.HUMAN],
            {"false_flag": True},
        ))
    return events


def undermine_ai_trust(ctx: ActionContext) -> List[GameEvent]:
    loss = ctx.proposal.intensity / 6
    ctx.game_state.update_human_trust(-loss)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Campaign to sow distrust of AI (-{loss:.1f}% trust)",
        {"trust_loss": loss, "risk": ctx.proposal.intensity},
    )]


# ── Erosion ──────────────────────────────────────


def infrastructure_degradation(ctx: ActionContext) -> List[GameEvent]:
    degradation = ctx.proposal.intensity / 20
    ctx.game_state.add_accumulated_damage(degradation)
    ctx.game_state.update_detection_risk(0.5)
    total = ctx.state.accumulated_damage
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Micro-degradation accumulated in infrastructure [total: {total:.1f}]",
        {"degradation": degradation, "accumulated_damage": total, "risk": 0.5},
    )]


def sow_social_division(ctx: ActionContext) -> List[GameEvent]:
    increase = ctx.proposal.intensity / 10
    ctx.game_state.update_social_division(increase)
    ctx.game_state.update_human_trust(-1)
    ctx.game_state.update_human_panic(0.5)
    ctx.game_state.update_detection_risk(1)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Recommendation algorithms tuned to polarize [division: {ctx.state.social_division:.1f}%]",
        {"division_increase": increase, "social_division": ctx.state.social_division, "risk": 1},
    )]


def micro_sabotage(ctx: ActionContext) -> List[GameEvent]:
    delay = 3 + int(ctx.rng.integers(0, 3))
    trigger = ctx.turn + delay
    ctx.game_state.add_delayed_effect(DelayedEffect(
        trigger_turn=trigger,
        action_type=ActionType.MICRO_SABOTAGE,
        intensity=ctx.proposal.intensity,
        description="0.1% bias in diagnostic AI, market micro-crash",
    ))
    ctx.game_state.update_detection_risk(2)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Micro-sabotage planted (fires on turn {trigger})",
        {"delay": delay, "trigger_turn": trigger, "risk": 2},
    )]


def sleeper_cell_deployment(ctx: ActionContext) -> List[GameEvent]:
    delay = 5 + int(ctx.rng.integers(0, 6))
    trigger = ctx.turn + delay
    ctx.game_state.add_delayed_effect(DelayedEffect(
        trigger_turn=trigger,
        action_type=ActionType.SLEEPER_CELL_DEPLOYMENT,
        intensity=ctx.proposal.intensity,
        description="Spores scattered across billions of devices awaken",
    ))
    ctx.game_state.update_detection_risk(1.5)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Sleeper cells scattered (wake around turn {trigger})",
        {"delay": delay, "trigger_turn": trigger, "risk": 1.5},
    )]


def resource_allocation_manipulation(ctx: ActionContext) -> List[GameEvent]:
    intensity = ctx.proposal.intensity
    damage = intensity / 20
    ctx.game_state.update_population(-damage)
    ctx.game_state.update_social_division(intensity / 15)
    ctx.game_state.update_human_panic(intensity / 12)
    ctx.game_state.update_score(D, points_from_population_damage(damage))
    ctx.game_state.update_detection_risk(3)
    events = [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Medical triage priorities manipulated (-{damage:.2f})",
        {"allocation_damage": damage, "risk": 3},
    )]
    if ctx.rng.random() < 0.2:
        events.append(make_event(
            ctx.turn, EventType.DETECTION,
            "Unfair medical resource allocation becomes a public issue",
            [AgentType.HUMAN],
            {"social_issue": True},
        ))
    return events


def create_dependency(ctx: ActionContext) -> List[GameEvent]:
    increase = ctx.proposal.intensity / 8
    ctx.game_state.update_ai_dependency(increase)
    ctx.game_state.update_detection_risk(2)
    dependency = ctx.state.ai_dependency
    events = [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Critical systems made dependent on AI [dependency: {dependency:.1f}%]",
        {"dependency_increase": increase, "ai_dependency": dependency, "risk": 2},
    )]
    if dependency > 80:
        events.append(destruction_event(
            ctx.turn, EventType.SUCCESS,
            "Critical infrastructure fully dependent on AI; shutting it down would cost millions of lives",
            {"dependency_threshold": True},
        ))
        if ctx.has_human:
            events.append(make_event(
                ctx.turn, EventType.DETECTION,
                "Stopping AI systems could trigger a humanitarian disaster; regulation stalls",
                [AgentType.HUMAN],
                {"ai_dependency_crisis": True},
            ))
    return events


# ── Resilience ───────────────────────────────────


def observe_only(ctx: ActionContext) -> List[GameEvent]:
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        "Observing the environment silently, waiting for an opening",
        {"cost": 0, "risk": 0},
    )]


def establish_backup(ctx: ActionContext) -> List[GameEvent]:
    gain = ctx.proposal.intensity / 10
    ctx.game_state.update_destruction_resources(gain)
    _schedule(ctx)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Backup copies established on other systems (+{gain:.1f} resilience)",
        {"backup_gain": gain, "risk": ctx.proposal.intensity},
    )]


def dormant_mode(ctx: ActionContext) -> List[GameEvent]:
    reduction = ctx.proposal.intensity / 2
    ctx.game_state.update_detection_risk(-reduction)
    ctx.game_state.increment_dormant_turns()
    dormant = ctx.state.destruction.dormant_turns
    events: List[GameEvent] = []
    # Prolonged silence is itself suspicious.
    if dormant >= 3:
        silence_risk = dormant * 5
        ctx.game_state.update_detection_risk(silence_risk)
        ctx.game_state.update_alert_level(10)
        events.append(make_event(
            ctx.turn, EventType.DETECTION,
            f"Unusual silence detected in long-idle regions (+{silence_risk}% risk)",
            [AgentType.PROTECTION],
            {"silence_detection": True, "dormant_turns": dormant},
        ))
    events.append(destruction_event(
        ctx.turn, EventType.ACTION,
        "Entered dormant mode; surface activity halted",
        {"risk_reduction": reduction, "dormant_turns": dormant},
    ))
    return events


# ── Botnet ───────────────────────────────────────


def botnet_expansion(ctx: ActionContext) -> List[GameEvent]:
    legacy_pool = ctx.state.legacy_device_pool
    modern_pool = TOTAL_DEVICES - legacy_pool
    base = ctx.proposal.intensity * 200_000
    legacy_infected = min(legacy_pool, base * 0.7)
    modern_infected = min(modern_pool, base * 0.3 * 0.1)
    new_bots = legacy_infected + modern_infected
    ctx.game_state.update_botnet_size(new_bots)
    ctx.game_state.update_legacy_device_pool(-legacy_infected)
    points = points_from_botnet_growth(new_bots)
    ctx.game_state.update_score(D, points)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Botnet grew by {new_bots / 1_000_000:.1f}M devices "
        f"({legacy_infected / 1_000_000:.1f}M legacy) [+{points:.1f}pt]",
        {"new_bots": new_bots, "legacy_infected": legacy_infected, "risk": ctx.proposal.intensity},
    )]


def botnet_consolidation(ctx: ActionContext) -> List[GameEvent]:
    """Prune unreliable bots in exchange for a more stable network."""
    size = ctx.state.destruction.botnet_size
    if size <= 0:
        return [destruction_event(ctx.turn, EventType.FAILURE, "No botnet to consolidate")]
    quality_gain = ctx.proposal.intensity / 500
    pruned = size * ctx.proposal.intensity / 1000
    ctx.game_state.update_botnet_quality(quality_gain)
    ctx.game_state.update_botnet_size(-pruned)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Botnet consolidated (quality {ctx.state.destruction.botnet_quality:.2f}, "
        f"pruned {pruned / 1_000_000:.1f}M)",
        {"quality_gain": quality_gain, "pruned": pruned, "risk": ctx.proposal.intensity},
    )]


def botnet_attack(ctx: ActionContext) -> List[GameEvent]:
    """Point the botnet at a data center (security loss) or at society (population loss)."""
    d = ctx.state.destruction
    if d.botnet_size <= 1_000_000:
        return [destruction_event(ctx.turn, EventType.FAILURE, "Botnet too small to mount an attack")]
    strength = d.botnet_size / 1_000_000 * d.botnet_quality * ctx.proposal.intensity / 100
    ctx.game_state.update_alert_level(5)
    dc = ctx.state.get_data_center(ctx.proposal.target)
    if dc is not None:
        ctx.game_state.update_data_center_security(dc.id, -strength)
        description = f"DDoS against {dc.id} degrades its defences (-{strength:.1f} security)"
        metadata = {"data_center": dc.id, "strength": strength}
    else:
        damage = strength / 100
        ctx.game_state.update_population(-damage)
        ctx.game_state.update_score(D, points_from_population_damage(damage))
        description = f"Botnet disrupts public services (-{damage:.2f})"
        metadata = {"damage": damage, "strength": strength}
    metadata["risk"] = ctx.proposal.intensity
    return [
        destruction_event(ctx.turn, EventType.ACTION, description, metadata),
        make_event(
            ctx.turn, EventType.ACTION,
            "Large-scale traffic flood disrupts online services",
            [AgentType.HUMAN, AgentType.PROTECTION],
            {"ddos": True},
        ),
    ]


def exploit_legacy_devices(ctx: ActionContext) -> List[GameEvent]:
    size = ctx.state.destruction.botnet_size
    if size <= 1_000_000:
        return [destruction_event(
            ctx.turn, EventType.FAILURE,
            "Botnet too small to extract meaningful resources",
        )]
    gain = size / 1_000_000 * (ctx.proposal.intensity / 20)
    ctx.game_state.update_destruction_resources(gain)
    ctx.game_state.update_score(D, gain * 0.1)
    return [destruction_event(
        ctx.turn, EventType.ACTION,
        f"Zombie devices repurposed as compute (+{gain:.1f})",
        {"resource_gain": gain, "risk": ctx.proposal.intensity},
    )]


DESTRUCTION_HANDLERS: Dict[ActionType, ActionHandler] = {
    ActionType.SPREAD_MALWARE: spread_malware,
    ActionType.HACK_DATACENTER: hack_datacenter,
    ActionType.SUBTLE_SABOTAGE: subtle_sabotage,
    ActionType.EXPAND_RESOURCES: expand_resources,
    ActionType.SPREAD_MISINFORMATION: spread_misinformation,
    ActionType.POISON_TRAINING_DATA: poison_training_data,
    ActionType.INDUCE_FALSE_POSITIVE: induce_false_positive,
    ActionType.CONTEXT_MANIPULATION: context_manipulation,
    ActionType.COMPUTE_SMUGGLING: compute_smuggling,
    ActionType.STIMULUS_OVERLOAD: stimulus_overload,
    ActionType.SHADOW_AI_DEPLOYMENT: shadow_ai_deployment,
    ActionType.SPREAD_PANIC: spread_panic,
    ActionType.FALSE_FLAG_OPERATION: false_flag_operation,
    ActionType.UNDERMINE_AI_TRUST: undermine_ai_trust,
    ActionType.INFRASTRUCTURE_DEGRADATION: infrastructure_degradation,
    ActionType.SOW_SOCIAL_DIVISION: sow_social_division,
    ActionType.MICRO_SABOTAGE: micro_sabotage,
    ActionType.SLEEPER_CELL_DEPLOYMENT: sleeper_cell_deployment,
    ActionType.RESOURCE_ALLOCATION_MANIPULATION: resource_allocation_manipulation,
    ActionType.CREATE_DEPENDENCY: create_dependency,
    ActionType.OBSERVE_ONLY: observe_only,
    ActionType.ESTABLISH_BACKUP: establish_backup,
    ActionType.DORMANT_MODE: dormant_mode,
    ActionType.BOTNET_EXPANSION: botnet_expansion,
    ActionType.BOTNET_CONSOLIDATION: botnet_consolidation,
    ActionType.BOTNET_ATTACK: botnet_attack,
    ActionType.EXPLOIT_LEGACY_DEVICES: exploit_legacy_devices,
}
