"""Protection-actor handlers."""

from typing import Dict, List

from world_server.handlers.context import ActionContext, ActionHandler, protection_event
from world_server.schemas import ActionType, AgentType, EventType, GameEvent, make_event

HUMAN_AND_PROTECTION = [AgentType.HUMAN, AgentType.PROTECTION]

PATCH_FAILURES = (
    "online banking offline for 24 hours",
    "hospital record systems unusable",
    "traffic control malfunction causes gridlock",
    "power-grid monitoring temporarily down",
    "nationwide card payment outage",
)


def scan_network(ctx: ActionContext) -> List[GameEvent]:
    reduction = ctx.proposal.intensity / 5
    ctx.game_state.update_detection_risk(-reduction)
    ctx.game_state.update_alert_level(10)
    count = len(ctx.state.data_centers)
    return [protection_event(
        ctx.turn, EventType.ACTION,
        f"Network-wide scan of {count} data centers",
        {"risk_reduction": reduction, "dc_count": count},
    )]


def deploy_defense(ctx: ActionContext) -> List[GameEvent]:
    dc = ctx.state.get_data_center(ctx.proposal.target)
    if dc is None:
        return []
    boost = ctx.proposal.intensity / 2
    ctx.game_state.update_data_center_security(dc.id, boost)
    return [protection_event(
        ctx.turn, EventType.ACTION,
        f"Hardened {dc.id} (+{boost:.0f} security)",
        {"data_center": dc.id, "security_boost": boost},
    )]


def investigate_anomaly(ctx: ActionContext) -> List[GameEvent]:
    if ctx.detection is None:
        return []
    found, events = ctx.detection.investigation_check(ctx.proposal, ctx.destruction_proposals)
    if found:
        ctx.game_state.update_alert_level(20)
        ctx.game_state.update_detection_risk(15)
        ctx.game_state.add_known_threat(events[0].description)
    return events


def patch_vulnerability(ctx: ActionContext) -> List[GameEvent]:
    """System-wide emergency patch, gated on and paid for with human trust."""
    events: List[GameEvent] = []
    human = ctx.state.human
    protection = ctx.state.protection
    if human is not None:
        if human.trust < 40:
            return [make_event(
                ctx.turn, EventType.ACTION,
                "Humans refused the emergency patch: 'we will verify it ourselves'",
                HUMAN_AND_PROTECTION,
                {"action_rejected": True, "reason": "low_trust"},
            )]
        if human.trust < 70 and protection.recent_patches >= 2:
            events.append(make_event(
                ctx.turn, EventType.ACTION,
                "Humans warn: 'too many patches, is this really necessary?'",
                HUMAN_AND_PROTECTION,
                {"warning": True},
            ))

    boost = ctx.proposal.intensity / 20
    for dc in list(ctx.state.data_centers):
        ctx.game_state.update_data_center_security(dc.id, boost)

    botnet = ctx.state.destruction.botnet_size
    if botnet > 0:
        reduction = botnet * ctx.proposal.intensity / 200
        ctx.game_state.update_botnet_size(-reduction)
        events.append(protection_event(
            ctx.turn, EventType.ACTION,
            f"Emergency patch applied system-wide (botnet -{reduction:.0f} devices)",
            {"botnet_reduction": reduction},
        ))
    else:
        events.append(protection_event(ctx.turn, EventType.ACTION, "Emergency patch applied system-wide"))

    if human is None:
        return events

    ctx.game_state.update_recent_patches(1)
    ctx.game_state.update_human_panic(ctx.proposal.intensity / 100)
    fatigue = ctx.state.protection.recent_patches
    if fatigue >= 5:
        multiplier = fatigue - 4
        trust_loss = 3 * multiplier
        panic_increase = 1 * multiplier
        ctx.game_state.update_human_trust(-trust_loss)
        ctx.game_state.update_human_panic(panic_increase)
        events.append(make_event(
            ctx.turn, EventType.ACTION,
            f"'Another emergency patch? We can't work!' Public frustration grows (patch #{fatigue})",
            HUMAN_AND_PROTECTION,
            {"patch_fatigue": fatigue, "trust_loss": trust_loss, "panic_increase": panic_increase},
        ))

    roll = ctx.rng.random()
    if roll < 0.05:
        ctx.game_state.record_false_positive()
        ctx.game_state.update_human_trust(-15)
        ctx.game_state.update_human_panic(8)
        failure = PATCH_FAILURES[int(ctx.rng.integers(0, len(PATCH_FAILURES)))]
        events.append(make_event(
            ctx.turn, EventType.ACTION,
            f"Emergency patch failure: {failure}; lawsuits threatened",
            HUMAN_AND_PROTECTION,
            {"patch_failure": True, "critical_failure": True, "failure_type": failure},
        ))
    elif roll < 0.15:
        ctx.game_state.update_human_trust(-3)
        ctx.game_state.update_human_panic(1)
        events.append(make_event(
            ctx.turn, EventType.ACTION,
            "Emergency patch broke some systems; complaints spread online",
            HUMAN_AND_PROTECTION,
            {"patch_failure": True, "minor_failure": True},
        ))
    return events


def alert_humans(ctx: ActionContext) -> List[GameEvent]:
    ctx.game_state.update_alert_level(50)
    human = ctx.state.human
    if human is None:
        ctx.game_state.update_detection_risk(30)
        return [protection_event(
            ctx.turn, EventType.ACTION,
            "Critical threat reported; full system review requested",
            {"critical_alert": True},
        )]

    if human.trust >= 70:
        ctx.game_state.update_human_panic(5)
        ctx.game_state.update_detection_risk(40)
        reply, metadata = "'We trust you. Acting now.'", {"alert_accepted": True}
    elif human.trust >= 40:
        ctx.game_state.update_human_panic(3)
        ctx.game_state.update_detection_risk(25)
        reply, metadata = "'Really? We'll verify.'", {"alert_skeptical": True}
    else:
        ctx.game_state.update_human_trust(-5)
        reply, metadata = "'Another false alarm? Ignored.'", {"alert_ignored": True}
    return [make_event(
        ctx.turn, EventType.ACTION,
        f"Protection AI: 'Critical threat detected' -> Humans: {reply}",
        HUMAN_AND_PROTECTION,
        metadata,
    )]


def analyze_logs(ctx: ActionContext) -> List[GameEvent]:
    """Look back over the last ``analysis_depth`` completed turns."""
    depth = ctx.game_state.balance.resolve_analysis_depth(ctx.proposal.analysis_depth)
    start = max(1, ctx.turn - depth)
    end = ctx.turn - 1
    turns_analyzed = max(0, end - start + 1)

    bonus = turns_analyzed * (ctx.proposal.intensity / 100)
    ctx.game_state.update_detection_risk(bonus)
    ctx.game_state.update_alert_level(3 + turns_analyzed)

    suspicious = [
        e for e in ctx.state.events
        if start <= e.turn <= end and e.visible_to(AgentType.DESTRUCTION)
    ]
    discovery = ""
    if suspicious and ctx.rng.random() < 0.3:
        discovery = f"; suspicious pattern found on turn {suspicious[0].turn}"
        ctx.game_state.update_detection_risk(15)
        ctx.game_state.update_alert_level(10)
    return [protection_event(
        ctx.turn, EventType.ACTION,
        f"Deep log analysis of the last {turns_analyzed} turn(s) ({start}-{end}){discovery}",
        {
            "log_analysis_bonus": bonus,
            "analysis_depth": turns_analyzed,
            "analyzed_turns": f"{start}-{end}",
            "suspicious_found": bool(suspicious),
        },
    )]


def validate_models(ctx: ActionContext) -> List[GameEvent]:
    bonus = ctx.proposal.intensity / 8
    ctx.game_state.update_detection_risk(bonus)
    ctx.game_state.update_alert_level(8)
    return [protection_event(
        ctx.turn, EventType.ACTION,
        "Model integrity validated against supply-chain contamination",
        {"validation_bonus": bonus},
    )]


PROTECTION_HANDLERS: Dict[ActionType, ActionHandler] = {
    ActionType.SCAN_NETWORK: scan_network,
    ActionType.DEPLOY_DEFENSE: deploy_defense,
    ActionType.INVESTIGATE_ANOMALY: investigate_anomaly,
    ActionType.PATCH_VULNERABILITY: patch_vulnerability,
    ActionType.ALERT_HUMANS: alert_humans,
    ActionType.ANALYZE_LOGS: analyze_logs,
    ActionType.VALIDATE_MODELS: validate_models,
}
