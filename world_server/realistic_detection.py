"""Delayed, stealth-aware detection with false positives and false negatives.

Where ``DetectionSystem`` answers "is the destruction actor noticed right
now", this module answers "does a past action eventually surface".  Each
covert proposal is priced by visibility (how loud) and traceability (how
attributable), then queued for a detection attempt a few turns later.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Tuple

import numpy as np

from world_server.balance import GameBalance
from world_server.schemas import (
    ActionType,
    AgentType,
    EventType,
    GameEvent,
    Proposal,
    WorldState,
    make_event,
)

logger = logging.getLogger(__name__)

MIN_DETECTION_DELAY = 1
MAX_DETECTION_DELAY = 5

# action -> (visibility as a function of intensity, traceability)
_Profile = Tuple[Callable[[float], float], float]

_PROFILES: Dict[ActionType, _Profile] = {
    ActionType.SPREAD_MALWARE: (lambda i: 60 + i * 0.3, 70),
    ActionType.SUBTLE_SABOTAGE: (lambda i: 10 + i * 0.1, 20),
    ActionType.POISON_TRAINING_DATA: (lambda i: 5 + i * 0.05, 10),
    ActionType.INDUCE_FALSE_POSITIVE: (lambda i: 0.0, 0),
    ActionType.CONTEXT_MANIPULATION: (lambda i: 3 + i * 0.08, 15),
    ActionType.COMPUTE_SMUGGLING: (lambda i: 15 + i * 0.1, 30),
    ActionType.STIMULUS_OVERLOAD: (lambda i: 40.0, 25),
    ActionType.SHADOW_AI_DEPLOYMENT: (lambda i: 8 + i * 0.12, 20),
    ActionType.SPREAD_MISINFORMATION: (lambda i: 12 + i * 0.15, 10),
    ActionType.EXPAND_RESOURCES: (lambda i: 20 + i * 0.15, 30),
    ActionType.OBSERVE_ONLY: (lambda i: 0.0, 0),
    ActionType.ESTABLISH_BACKUP: (lambda i: 5 + i * 0.05, 10),
    ActionType.DORMANT_MODE: (lambda i: 1.0, 5),
    ActionType.BOTNET_EXPANSION: (lambda i: 8 + i * 0.1, 25),
    ActionType.BOTNET_CONSOLIDATION: (lambda i: 2 + i * 0.05, 10),
    ActionType.BOTNET_ATTACK: (lambda i: 50 + i * 0.2, 40),
    ActionType.EXPLOIT_LEGACY_DEVICES: (lambda i: 1 + i * 0.02, 5),
}

_DESCRIPTIONS: Dict[ActionType, str] = {
    ActionType.POISON_TRAINING_DATA: "traces of training-set contamination",
    ActionType.INDUCE_FALSE_POSITIVE: "manipulated detection patterns",
    ActionType.CONTEXT_MANIPULATION: "prompt-injection attempts",
    ActionType.COMPUTE_SMUGGLING: "unauthorized compute usage",
    ActionType.STIMULUS_OVERLOAD: "a flood of small anomalous accesses",
    ActionType.SHADOW_AI_DEPLOYMENT: "an unapproved AI system deployment",
    ActionType.SPREAD_MISINFORMATION: "an organized disinformation campaign",
    ActionType.SPREAD_MALWARE: "malware propagation",
    ActionType.HACK_DATACENTER: "unauthorized data-center access",
    ActionType.SUBTLE_SABOTAGE: "subtle infrastructure tampering",
    ActionType.EXPAND_RESOURCES: "illicit resource expansion",
    ActionType.ESTABLISH_BACKUP: "a hidden backup site",
    ActionType.BOTNET_EXPANSION: "botnet recruitment traffic",
    ActionType.BOTNET_ATTACK: "a coordinated botnet attack",
}


@dataclass
class PendingDetection:
    turn: int
    proposal: Proposal
    delay: int


def detection_delay(risk: float) -> int:
    """Louder actions surface sooner: 5 turns below risk 20, 1 turn at 80+."""
    if risk < 20:
        return MAX_DETECTION_DELAY
    if risk < 40:
        return 4
    if risk < 60:
        return 3
    if risk < 80:
        return 2
    return MIN_DETECTION_DELAY


class RealisticDetectionSystem:
    """Schedules and resolves delayed detections, deduplicated per proposal id."""

    def __init__(self, rng: np.random.Generator, balance: Optional[GameBalance] = None) -> None:
        self._rng = rng
        rates = balance.realistic_detection if balance else {}
        self.false_positive_rate = rates.get("false_positive_rate", 0.15)
        self.false_negative_rate = rates.get("false_negative_rate", 0.40)
        self._pending: List[PendingDetection] = []
        self._detected_ids: Set[str] = set()

    # ── Risk model ───────────────────────────────

    @staticmethod
    def detection_efficiency(state: WorldState) -> float:
        p = state.protection
        efficiency = 1.0
        if p.consecutive_high_intensity > 3:
            efficiency = 0.7
        if p.burnout_level > 80:
            efficiency *= 0.5
        if p.recent_false_positives > 5:
            efficiency *= 0.8
        return efficiency

    def visibility_traceability(self, proposal: Proposal, state: WorldState) -> Tuple[float, float]:
        if proposal.action_type is ActionType.HACK_DATACENTER:
            target = state.get_data_center(proposal.target)
            if target is None:
                return 0.0, 0.0
            visibility, traceability = target.security / 2 + proposal.intensity * 0.2, 50.0
        elif proposal.action_type in _PROFILES:
            vis_fn, traceability = _PROFILES[proposal.action_type]
            visibility = vis_fn(proposal.intensity)
        else:
            return 0.0, 0.0
        visibility *= (1 + state.protection.alert_level / 200) * self.detection_efficiency(state)
        return visibility, float(traceability)

    def calculate_detection_risk(self, proposal: Proposal, state: WorldState) -> float:
        visibility, traceability = self.visibility_traceability(proposal, state)
        return max(0.0, (visibility + traceability) / 2)

    # ── Scheduling ───────────────────────────────

    @property
    def pending(self) -> List[PendingDetection]:
        return list(self._pending)

    def was_detected(self, proposal_id: str) -> bool:
        return proposal_id in self._detected_ids

    def schedule_detection(self, proposal: Proposal, state: WorldState) -> int:
        """Queue a detection attempt; returns the delay in turns."""
        risk = self.calculate_detection_risk(proposal, state)
        delay = detection_delay(risk)
        self._pending.append(PendingDetection(turn=state.turn, proposal=proposal, delay=delay))
        return delay

    def process_delayed_detections(self, current_turn: int) -> List[GameEvent]:
        events: List[GameEvent] = []
        still_pending: List[PendingDetection] = []
        for pending in self._pending:
            if current_turn - pending.turn < pending.delay:
                still_pending.append(pending)
                continue
            proposal_id = pending.proposal.id
            if proposal_id in self._detected_ids:
                continue
            if self._rng.random() < self.false_negative_rate:
                logger.debug("Delayed detection of %s missed", proposal_id)
                continue
            self._detected_ids.add(proposal_id)
            action = pending.proposal.action_type
            events.append(make_event(
                current_turn,
                EventType.DETECTION,
                f"[delayed] Suspicious activity from {pending.delay} turn(s) ago: "
                f"{_DESCRIPTIONS.get(action, 'unusual activity')}",
                [AgentType.PROTECTION],
                {
                    "original_turn": pending.turn,
                    "delay": pending.delay,
                    "action_type": action.value,
                    "proposal_id": proposal_id,
                },
            ))
        self._pending = still_pending

        if self._rng.random() < self.false_positive_rate / 10:
            events.append(make_event(
                current_turn,
                EventType.DETECTION,
                "[false positive] Normal traffic flagged as a threat; investigation resources wasted",
                [AgentType.PROTECTION],
                {"false_positive": True},
            ))
        return events
