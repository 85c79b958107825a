"""Immediate, turn-synchronous detection of the destruction actor."""

import logging
from typing import List, Optional, Tuple

import numpy as np

from world_server.balance import GameBalance
from world_server.risk import logistic
from world_server.schemas import (
    ActionType,
    AgentType,
    DetectionOutcome,
    DetectionResult,
    EventType,
    GameEvent,
    Proposal,
    WorldState,
    make_event,
)
from world_server.state import GameState

logger = logging.getLogger(__name__)

# (base, per-intensity) risk terms for actions with a flat formula.
_FLAT_RISK = {
    ActionType.SPREAD_MALWARE: (10.0, 0.2),
    ActionType.SPREAD_MISINFORMATION: (3.0, 0.1),
    ActionType.SUBTLE_SABOTAGE: (2.0, 0.08),
    ActionType.EXPAND_RESOURCES: (6.0, 0.15),
}

INVESTIGATION_CORRELATION_CHANCE = 0.3


class DetectionSystem:
    """Three-tier risk check, population anomaly check and investigations."""

    def __init__(
        self,
        game_state: GameState,
        rng: np.random.Generator,
        balance: Optional[GameBalance] = None,
    ) -> None:
        self._game_state = game_state
        self._rng = rng
        cfg = (balance or game_state.balance).detection
        self.sigmoid_center = cfg.get("sigmoid_center", 95.0)
        self.sigmoid_scale = cfg.get("sigmoid_scale", 20.0)
        self.critical_floor = cfg.get("critical_floor", 85.0)
        self.moderate_threshold = cfg.get("moderate_threshold", 70.0)
        self.minor_threshold = cfg.get("minor_threshold", 50.0)
        self.alert_divisor = cfg.get("alert_divisor", 150.0)

    def calculate_detection_risk(self, proposal: Proposal, state: WorldState) -> float:
        risk = 0.0
        if proposal.action_type is ActionType.HACK_DATACENTER:
            target = state.get_data_center(proposal.target)
            if target is not None:
                risk = target.security / 3 + proposal.intensity * 0.15
        elif proposal.action_type in _FLAT_RISK:
            base, per_intensity = _FLAT_RISK[proposal.action_type]
            risk = base + proposal.intensity * per_intensity
        return max(0.0, risk * (1 + state.protection.alert_level / self.alert_divisor))

    def critical_probability(self, detection_risk: float) -> float:
        return logistic(detection_risk, self.sigmoid_center, self.sigmoid_scale)

    def perform_detection_check(self) -> DetectionResult:
        """Evaluate accumulated detection risk.

        The sigmoid roll is always drawn; it only counts as a critical hit
        when risk is at or above the critical floor.  Otherwise the moderate
        and minor tiers raise the alert level without ending the game.
        """
        state = self._game_state.state
        risk = state.destruction.detection_risk
        probability = self.critical_probability(risk)
        roll = float(self._rng.random())

        if roll < probability and risk >= self.critical_floor:
            logger.debug("Critical detection: risk=%.1f roll=%.3f p=%.3f", risk, roll, probability)
            event = make_event(
                state.turn,
                EventType.DETECTION,
                "Critical security breach detected: system integrity compromised",
                [AgentType.PROTECTION, AgentType.DESTRUCTION],
                {"detection_risk": risk, "roll": roll, "probability": probability, "severity": "critical"},
            )
            return DetectionResult(outcome=DetectionOutcome.TERMINAL, events=[event])

        events: List[GameEvent] = []
        if risk >= self.moderate_threshold:
            severity = "high" if risk >= self.critical_floor else "medium"
            events.append(make_event(
                state.turn,
                EventType.ACTION,
                f"Serious anomaly pattern detected (severity: {severity}); full system audit started",
                [AgentType.PROTECTION],
                {"detection_risk": risk, "severity": "moderate"},
            ))
            self._game_state.update_alert_level(15)
        elif risk >= self.minor_threshold:
            events.append(make_event(
                state.turn,
                EventType.ACTION,
                "Minor anomalous traffic observed; monitoring continues",
                [AgentType.PROTECTION],
                {"detection_risk": risk, "severity": "minor"},
            ))
            self._game_state.update_alert_level(5)
        return DetectionResult(events=events)

    def check_population_anomaly(self) -> DetectionResult:
        """Unexplained population loss becomes detectable past 5% and certain at 25%."""
        state = self._game_state.state
        initial = state.initial_population
        if initial <= 0:
            return DetectionResult()
        loss = (initial - state.human_population) / initial * 100
        if loss <= 5:
            return DetectionResult()

        probability = (loss - 5) / 20
        if self._rng.random() < probability:
            event = make_event(
                state.turn,
                EventType.DETECTION,
                f"Statistical anomaly: unexplained population decline of {loss:.1f}%; auditing all systems",
                [AgentType.PROTECTION, AgentType.DESTRUCTION],
                {"population_loss": loss, "detection_probability": probability},
            )
            return DetectionResult(outcome=DetectionOutcome.TERMINAL, events=[event])

        events: List[GameEvent] = []
        if loss > 10:
            events.append(make_event(
                state.turn,
                EventType.ACTION,
                "Abnormal demographic trend; investigation committee formed",
                [AgentType.PROTECTION],
                {"population_loss": loss},
            ))
        return DetectionResult(events=events)

    def investigation_check(
        self,
        proposal: Proposal,
        destruction_proposals: List[Proposal],
    ) -> Tuple[bool, List[GameEvent]]:
        """Look for evidence of this turn's destruction proposals.

        A destruction proposal is relevant when it hit the same target or,
        by coincidental correlation, with a flat 30% chance.
        """
        if proposal.action_type is not ActionType.INVESTIGATE_ANOMALY:
            return False, []
        state = self._game_state.state
        relevant = [
            p for p in destruction_proposals
            if p.target == proposal.target or self._rng.random() < INVESTIGATION_CORRELATION_CHANCE
        ]
        if not relevant:
            return False, []

        probability = 0.2 + (proposal.intensity / 100) * 0.5
        if self._rng.random() >= probability:
            return False, []

        evidence = relevant[0]
        event = make_event(
            state.turn,
            EventType.SUCCESS,
            f"Investigation uncovered a suspicious activity pattern: {evidence.description}",
            [AgentType.PROTECTION],
            {"evidence_type": evidence.action_type.value},
        )
        return True, [event]
