"""Tests for the immediate detection system and the shared risk interface."""

import numpy as np
import pytest

from world_server.detection import DetectionSystem
from world_server.realistic_detection import RealisticDetectionSystem
from world_server.risk import RiskEvaluator, logistic
from world_server.schemas import ActionType, DetectionOutcome, EventType, GameConfig
from world_server.state import GameState


@pytest.fixture
def detection(game_state):
    return DetectionSystem(game_state, np.random.default_rng(0))


# ── Risk model ───────────────────────────────────

class TestRiskModel:
    def test_sigmoid_is_half_at_center(self, detection):
        assert detection.critical_probability(95) == pytest.approx(0.5)

    def test_logistic_monotonic(self):
        assert logistic(50, 95, 20) < logistic(95, 95, 20) < logistic(120, 95, 20)

    def test_hack_risk_uses_target_security(self, game_state, detection, make_proposal):
        game_state.update_data_center_security("dc-0", 1_000)
        game_state.update_data_center_security("dc-0", -10)
        p = make_proposal(ActionType.HACK_DATACENTER, intensity=50, target="dc-0")
        assert detection.calculate_detection_risk(p, game_state.state) == pytest.approx(90 / 3 + 7.5)

    def test_alert_level_amplifies_risk(self, game_state, detection, make_proposal):
        p = make_proposal(ActionType.SPREAD_MALWARE, intensity=50)
        base = detection.calculate_detection_risk(p, game_state.state)
        game_state.update_alert_level(75)
        assert detection.calculate_detection_risk(p, game_state.state) == pytest.approx(base * 1.5)

    def test_quiet_actions_carry_no_immediate_risk(self, game_state, detection, make_proposal):
        p = make_proposal(ActionType.OBSERVE_ONLY)
        assert detection.calculate_detection_risk(p, game_state.state) == 0.0

    def test_both_detectors_are_risk_evaluators(self, game_state, detection):
        assert isinstance(detection, RiskEvaluator)
        assert isinstance(RealisticDetectionSystem(np.random.default_rng(0)), RiskEvaluator)


# ── Tiered check ─────────────────────────────────

class TestDetectionCheck:
    def test_no_risk_no_events(self, detection):
        result = detection.perform_detection_check()
        assert result.outcome is DetectionOutcome.NONE
        assert result.events == []

    def test_moderate_tier_raises_alert(self, game_state, detection):
        game_state.update_detection_risk(80)
        result = detection.perform_detection_check()
        assert not result.detected
        assert result.events[0].metadata["severity"] == "moderate"
        assert game_state.state.protection.alert_level == pytest.approx(15.0)

    def test_minor_tier_raises_alert(self, game_state, detection):
        game_state.update_detection_risk(60)
        result = detection.perform_detection_check()
        assert not result.detected
        assert result.events[0].metadata["severity"] == "minor"
        assert game_state.state.protection.alert_level == pytest.approx(5.0)

    def test_below_floor_is_never_terminal(self, game_state, detection):
        game_state.update_detection_risk(84)
        for _ in range(200):
            assert detection.perform_detection_check().outcome is DetectionOutcome.NONE

    def test_max_risk_eventually_terminal(self, game_state, detection):
        game_state.update_detection_risk(100)
        outcomes = [detection.perform_detection_check().outcome for _ in range(50)]
        assert DetectionOutcome.TERMINAL in outcomes

    def test_critical_rate_near_sigmoid(self):
        gs = GameState(GameConfig(random_seed=0))
        det = DetectionSystem(gs, np.random.default_rng(123))
        gs.update_detection_risk(95)
        hits = sum(1 for _ in range(4000) if det.perform_detection_check().detected)
        # Every miss at risk 95 raises the alert, never the risk itself.
        assert 0.45 < hits / 4000 < 0.55


# ── Population anomaly ───────────────────────────

class TestPopulationAnomaly:
    def test_small_loss_is_invisible(self, game_state, detection):
        game_state.update_population(-4)  # 5%
        assert detection.check_population_anomaly().outcome is DetectionOutcome.NONE

    def test_midpoint_loss_is_a_coin_flip(self, game_state, detection):
        game_state.update_population(-12)  # 15%
        hits = sum(1 for _ in range(4000) if detection.check_population_anomaly().detected)
        assert 0.45 < hits / 4000 < 0.55

    def test_large_loss_is_certain(self, game_state, detection):
        game_state.update_population(-24)  # 30%
        result = detection.check_population_anomaly()
        assert result.outcome is DetectionOutcome.TERMINAL
        assert result.events[0].type is EventType.DETECTION


# ── Investigations ───────────────────────────────

class TestInvestigation:
    def test_only_investigations_qualify(self, detection, make_proposal):
        p = make_proposal(ActionType.SCAN_NETWORK)
        assert detection.investigation_check(p, [make_proposal(ActionType.SPREAD_MALWARE)]) == (False, [])

    def test_nothing_to_find(self, detection, make_proposal):
        p = make_proposal(ActionType.INVESTIGATE_ANOMALY, intensity=100)
        assert detection.investigation_check(p, []) == (False, [])

    def test_same_target_can_be_found(self, game_state, make_proposal):
        det = DetectionSystem(game_state, np.random.default_rng(5))
        inquiry = make_proposal(ActionType.INVESTIGATE_ANOMALY, intensity=100, target="dc-1")
        attack = make_proposal(ActionType.HACK_DATACENTER, target="dc-1", description="beacon traffic")
        found = [det.investigation_check(inquiry, [attack]) for _ in range(50)]
        hits = [events for ok, events in found if ok]
        assert hits
        assert "beacon traffic" in hits[0][0].description
