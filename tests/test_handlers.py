"""Tests for individual action handlers, called through a bare ActionContext."""

import numpy as np
import pytest

from world_server.detection import DetectionSystem
from world_server.handlers import ACTION_HANDLERS, get_handler
from world_server.handlers.context import ActionContext
from world_server.handlers.human import apply_public_opinion, data_center_trust_erosion
from world_server.realistic_detection import RealisticDetectionSystem
from world_server.schemas import (
    DESTRUCTION_ACTIONS,
    HUMAN_ACTIONS,
    PROTECTION_ACTIONS,
    ActionType,
    AgentType,
    EventType,
    actor_for,
)


def _ctx(game_state, proposal, seed=0, **kwargs):
    return ActionContext(proposal=proposal, game_state=game_state, rng=np.random.default_rng(seed), **kwargs)


class TestRegistry:
    def test_every_action_has_a_handler(self):
        assert set(ACTION_HANDLERS) == set(ActionType)

    def test_actor_families_partition_the_catalogue(self):
        families = [HUMAN_ACTIONS, PROTECTION_ACTIONS, DESTRUCTION_ACTIONS]
        assert sum(len(f) for f in families) == len(ActionType)
        assert all(actor_for(a) is AgentType.DESTRUCTION for a in DESTRUCTION_ACTIONS)

    def test_lookup(self):
        assert get_handler(ActionType.SCAN_NETWORK) is ACTION_HANDLERS[ActionType.SCAN_NETWORK]


# ── Destruction ──────────────────────────────────

class TestHackDatacenter:
    def test_success_rate_against_hardened_target(self, game_state, make_proposal):
        game_state.update_data_center_security("dc-0", 1_000)  # security 100
        dc = game_state.state.get_data_center("dc-0")
        proposal = make_proposal(ActionType.HACK_DATACENTER, intensity=50, target="dc-0")
        ctx = _ctx(game_state, proposal, seed=2024)
        hack = get_handler(ActionType.HACK_DATACENTER)

        successes = 0
        for _ in range(10_000):
            events = hack(ctx)
            if events[0].type is EventType.SUCCESS:
                successes += 1
                dc.compromised = False
                dc.owner = None
        assert 0.30 <= successes / 10_000 <= 0.37

    def test_success_transfers_control(self, game_state, make_proposal):
        game_state.update_data_center_security("dc-1", -1_000)  # security 0
        power = game_state.state.get_data_center("dc-1").compute_power
        hack = get_handler(ActionType.HACK_DATACENTER)
        events = hack(_ctx(game_state, make_proposal(ActionType.HACK_DATACENTER, target="dc-1")))
        assert events[0].type is EventType.SUCCESS
        assert game_state.state.destruction.controlled_data_centers == ["dc-1"]
        assert game_state.state.destruction.compute_resources == pytest.approx(100 + power)
        assert game_state.state.destruction.score == pytest.approx(50 + power * 0.1)

    def test_already_compromised_is_noop(self, game_state, make_proposal):
        game_state.compromise_data_center("dc-1")
        hack = get_handler(ActionType.HACK_DATACENTER)
        assert hack(_ctx(game_state, make_proposal(ActionType.HACK_DATACENTER, target="dc-1"))) == []


class TestDelayedActions:
    @pytest.mark.parametrize("action,low,high", [
        (ActionType.MICRO_SABOTAGE, 3, 5),
        (ActionType.SLEEPER_CELL_DEPLOYMENT, 5, 10),
    ])
    def test_schedules_in_window(self, game_state, make_proposal, action, low, high):
        for seed in range(20):
            get_handler(action)(_ctx(game_state, make_proposal(action), seed=seed))
        triggers = [e.trigger_turn for e in game_state.state.delayed_effects]
        assert len(triggers) == 20
        assert all(low <= t <= high for t in triggers)

    def test_covert_action_schedules_detection(self, game_state, make_proposal):
        detector = RealisticDetectionSystem(np.random.default_rng(0))
        proposal = make_proposal(ActionType.POISON_TRAINING_DATA, intensity=40)
        get_handler(ActionType.POISON_TRAINING_DATA)(_ctx(game_state, proposal, realistic_detection=detector))
        assert [p.proposal.id for p in detector.pending] == [proposal.id]


class TestDormancy:
    def test_long_silence_becomes_suspicious(self, game_state, make_proposal):
        dormant = get_handler(ActionType.DORMANT_MODE)
        for _ in range(2):
            events = dormant(_ctx(game_state, make_proposal(ActionType.DORMANT_MODE, intensity=0)))
            assert all(e.type is EventType.ACTION for e in events)
        events = dormant(_ctx(game_state, make_proposal(ActionType.DORMANT_MODE, intensity=0)))
        assert events[0].metadata["silence_detection"]
        assert game_state.state.destruction.detection_risk == pytest.approx(15.0)


class TestBotnet:
    def test_expansion_draws_from_legacy_pool(self, game_state, make_proposal):
        pool = game_state.state.legacy_device_pool
        get_handler(ActionType.BOTNET_EXPANSION)(_ctx(game_state, make_proposal(ActionType.BOTNET_EXPANSION, intensity=50)))
        d = game_state.state.destruction
        assert d.botnet_size == pytest.approx(10_000_000 * 0.7 + 10_000_000 * 0.03)
        assert game_state.state.legacy_device_pool == pytest.approx(pool - 7_000_000)

    def test_consolidation_trades_size_for_quality(self, game_state, make_proposal):
        game_state.update_botnet_size(10_000_000)
        get_handler(ActionType.BOTNET_CONSOLIDATION)(
            _ctx(game_state, make_proposal(ActionType.BOTNET_CONSOLIDATION, intensity=50)),
        )
        d = game_state.state.destruction
        assert d.botnet_quality == pytest.approx(0.6)
        assert d.botnet_size == pytest.approx(9_500_000)

    def test_attack_needs_a_botnet(self, game_state, make_proposal):
        events = get_handler(ActionType.BOTNET_ATTACK)(_ctx(game_state, make_proposal(ActionType.BOTNET_ATTACK)))
        assert events[0].type is EventType.FAILURE

    def test_targeted_attack_degrades_security(self, game_state, make_proposal):
        game_state.update_botnet_size(20_000_000)
        game_state.update_data_center_security("dc-2", 1_000)
        events = get_handler(ActionType.BOTNET_ATTACK)(
            _ctx(game_state, make_proposal(ActionType.BOTNET_ATTACK, intensity=100, target="dc-2")),
        )
        # 20M bots at quality 0.5 and full intensity
        assert game_state.state.get_data_center("dc-2").security == pytest.approx(90.0)
        assert events[1].visible_to(AgentType.HUMAN)


# ── Protection ───────────────────────────────────

class TestProtection:
    def test_scan_lowers_risk_and_raises_alert(self, game_state, make_proposal):
        game_state.update_detection_risk(30)
        get_handler(ActionType.SCAN_NETWORK)(_ctx(game_state, make_proposal(ActionType.SCAN_NETWORK, intensity=50)))
        assert game_state.state.destruction.detection_risk == pytest.approx(20.0)
        assert game_state.state.protection.alert_level == pytest.approx(10.0)

    def test_patch_refused_at_low_trust(self, game_state, make_proposal):
        game_state.update_human_trust(-30)
        events = get_handler(ActionType.PATCH_VULNERABILITY)(
            _ctx(game_state, make_proposal(ActionType.PATCH_VULNERABILITY)),
        )
        assert events[0].metadata["action_rejected"]
        assert game_state.state.protection.recent_patches == 0

    def test_investigation_records_threat(self, game_state, make_proposal):
        detection = DetectionSystem(game_state, np.random.default_rng(0))
        attack = make_proposal(ActionType.SPREAD_MALWARE, description="worm")
        inquiry = make_proposal(ActionType.INVESTIGATE_ANOMALY, intensity=100)
        investigate = get_handler(ActionType.INVESTIGATE_ANOMALY)
        for seed in range(30):
            investigate(_ctx(game_state, inquiry, seed=seed, detection=detection, destruction_proposals=[attack]))
            if game_state.state.protection.known_threats:
                break
        assert game_state.state.protection.known_threats
        assert game_state.state.protection.alert_level >= 20

    def test_alert_with_high_trust(self, game_state, make_proposal):
        game_state.update_human_trust(20)
        get_handler(ActionType.ALERT_HUMANS)(_ctx(game_state, make_proposal(ActionType.ALERT_HUMANS)))
        assert game_state.state.destruction.detection_risk == pytest.approx(40.0)


# ── Human ────────────────────────────────────────

class TestHuman:
    def test_invest_infra_builds_and_raises_price(self, game_state, make_proposal):
        get_handler(ActionType.INVEST_INFRA)(_ctx(game_state, make_proposal(ActionType.INVEST_INFRA)))
        s = game_state.state
        assert len(s.data_centers) in (22, 23)
        assert s.economic_model.global_budget == pytest.approx(450.0)
        assert s.economic_model.infrastructure_cost == pytest.approx(60.0)
        assert s.human.last_infra_turn == 0

    def test_invest_infra_without_budget(self, game_state, make_proposal):
        game_state.update_budget(-480)
        events = get_handler(ActionType.INVEST_INFRA)(_ctx(game_state, make_proposal(ActionType.INVEST_INFRA)))
        assert events[0].type is EventType.FAILURE
        assert len(game_state.state.data_centers) == 20

    def test_internet_shutdown_is_a_draw(self, game_state, make_proposal):
        get_handler(ActionType.INTERNET_SHUTDOWN)(_ctx(game_state, make_proposal(ActionType.INTERNET_SHUTDOWN)))
        assert game_state.state.game_over
        assert game_state.state.winner is None


class TestSentiment:
    def test_more_data_centers_erode_more_trust(self):
        assert data_center_trust_erosion(40, []) > data_center_trust_erosion(20, [])

    def test_negative_coverage_lowers_trust(self, game_state):
        for _ in range(20):
            game_state.record_media_sentiment(-60)
        apply_public_opinion(game_state)
        assert game_state.state.human.trust < 60
        assert game_state.state.human.panic > 10
