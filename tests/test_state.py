"""Tests for the GameState store: clamping, ownership, delayed effects, snapshots."""

import json
import os

import numpy as np
import pytest

from world_server.schemas import ActionType, AgentType, DelayedEffect, GameConfig
from world_server.state import GameState


# ── Initialization ───────────────────────────────

class TestInitialState:
    def test_data_center_count_and_ids(self, game_state):
        ids = [dc.id for dc in game_state.state.data_centers]
        assert ids == [f"dc-{i}" for i in range(20)]

    def test_same_seed_same_world(self):
        a = GameState(GameConfig(random_seed=3))
        b = GameState(GameConfig(random_seed=3))
        assert a.state.to_dict() == b.state.to_dict()

    def test_starting_resources_from_balance(self, game_state):
        s = game_state.state
        assert s.destruction.compute_resources == pytest.approx(100.0)
        assert s.protection.compute_resources == pytest.approx(300.0)
        assert s.human_population == pytest.approx(80.0)

    def test_no_human_actor_when_disabled(self):
        gs = GameState(GameConfig(random_seed=1, enable_human_agent=False))
        assert gs.state.human is None
        gs.update_human_panic(50)
        assert gs.state.human is None


# ── Clamping ─────────────────────────────────────

class TestClamping:
    def test_resources_never_negative(self, game_state):
        game_state.update_destruction_resources(-10_000)
        game_state.update_protection_resources(-10_000)
        assert game_state.state.destruction.compute_resources == 0.0
        assert game_state.state.protection.compute_resources == 0.0

    def test_score_bounded(self, game_state):
        game_state.update_score(AgentType.DESTRUCTION, 5_000)
        assert game_state.state.destruction.score == pytest.approx(1000.0)
        game_state.update_score(AgentType.DESTRUCTION, -1e9)
        assert game_state.state.destruction.score == 0.0

    def test_percentages_bounded(self, game_state):
        for delta in (500, -500, 250):
            game_state.update_detection_risk(delta)
            game_state.update_alert_level(delta)
            game_state.update_burnout(delta)
            game_state.update_human_panic(delta)
            game_state.update_human_trust(delta)
            game_state.update_social_division(delta)
            game_state.update_ai_dependency(delta)
            s = game_state.state
            for value in (
                s.destruction.detection_risk, s.protection.alert_level, s.protection.burnout_level,
                s.human.panic, s.human.trust, s.social_division, s.ai_dependency,
            ):
                assert 0.0 <= value <= 100.0

    def test_data_center_security_bounded(self, game_state):
        game_state.update_data_center_security("dc-0", 1_000)
        assert game_state.state.get_data_center("dc-0").security == 100.0
        game_state.update_data_center_security("dc-0", -1_000)
        assert game_state.state.get_data_center("dc-0").security == 0.0

    def test_media_sentiment_window(self, game_state):
        for i in range(60):
            game_state.record_media_sentiment(500 if i == 59 else -10)
        assert len(game_state.state.media_sentiment) == 50
        assert game_state.state.media_sentiment[-1] == 100.0


# ── Alert fatigue ────────────────────────────────

class TestIntensityTracking:
    def test_high_intensity_builds_burnout(self, game_state):
        for _ in range(3):
            game_state.record_intensity(80)
        p = game_state.state.protection
        assert p.consecutive_high_intensity == 3
        assert p.burnout_level == pytest.approx(15.0)

    def test_low_intensity_resets_streak(self, game_state):
        game_state.record_intensity(80)
        game_state.record_intensity(30)
        assert game_state.state.protection.consecutive_high_intensity == 0


# ── Data centers ─────────────────────────────────

class TestDataCenters:
    def test_compromise_sets_owner_and_control(self, game_state):
        assert game_state.compromise_data_center("dc-3")
        dc = game_state.state.get_data_center("dc-3")
        assert dc.compromised and dc.owner is AgentType.DESTRUCTION
        assert game_state.state.destruction.controlled_data_centers == ["dc-3"]

    def test_compromise_twice_is_refused(self, game_state):
        game_state.compromise_data_center("dc-3")
        assert not game_state.compromise_data_center("dc-3")
        assert game_state.state.destruction.controlled_data_centers == ["dc-3"]

    def test_compromise_unknown_is_refused(self, game_state):
        assert not game_state.compromise_data_center("dc-404")

    def test_remove_drops_control(self, game_state):
        game_state.compromise_data_center("dc-1")
        removed = game_state.remove_data_center("dc-1")
        assert removed is not None and removed.id == "dc-1"
        assert game_state.state.get_data_center("dc-1") is None
        assert game_state.state.destruction.controlled_data_centers == []

    def test_built_ids_are_never_reused(self, game_state):
        game_state.remove_data_center("dc-19")
        dc = game_state.build_data_center()
        assert dc.id == "dc-20"
        assert dc.age == 0
        assert 40 <= dc.security <= 60


# ── Delayed effects ──────────────────────────────

class TestDelayedEffects:
    def test_pop_returns_only_due_effects(self, game_state):
        game_state.add_delayed_effect(DelayedEffect(3, ActionType.MICRO_SABOTAGE, 30, "a"))
        game_state.add_delayed_effect(DelayedEffect(5, ActionType.SLEEPER_CELL_DEPLOYMENT, 30, "b"))
        due = game_state.pop_due_delayed_effects(3)
        assert [e.description for e in due] == ["a"]
        assert [e.description for e in game_state.state.delayed_effects] == ["b"]
        assert game_state.pop_due_delayed_effects(3) == []


# ── Lifecycle ────────────────────────────────────

class TestEndGame:
    def test_first_result_sticks(self, game_state):
        game_state.end_game(AgentType.PROTECTION)
        game_state.end_game(AgentType.DESTRUCTION)
        assert game_state.state.winner is AgentType.PROTECTION

    def test_force_overrides(self, game_state):
        game_state.end_game(AgentType.PROTECTION)
        game_state.end_game(AgentType.DESTRUCTION, force=True)
        assert game_state.state.winner is AgentType.DESTRUCTION

    def test_draw(self, game_state):
        game_state.end_game(None)
        assert game_state.state.game_over
        assert game_state.state.winner is None


# ── Persistence ──────────────────────────────────

class TestSnapshots:
    def test_save_load_roundtrip(self, game_state, tmp_path):
        game_state.compromise_data_center("dc-2")
        game_state.set_last_action(ActionType.AI_REGULATION)
        game_state.add_delayed_effect(DelayedEffect(4, ActionType.MICRO_SABOTAGE, 20, "x"))
        path = str(tmp_path / "world.json")
        game_state.save(path)

        restored = GameState.load(path)
        assert restored.state.to_dict() == game_state.state.to_dict()
        assert restored.state.human.last_action is ActionType.AI_REGULATION

    def test_snapshot_path_from_config(self, tmp_path):
        path = tmp_path / "snap.json"
        gs = GameState(GameConfig(random_seed=1, snapshot_path=str(path)))
        gs.save()
        with open(path) as f:
            data = json.load(f)
        assert data["turn"] == 0
        assert len(data["data_centers"]) == 20

    def test_save_without_path_is_noop(self, tmp_path):
        gs = GameState(GameConfig(random_seed=1))
        gs.save()
        assert os.listdir(tmp_path) == []

    def test_save_to_missing_directory_raises(self, game_state, tmp_path):
        with pytest.raises(OSError):
            game_state.save(str(tmp_path / "nope" / "world.json"))

    def test_injected_rng_is_used(self):
        rng = np.random.default_rng(9)
        a = GameState(GameConfig(), rng=rng)
        b = GameState(GameConfig(random_seed=9))
        assert a.state.to_dict() == b.state.to_dict()
