"""Tests for the rule-based policies, the Monte Carlo harness and balance reports."""

import json
import os

import numpy as np
import pytest

from simulation.monte_carlo import MonteCarloSimulator, analyze_balance, results_frame, run_single_game
from simulation.policies import DestructionPolicy, HumanPolicy, ProtectionPolicy
from simulation.report import SimulationResult, generate_recommendations, plot_win_rates, save_report
from utils.save import load_variable_dict, load_variable_list_dict
from world_server.schemas import ActionType, GameConfig
from world_server.state import GameState


def _result(game_id, winner, turns=30, final_population=70.0, d_score=100.0, p_score=100.0):
    return SimulationResult(
        game_id=game_id,
        seed=game_id,
        winner=winner,
        turns=turns,
        initial_population=80.0,
        final_population=final_population,
        destruction_score=d_score,
        protection_score=p_score,
        compromised_data_centers=0,
        detection_risk=10.0,
    )


# ── Policies ─────────────────────────────────────

class TestPolicies:
    def test_destruction_hides_when_risk_high(self, game_state):
        game_state.update_detection_risk(80)
        assert DestructionPolicy().propose(game_state.state, np.random.default_rng(0)) == []

    def test_destruction_hacks_weak_target_when_poor(self, game_state):
        weak = next(dc for dc in game_state.state.data_centers if dc.security < 50)
        proposals = DestructionPolicy().propose(game_state.state, np.random.default_rng(0))
        assert [p.action_type for p in proposals] == [ActionType.HACK_DATACENTER]
        assert proposals[0].target == weak.id

    def test_destruction_sabotages_when_rich(self, game_state):
        game_state.update_destruction_resources(200)
        proposals = DestructionPolicy().propose(game_state.state, np.random.default_rng(0))
        assert [p.action_type for p in proposals] == [ActionType.SUBTLE_SABOTAGE]

    def test_agent_ids_are_anonymous(self, game_state):
        game_state.update_destruction_resources(200)
        rng = np.random.default_rng(0)
        proposal = DestructionPolicy().propose(game_state.state, rng)[0]
        assert proposal.agent_id.startswith("anon-")
        assert "destruction" not in proposal.agent_id

    def test_protection_scans_every_third_turn(self, game_state):
        policy = ProtectionPolicy()
        actions = [p.action_type for p in policy.propose(game_state.state, np.random.default_rng(0))]
        assert actions == [ActionType.SCAN_NETWORK, ActionType.PATCH_VULNERABILITY]
        game_state.advance_turn()
        actions = [p.action_type for p in policy.propose(game_state.state, np.random.default_rng(0))]
        assert actions == [ActionType.PATCH_VULNERABILITY]

    def test_protection_investigates_on_population_loss(self, game_state):
        game_state.advance_turn()
        game_state.update_population(-4)
        policy = ProtectionPolicy()
        actions = [p.action_type for p in policy.propose(game_state.state, np.random.default_rng(0))]
        assert actions == [ActionType.INVESTIGATE_ANOMALY]
        assert policy.suspicion == pytest.approx(35.0)

    def test_suspicion_decays(self, game_state):
        policy = ProtectionPolicy()
        policy.suspicion = 50
        policy.update_suspicion(game_state.state)
        assert policy.suspicion == pytest.approx(45.0)

    def test_human_shuts_down_in_panic(self, game_state):
        game_state.update_human_panic(85)
        proposals = HumanPolicy().propose(game_state.state, np.random.default_rng(0))
        assert [p.action_type for p in proposals] == [ActionType.INTERNET_SHUTDOWN]

    def test_human_isolates_compromised_dc(self, game_state):
        game_state.update_human_panic(50)  # 60
        game_state.compromise_data_center("dc-7")
        proposals = HumanPolicy().propose(game_state.state, np.random.default_rng(0))
        assert [(p.action_type, p.target) for p in proposals] == [(ActionType.PHYSICAL_ISOLATION, "dc-7")]

    def test_human_invests_when_calm(self, game_state):
        proposals = HumanPolicy().propose(game_state.state, np.random.default_rng(0))
        assert [p.action_type for p in proposals] == [ActionType.INVEST_INFRA]
        game_state.set_last_infra_turn(0)
        assert HumanPolicy().propose(game_state.state, np.random.default_rng(0)) == []

    def test_no_human_actor_no_proposals(self):
        gs = GameState(GameConfig(random_seed=0, enable_human_agent=False))
        assert HumanPolicy().propose(gs.state, np.random.default_rng(0)) == []


# ── Single game ──────────────────────────────────

class TestRunSingleGame:
    def test_game_finishes_within_limit(self):
        result = run_single_game(0, GameConfig(random_seed=5, max_turns=10))
        assert result.turns <= 10
        assert result.winner in (None, "DESTRUCTION", "PROTECTION")
        assert result.seed == 5

    def test_reproducible(self):
        config = GameConfig(random_seed=8, max_turns=20)
        assert run_single_game(1, config) == run_single_game(1, config)

    def test_without_humans(self):
        result = run_single_game(0, GameConfig(random_seed=2, max_turns=10, enable_human_agent=False))
        assert result.human_panic is None and result.human_trust is None


# ── Harness ──────────────────────────────────────

class TestMonteCarloSimulator:
    def test_per_game_seeds(self):
        sim = MonteCarloSimulator(num_games=3, base_seed=100)
        assert [sim.game_config(i).random_seed for i in range(3)] == [100, 101, 102]
        assert MonteCarloSimulator(base_seed=None).game_config(4).random_seed is None

    def test_snapshot_disabled_for_workers(self, tmp_path):
        sim = MonteCarloSimulator(config=GameConfig(snapshot_path=str(tmp_path / "x.json")))
        assert sim.game_config(0).snapshot_path is None

    def test_sequential_matches_direct_calls(self):
        config = GameConfig(max_turns=8)
        sim = MonteCarloSimulator(num_games=3, base_seed=7, config=config)
        results = sim.run_sequential()
        assert [r.game_id for r in results] == [0, 1, 2]
        assert results[1] == run_single_game(1, sim.game_config(1))

    def test_failed_games_are_excluded(self, monkeypatch):
        import simulation.monte_carlo as mc

        real = mc.run_single_game

        def flaky(game_id, config, balance=None):
            if game_id == 1:
                raise RuntimeError("boom")
            return real(game_id, config, balance)

        monkeypatch.setattr(mc, "run_single_game", flaky)
        sim = MonteCarloSimulator(num_games=3, base_seed=0, config=GameConfig(max_turns=5))
        results = sim.run_sequential()
        assert [r.game_id for r in results] == [0, 2]
        assert sim.failures == 1

    def test_cancel_stops_sequential_run(self, monkeypatch):
        import simulation.monte_carlo as mc

        sim = MonteCarloSimulator(num_games=5, base_seed=0, config=GameConfig(max_turns=5))
        real = mc.run_single_game

        def cancel_after_first(game_id, config, balance=None):
            sim.cancel()
            return real(game_id, config, balance)

        monkeypatch.setattr(mc, "run_single_game", cancel_after_first)
        assert len(sim.run_sequential()) == 1

    def test_process_pool_run(self):
        sim = MonteCarloSimulator(num_games=4, max_workers=2, base_seed=3, config=GameConfig(max_turns=6))
        results = sim.run()
        assert [r.game_id for r in results] == [0, 1, 2, 3]
        assert sim.failures == 0
        assert results == sim.run_sequential()


# ── Analysis ─────────────────────────────────────

class TestAnalyzeBalance:
    def test_rates_and_score(self):
        results = [
            _result(0, "DESTRUCTION"), _result(1, "DESTRUCTION"), _result(2, "DESTRUCTION"),
            _result(3, "DESTRUCTION"), _result(4, "PROTECTION"),
        ]
        report = analyze_balance(results)
        assert report.total_simulations == 5
        assert report.destruction_win_rate == pytest.approx(0.8)
        assert report.protection_win_rate == pytest.approx(0.2)
        assert report.draw_rate == 0.0
        assert report.balance_score == pytest.approx(40.0)
        assert report.average_population_loss == pytest.approx(10.0)
        assert any("Destruction AI is too strong" in r for r in report.recommendations)
        assert report.recommendations[-1].startswith("Balance is heavily skewed")

    def test_draws_counted(self):
        report = analyze_balance([_result(0, None), _result(1, "PROTECTION")])
        assert report.draw_rate == pytest.approx(0.5)
        assert report.balance_score == pytest.approx(50.0)

    def test_empty_batch_rejected(self):
        with pytest.raises(ValueError):
            analyze_balance([])

    def test_frame_has_population_loss(self):
        frame = results_frame([_result(0, None, final_population=60.0)])
        assert frame.loc[0, "population_loss"] == pytest.approx(20.0)

    @pytest.mark.parametrize("turns,expected", [(10, "too quickly"), (48, "too long")])
    def test_game_length_recommendations(self, turns, expected):
        recs = generate_recommendations(0.4, 0.4, 0.2, turns, 10, 100)
        assert any(expected in r for r in recs)
        assert recs[-1] == "Balance is good."

    def test_draw_and_loss_recommendations(self):
        recs = generate_recommendations(0.3, 0.3, 0.4, 30, 60, 75)
        assert any("draws" in r for r in recs)
        assert any("Population loss" in r for r in recs)
        assert recs[-1].startswith("Balance is somewhat skewed")


# ── Output ───────────────────────────────────────

class TestReportOutput:
    def test_save_report_writes_json_and_csvs(self, tmp_path):
        results = [_result(0, "DESTRUCTION", turns=20), _result(1, None, turns=40)]
        report = analyze_balance(results)
        paths = save_report(report, results, str(tmp_path / "out"))

        with open(paths["report"]) as f:
            data = json.load(f)
        assert data["total_simulations"] == 2
        assert data["recommendations"] == report.recommendations

        summary = load_variable_dict(paths["summary"])
        assert summary["average_turns"] == pytest.approx(30.0)

        games = load_variable_list_dict(paths["games"])
        assert list(games["turns"]) == [20, 40]
        assert len(games["winner"]) == 2

    def test_plot_win_rates(self, tmp_path):
        report = analyze_balance([_result(0, "PROTECTION")])
        path = plot_win_rates(report, str(tmp_path / "rates.png"))
        assert os.path.getsize(path) > 0
