"""Monte Carlo balance harness.

Each game runs in its own worker process with its own ``WorldServer``;
workers share nothing and hand back a ``SimulationResult``.  A failed game
is logged and excluded from the statistics, never retried.
"""

import dataclasses
import logging
import time
from concurrent.futures import CancelledError, Future, ProcessPoolExecutor, as_completed
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from simulation.policies import DestructionPolicy, HumanPolicy, ProtectionPolicy
from simulation.report import BalanceReport, SimulationResult, generate_recommendations
from world_server.balance import GameBalance
from world_server.resolver import WorldServer
from world_server.schemas import GameConfig

logger = logging.getLogger(__name__)


def run_single_game(
    game_id: int,
    config: GameConfig,
    balance: Optional[GameBalance] = None,
) -> SimulationResult:
    """Play one game to completion with the rule-based policies.

    Module-level so it can be pickled into a worker process.
    """
    server = WorldServer(config, balance)
    policies = [DestructionPolicy(server.balance), ProtectionPolicy(server.balance)]
    if config.enable_human_agent:
        policies.append(HumanPolicy(server.balance))

    # The resolver ends the game at max_turns; the bound only guards against a stall.
    for _ in range(config.max_turns + 1):
        if server.is_game_over():
            break
        proposals = []
        for policy in policies:
            proposals.extend(policy.propose(server.state, server.rng))
        server.run_turn(proposals)

    state = server.state
    winner = server.get_winner()
    return SimulationResult(
        game_id=game_id,
        seed=config.random_seed,
        winner=winner.value if winner else None,
        turns=state.turn,
        initial_population=state.initial_population,
        final_population=state.human_population,
        destruction_score=state.destruction.score,
        protection_score=state.protection.score,
        compromised_data_centers=len(state.compromised_data_centers()),
        detection_risk=state.destruction.detection_risk,
        human_panic=state.human.panic if state.human else None,
        human_trust=state.human.trust if state.human else None,
    )


class MonteCarloSimulator:
    """Runs ``num_games`` independent games, in parallel or sequentially."""

    def __init__(
        self,
        num_games: int = 100,
        max_workers: int = 4,
        base_seed: Optional[int] = None,
        config: Optional[GameConfig] = None,
        balance: Optional[GameBalance] = None,
    ) -> None:
        self.num_games = num_games
        self.max_workers = max_workers
        self.base_seed = base_seed
        self.config = config or GameConfig()
        self.balance = balance or GameBalance.default()
        self.failures = 0
        self._cancelled = False
        self._executor: Optional[ProcessPoolExecutor] = None

    def game_config(self, game_id: int) -> GameConfig:
        """Per-game config: derived seed and no snapshot file."""
        seed = None if self.base_seed is None else self.base_seed + game_id
        return dataclasses.replace(self.config, random_seed=seed, snapshot_path=None)

    def run(self) -> List[SimulationResult]:
        """Run every game across a process pool and collect the survivors."""
        self._cancelled = False
        self.failures = 0
        results: List[SimulationResult] = []
        start = time.time()
        logger.info("Starting %d simulations with %d workers", self.num_games, self.max_workers)

        with ProcessPoolExecutor(max_workers=self.max_workers) as executor:
            self._executor = executor
            futures: Dict[Future, int] = {
                executor.submit(run_single_game, game_id, self.game_config(game_id), self.balance): game_id
                for game_id in range(self.num_games)
            }
            for future in as_completed(futures):
                game_id = futures[future]
                try:
                    results.append(future.result())
                except CancelledError:
                    continue
                except Exception:
                    self.failures += 1
                    logger.exception("Game %d failed; excluded from statistics", game_id)
        self._executor = None

        results.sort(key=lambda r: r.game_id)
        logger.info(
            "Completed %d/%d simulations in %.1fs (%d failed)",
            len(results), self.num_games, time.time() - start, self.failures,
        )
        return results

    def run_sequential(self) -> List[SimulationResult]:
        """In-process variant of ``run``; same seeds, same exclusion rules."""
        self._cancelled = False
        self.failures = 0
        results: List[SimulationResult] = []
        for game_id in range(self.num_games):
            if self._cancelled:
                logger.info("Cancelled after %d game(s)", game_id)
                break
            try:
                results.append(run_single_game(game_id, self.game_config(game_id), self.balance))
            except Exception:
                self.failures += 1
                logger.exception("Game %d failed; excluded from statistics", game_id)
        return results

    def cancel(self) -> None:
        """Drop every game that has not started yet. Running games finish."""
        self._cancelled = True
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)


# ── Aggregation ──────────────────────────────────


def results_frame(results: List[SimulationResult]) -> pd.DataFrame:
    frame = pd.DataFrame([r.model_dump() for r in results])
    frame["population_loss"] = frame["initial_population"] - frame["final_population"]
    return frame


def analyze_balance(results: List[SimulationResult]) -> BalanceReport:
    """Aggregate completed games into win rates, averages and recommendations."""
    if not results:
        raise ValueError("analyze_balance needs at least one completed game")

    frame = results_frame(results)
    total = len(frame)
    destruction_rate = float((frame["winner"] == "DESTRUCTION").sum()) / total
    protection_rate = float((frame["winner"] == "PROTECTION").sum()) / total
    draw_rate = float(frame["winner"].isna().sum()) / total

    average_turns = float(frame["turns"].mean())
    average_loss = float(frame["population_loss"].mean())
    balance_score = 100 - float(np.abs(destruction_rate - protection_rate)) * 100

    return BalanceReport(
        total_simulations=total,
        destruction_win_rate=destruction_rate,
        protection_win_rate=protection_rate,
        draw_rate=draw_rate,
        average_turns=average_turns,
        average_population_loss=average_loss,
        average_destruction_score=float(frame["destruction_score"].mean()),
        average_protection_score=float(frame["protection_score"].mean()),
        balance_score=balance_score,
        recommendations=generate_recommendations(
            destruction_rate, protection_rate, draw_rate,
            average_turns, average_loss, balance_score,
        ),
    )
