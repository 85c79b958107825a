"""Batch simulation: rule-based policies and the Monte Carlo balance harness."""

from simulation.monte_carlo import MonteCarloSimulator, analyze_balance, run_single_game
from simulation.policies import DestructionPolicy, HumanPolicy, ProtectionPolicy
from simulation.report import BalanceReport, SimulationResult, plot_win_rates, save_report

__all__ = [
    "MonteCarloSimulator",
    "analyze_balance",
    "run_single_game",
    "DestructionPolicy",
    "HumanPolicy",
    "ProtectionPolicy",
    "BalanceReport",
    "SimulationResult",
    "plot_win_rates",
    "save_report",
]
