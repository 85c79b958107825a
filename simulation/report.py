"""Result models, balance recommendations and report output for batch runs."""

import json
import logging
import os
from typing import Dict, List, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from pydantic import BaseModel  # noqa: E402

from utils.save import save_variable_dict, save_variable_list_dict  # noqa: E402

logger = logging.getLogger(__name__)


class SimulationResult(BaseModel):
    """Final numbers of one completed game."""

    game_id: int
    seed: Optional[int] = None
    winner: Optional[str] = None
    turns: int
    initial_population: float
    final_population: float
    destruction_score: float
    protection_score: float
    compromised_data_centers: int
    detection_risk: float
    human_panic: Optional[float] = None
    human_trust: Optional[float] = None

    @property
    def population_loss(self) -> float:
        return self.initial_population - self.final_population


class BalanceReport(BaseModel):
    """Aggregate statistics over a batch of games."""

    total_simulations: int
    destruction_win_rate: float
    protection_win_rate: float
    draw_rate: float
    average_turns: float
    average_population_loss: float
    average_destruction_score: float
    average_protection_score: float
    balance_score: float
    recommendations: List[str]


def generate_recommendations(
    destruction_win_rate: float,
    protection_win_rate: float,
    draw_rate: float,
    average_turns: float,
    average_population_loss: float,
    balance_score: float,
) -> List[str]:
    """Plain-language tuning hints derived from the batch statistics."""
    recs: List[str] = []

    if destruction_win_rate > 0.6:
        recs.append("Destruction AI is too strong: raise protection resource recovery or detection accuracy.")
    elif protection_win_rate > 0.6:
        recs.append("Protection AI is too strong: raise the detection threshold or destruction starting resources.")

    if average_turns < 20:
        recs.append("Games end too quickly: lower early detection risk or weaken destruction attacks.")
    elif average_turns > 45:
        recs.append("Games run too long: raise detection sensitivity or relax win conditions.")

    if draw_rate > 0.3:
        recs.append("Too many draws: sharpen the win conditions.")

    if average_population_loss > 50:
        recs.append("Population loss is severe: tone down destruction damage.")

    if balance_score >= 90:
        recs.append("Balance is good.")
    elif balance_score >= 70:
        recs.append("Balance is somewhat skewed but acceptable.")
    else:
        recs.append("Balance is heavily skewed; tuning required.")
    return recs


# ── Output ───────────────────────────────────────


def save_report(
    report: BalanceReport,
    results: List[SimulationResult],
    output_dir: str,
) -> Dict[str, str]:
    """Write the report as JSON plus summary and per-game CSVs. Returns the written paths."""
    os.makedirs(output_dir, exist_ok=True)
    paths = {
        "report": os.path.join(output_dir, "balance_report.json"),
        "summary": os.path.join(output_dir, "balance_summary.csv"),
        "games": os.path.join(output_dir, "games.csv"),
    }

    with open(paths["report"], "w") as f:
        json.dump(report.model_dump(), f, indent=2)

    summary = report.model_dump(exclude={"recommendations"})
    save_variable_dict(paths["summary"], summary)

    columns: Dict[str, list] = {name: [] for name in SimulationResult.model_fields}
    for result in results:
        for name, value in result.model_dump().items():
            columns[name].append(value)
    save_variable_list_dict(paths["games"], columns)

    logger.info("Saved balance report to %s", output_dir)
    return paths


def plot_win_rates(report: BalanceReport, path: str) -> str:
    """Bar chart of destruction / protection / draw rates."""
    labels = ["Destruction", "Protection", "Draw"]
    rates = [report.destruction_win_rate, report.protection_win_rate, report.draw_rate]

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.bar(labels, rates, color=["tab:red", "tab:blue", "tab:gray"])
    ax.set_ylim(0, 1)
    ax.set_ylabel("Rate")
    ax.set_title(
        f"{report.total_simulations} games, balance score {report.balance_score:.1f}"
    )
    for i, rate in enumerate(rates):
        ax.text(i, rate + 0.02, f"{rate:.1%}", ha="center")
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path
