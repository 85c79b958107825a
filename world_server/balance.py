"""Balance table: action costs, thresholds and rates loaded from YAML."""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional

import yaml

from world_server.schemas import ActionType, Proposal


_DEFAULT_YAML = Path(__file__).parent / "balance_default.yaml"


@dataclass
class GameBalance:
    max_score: float = 1000.0
    initial_resources: Dict[str, float] = field(default_factory=dict)
    action_costs: Dict[ActionType, float] = field(default_factory=dict)
    resilience_actions: FrozenSet[ActionType] = frozenset()
    proposal_drop_rate: float = 0.10
    scan_cost_per_data_center: float = 6.0
    default_analysis_depth: int = 3
    detection: Dict[str, float] = field(default_factory=dict)
    realistic_detection: Dict[str, float] = field(default_factory=dict)
    win_conditions: Dict[str, float] = field(default_factory=dict)
    economy: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "GameBalance":
        return load_balance(str(_DEFAULT_YAML))

    def static_cost(self, action_type: ActionType) -> float:
        return self.action_costs.get(action_type, 0.0)

    def resolve_analysis_depth(self, depth: Optional[int] = None) -> int:
        """Missing or non-positive depths fall back to the default look-back."""
        if depth is None or depth <= 0:
            return self.default_analysis_depth
        return int(depth)

    def analysis_cost(self, depth: Optional[int] = None) -> float:
        """Price of looking back ``depth`` turns; superlinear in depth."""
        d = self.resolve_analysis_depth(depth)
        return float(math.floor(10 + d * 5 + d * d * 0.5))

    def actual_cost(self, proposal: Proposal, data_center_count: int) -> float:
        """Cost charged at dispatch time, independent of ``proposal.cost`` for dynamic actions."""
        if proposal.action_type is ActionType.SCAN_NETWORK:
            return data_center_count * self.scan_cost_per_data_center
        if proposal.action_type is ActionType.ANALYZE_LOGS:
            return self.analysis_cost(proposal.analysis_depth)
        return self.static_cost(proposal.action_type)

    def is_resilience(self, action_type: ActionType) -> bool:
        return action_type in self.resilience_actions


def load_balance(path: str) -> GameBalance:
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    return GameBalance(
        max_score=float(data.get("max_score", 1000)),
        initial_resources={k: float(v) for k, v in data.get("initial_resources", {}).items()},
        action_costs={ActionType(k): float(v) for k, v in data.get("action_costs", {}).items()},
        resilience_actions=frozenset(ActionType(a) for a in data.get("resilience_actions", [])),
        proposal_drop_rate=float(data.get("proposal_drop_rate", 0.10)),
        scan_cost_per_data_center=float(data.get("scan_cost_per_data_center", 6)),
        default_analysis_depth=int(data.get("default_analysis_depth", 3)),
        detection={k: float(v) for k, v in data.get("detection", {}).items()},
        realistic_detection={k: float(v) for k, v in data.get("realistic_detection", {}).items()},
        win_conditions={k: float(v) for k, v in data.get("win_conditions", {}).items()},
        economy={k: float(v) for k, v in data.get("economy", {}).items()},
    )
