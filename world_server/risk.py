"""Capability interface shared by the immediate and delayed detection strategies."""

import math
from typing import Protocol, runtime_checkable

from world_server.schemas import Proposal, WorldState


@runtime_checkable
class RiskEvaluator(Protocol):
    """Anything that can price how noticeable a proposal is."""

    def calculate_detection_risk(self, proposal: Proposal, state: WorldState) -> float:
        """Return a non-negative risk scalar for *proposal* in *state*."""
        ...


def logistic(x: float, center: float, scale: float) -> float:
    """Standard logistic curve, 0.5 at ``center``."""
    return 1.0 / (1.0 + math.exp(-(x - center) / scale))
