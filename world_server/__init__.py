"""World server -- turn resolution engine for the Shadow War simulation."""

from world_server.schemas import (
    ActionType,
    AgentType,
    DataCenter,
    DelayedEffect,
    DetectionOutcome,
    EventType,
    GameConfig,
    GameEvent,
    Proposal,
    TurnReceipt,
    WorldState,
)
from world_server.balance import GameBalance, load_balance
from world_server.state import GameState
from world_server.risk import RiskEvaluator
from world_server.detection import DetectionSystem
from world_server.realistic_detection import RealisticDetectionSystem
from world_server.observation import Observation, build_observation
from world_server.receipt import compute_receipt_hash, compute_state_hash, receipt_record
from world_server.resolver import WorldServer

__all__ = [
    "ActionType",
    "AgentType",
    "DataCenter",
    "DelayedEffect",
    "DetectionOutcome",
    "EventType",
    "GameConfig",
    "GameEvent",
    "Proposal",
    "TurnReceipt",
    "WorldState",
    "GameBalance",
    "load_balance",
    "GameState",
    "RiskEvaluator",
    "DetectionSystem",
    "RealisticDetectionSystem",
    "Observation",
    "build_observation",
    "compute_receipt_hash",
    "compute_state_hash",
    "receipt_record",
    "WorldServer",
]
