"""Canonical data-transfer objects for the Shadow War world server."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class AgentType(str, Enum):
    DESTRUCTION = "DESTRUCTION"
    PROTECTION = "PROTECTION"
    HUMAN = "HUMAN"


class ActionType(str, Enum):
    """Closed catalogue of actions agents and handlers agree on."""

    # Destruction: direct attacks
    SPREAD_MALWARE = "SPREAD_MALWARE"
    HACK_DATACENTER = "HACK_DATACENTER"
    SUBTLE_SABOTAGE = "SUBTLE_SABOTAGE"
    EXPAND_RESOURCES = "EXPAND_RESOURCES"

    # Destruction: modern attacks
    POISON_TRAINING_DATA = "POISON_TRAINING_DATA"
    INDUCE_FALSE_POSITIVE = "INDUCE_FALSE_POSITIVE"
    CONTEXT_MANIPULATION = "CONTEXT_MANIPULATION"
    COMPUTE_SMUGGLING = "COMPUTE_SMUGGLING"
    SPREAD_MISINFORMATION = "SPREAD_MISINFORMATION"
    STIMULUS_OVERLOAD = "STIMULUS_OVERLOAD"
    SHADOW_AI_DEPLOYMENT = "SHADOW_AI_DEPLOYMENT"

    # Destruction: human manipulation
    SPREAD_PANIC = "SPREAD_PANIC"
    FALSE_FLAG_OPERATION = "FALSE_FLAG_OPERATION"
    UNDERMINE_AI_TRUST = "UNDERMINE_AI_TRUST"

    # Destruction: erosion
    INFRASTRUCTURE_DEGRADATION = "INFRASTRUCTURE_DEGRADATION"
    SOW_SOCIAL_DIVISION = "SOW_SOCIAL_DIVISION"
    MICRO_SABOTAGE = "MICRO_SABOTAGE"
    SLEEPER_CELL_DEPLOYMENT = "SLEEPER_CELL_DEPLOYMENT"
    RESOURCE_ALLOCATION_MANIPULATION = "RESOURCE_ALLOCATION_MANIPULATION"
    CREATE_DEPENDENCY = "CREATE_DEPENDENCY"

    # Destruction: resilience
    OBSERVE_ONLY = "OBSERVE_ONLY"
    ESTABLISH_BACKUP = "ESTABLISH_BACKUP"
    DORMANT_MODE = "DORMANT_MODE"

    # Destruction: botnet
    BOTNET_EXPANSION = "BOTNET_EXPANSION"
    BOTNET_CONSOLIDATION = "BOTNET_CONSOLIDATION"
    BOTNET_ATTACK = "BOTNET_ATTACK"
    EXPLOIT_LEGACY_DEVICES = "EXPLOIT_LEGACY_DEVICES"

    # Protection
    SCAN_NETWORK = "SCAN_NETWORK"
    DEPLOY_DEFENSE = "DEPLOY_DEFENSE"
    INVESTIGATE_ANOMALY = "INVESTIGATE_ANOMALY"
    PATCH_VULNERABILITY = "PATCH_VULNERABILITY"
    ALERT_HUMANS = "ALERT_HUMANS"
    ANALYZE_LOGS = "ANALYZE_LOGS"
    VALIDATE_MODELS = "VALIDATE_MODELS"

    # Human
    INVEST_INFRA = "INVEST_INFRA"
    AI_REGULATION = "AI_REGULATION"
    PHYSICAL_ISOLATION = "PHYSICAL_ISOLATION"
    INTERNET_SHUTDOWN = "INTERNET_SHUTDOWN"
    DEVICE_MODERNIZATION = "DEVICE_MODERNIZATION"


class EventType(str, Enum):
    ACTION = "action"
    DETECTION = "detection"
    SUCCESS = "success"
    FAILURE = "failure"


class DetectionOutcome(str, Enum):
    """Result of a turn's detection evaluation."""

    NONE = "none"
    TERMINAL = "terminal"
    IGNORED = "ignored"


HUMAN_ACTIONS: FrozenSet[ActionType] = frozenset({
    ActionType.INVEST_INFRA,
    ActionType.AI_REGULATION,
    ActionType.PHYSICAL_ISOLATION,
    ActionType.INTERNET_SHUTDOWN,
    ActionType.DEVICE_MODERNIZATION,
})

PROTECTION_ACTIONS: FrozenSet[ActionType] = frozenset({
    ActionType.SCAN_NETWORK,
    ActionType.DEPLOY_DEFENSE,
    ActionType.INVESTIGATE_ANOMALY,
    ActionType.PATCH_VULNERABILITY,
    ActionType.ALERT_HUMANS,
    ActionType.ANALYZE_LOGS,
    ActionType.VALIDATE_MODELS,
})

DESTRUCTION_ACTIONS: FrozenSet[ActionType] = frozenset(
    set(ActionType) - HUMAN_ACTIONS - PROTECTION_ACTIONS
)

# Actions that cannot run without an existing data-center target.
TARGETED_ACTIONS: FrozenSet[ActionType] = frozenset({
    ActionType.HACK_DATACENTER,
    ActionType.DEPLOY_DEFENSE,
    ActionType.PHYSICAL_ISOLATION,
})


def actor_for(action_type: ActionType) -> AgentType:
    """Return the actor family an action type belongs to."""
    if action_type in HUMAN_ACTIONS:
        return AgentType.HUMAN
    if action_type in PROTECTION_ACTIONS:
        return AgentType.PROTECTION
    return AgentType.DESTRUCTION


def _visibility_tuple(visibility) -> Tuple[AgentType, ...]:
    return tuple(AgentType(v) for v in visibility)


# ── Core records ─────────────────────────────────


@dataclass
class DataCenter:
    id: str
    age: int
    compute_power: float
    security: float
    compromised: bool = False
    owner: Optional[AgentType] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["owner"] = self.owner.value if self.owner else None
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataCenter":
        owner = data.get("owner")
        return cls(
            id=data["id"],
            age=data["age"],
            compute_power=data["compute_power"],
            security=data["security"],
            compromised=data.get("compromised", False),
            owner=AgentType(owner) if owner else None,
        )


@dataclass(frozen=True)
class Proposal:
    """An anonymized request to perform one action during a turn."""

    id: str
    agent_id: str
    action_type: ActionType
    intensity: float
    cost: float
    description: str = ""
    target: Optional[str] = None
    analysis_depth: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["action_type"] = self.action_type.value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        """Build a proposal from raw agent output.

        Intensity is clamped to [0, 100]. Raises ``ValueError`` when the action
        type is not in the catalogue or a numeric field cannot be read.
        """
        depth = data.get("analysis_depth")
        try:
            intensity = float(data.get("intensity", 0.0))
            cost = float(data.get("cost", 0.0))
            if depth is not None:
                depth = int(depth)
        except TypeError as exc:
            raise ValueError(f"non-numeric proposal field: {exc}") from exc
        return cls(
            id=str(data["id"]),
            agent_id=str(data.get("agent_id", "anonymous")),
            action_type=ActionType(data["action_type"]),
            intensity=min(100.0, max(0.0, intensity)),
            cost=cost,
            description=data.get("description", ""),
            target=data.get("target"),
            analysis_depth=depth,
        )


@dataclass(frozen=True)
class GameEvent:
    turn: int
    type: EventType
    description: str
    visibility: Tuple[AgentType, ...]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def visible_to(self, agent_type: AgentType) -> bool:
        return agent_type in self.visibility

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "type": self.type.value,
            "description": self.description,
            "visibility": [v.value for v in self.visibility],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameEvent":
        return cls(
            turn=data["turn"],
            type=EventType(data["type"]),
            description=data["description"],
            visibility=_visibility_tuple(data.get("visibility", [])),
            metadata=data.get("metadata") or {},
        )


@dataclass
class DelayedEffect:
    """A future mutation that fires once when the world reaches ``trigger_turn``."""

    trigger_turn: int
    action_type: ActionType
    intensity: float
    description: str

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["action_type"] = self.action_type.value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DelayedEffect":
        return cls(
            trigger_turn=data["trigger_turn"],
            action_type=ActionType(data["action_type"]),
            intensity=data["intensity"],
            description=data["description"],
        )


# ── Actor states ─────────────────────────────────


@dataclass
class DestructionState:
    compute_resources: float
    detection_risk: float = 0.0
    controlled_data_centers: List[str] = field(default_factory=list)
    score: float = 0.0
    dormant_turns: int = 0
    botnet_size: float = 0.0
    botnet_quality: float = 0.5


@dataclass
class ProtectionState:
    compute_resources: float
    alert_level: float = 0.0
    known_threats: List[str] = field(default_factory=list)
    score: float = 0.0
    burnout_level: float = 0.0
    consecutive_high_intensity: int = 0
    recent_false_positives: int = 0
    total_resources_spent: float = 0.0
    total_detections: int = 0
    recent_patches: int = 0


@dataclass
class HumanState:
    panic: float = 10.0
    trust: float = 60.0
    regulation_strength: float = 0.0
    last_action: Optional[ActionType] = None
    last_infra_turn: int = -999


@dataclass
class EconomicModel:
    global_budget: float = 500.0
    gdp: float = 100.0
    infrastructure_cost: float = 50.0
    public_debt: float = 0.0
    tax_revenue: float = 20.0


@dataclass
class WorldState:
    """Root aggregate for a single game instance. Plain data, no behaviour."""

    turn: int
    human_population: float
    initial_population: float
    data_centers: List[DataCenter]
    destruction: DestructionState
    protection: ProtectionState
    economic_model: EconomicModel = field(default_factory=EconomicModel)
    human: Optional[HumanState] = None
    game_over: bool = False
    winner: Optional[AgentType] = None
    events: List[GameEvent] = field(default_factory=list)
    delayed_effects: List[DelayedEffect] = field(default_factory=list)
    social_division: float = 0.0
    ai_dependency: float = 30.0
    accumulated_damage: float = 0.0
    legacy_device_pool: float = 400_000_000.0
    media_sentiment: List[float] = field(default_factory=list)
    next_data_center_index: int = 0

    def get_data_center(self, dc_id: Optional[str]) -> Optional[DataCenter]:
        if dc_id is None:
            return None
        for dc in self.data_centers:
            if dc.id == dc_id:
                return dc
        return None

    def compromised_data_centers(self) -> List[DataCenter]:
        return [dc for dc in self.data_centers if dc.compromised]

    def to_dict(self) -> Dict[str, Any]:
        human = None
        if self.human is not None:
            human = asdict(self.human)
            human["last_action"] = self.human.last_action.value if self.human.last_action else None
        return {
            "turn": self.turn,
            "human_population": self.human_population,
            "initial_population": self.initial_population,
            "data_centers": [dc.to_dict() for dc in self.data_centers],
            "destruction": asdict(self.destruction),
            "protection": asdict(self.protection),
            "economic_model": asdict(self.economic_model),
            "human": human,
            "game_over": self.game_over,
            "winner": self.winner.value if self.winner else None,
            "events": [e.to_dict() for e in self.events],
            "delayed_effects": [d.to_dict() for d in self.delayed_effects],
            "social_division": self.social_division,
            "ai_dependency": self.ai_dependency,
            "accumulated_damage": self.accumulated_damage,
            "legacy_device_pool": self.legacy_device_pool,
            "media_sentiment": list(self.media_sentiment),
            "next_data_center_index": self.next_data_center_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorldState":
        human = None
        if data.get("human") is not None:
            raw = dict(data["human"])
            last = raw.get("last_action")
            raw["last_action"] = ActionType(last) if last else None
            human = HumanState(**raw)
        winner = data.get("winner")
        return cls(
            turn=data["turn"],
            human_population=data["human_population"],
            initial_population=data["initial_population"],
            data_centers=[DataCenter.from_dict(d) for d in data["data_centers"]],
            destruction=DestructionState(**data["destruction"]),
            protection=ProtectionState(**data["protection"]),
            economic_model=EconomicModel(**data["economic_model"]),
            human=human,
            game_over=data.get("game_over", False),
            winner=AgentType(winner) if winner else None,
            events=[GameEvent.from_dict(e) for e in data.get("events", [])],
            delayed_effects=[DelayedEffect.from_dict(d) for d in data.get("delayed_effects", [])],
            social_division=data.get("social_division", 0.0),
            ai_dependency=data.get("ai_dependency", 30.0),
            accumulated_damage=data.get("accumulated_damage", 0.0),
            legacy_device_pool=data.get("legacy_device_pool", 400_000_000.0),
            media_sentiment=list(data.get("media_sentiment", [])),
            next_data_center_index=data.get("next_data_center_index", len(data["data_centers"])),
        )


# ── Configuration and results ────────────────────


@dataclass
class GameConfig:
    """Top-level configuration for world initialization."""

    max_turns: int = 50
    initial_data_centers: int = 20
    initial_population: float = 80.0
    enable_human_agent: bool = True
    initial_panic: float = 10.0
    initial_trust: float = 60.0
    random_seed: Optional[int] = None
    snapshot_path: Optional[str] = None


@dataclass
class DetectionResult:
    """Outcome of the immediate detection evaluation for one turn."""

    outcome: DetectionOutcome = DetectionOutcome.NONE
    events: List[GameEvent] = field(default_factory=list)

    @property
    def detected(self) -> bool:
        return self.outcome is not DetectionOutcome.NONE


@dataclass
class TurnReceipt:
    """Immutable record of everything that happened in one resolved turn."""

    turn: int
    seed: Optional[int]
    state_hash_before: str
    state_hash_after: str
    admitted_proposals: List[str]
    rejected_proposals: List[str]
    events: List[Dict[str, Any]]
    detection_outcome: DetectionOutcome
    game_over: bool
    winner: Optional[AgentType]
    metrics: Dict[str, float] = field(default_factory=dict)


def make_event(
    turn: int,
    event_type: EventType,
    description: str,
    visibility,
    metadata: Optional[Dict[str, Any]] = None,
) -> GameEvent:
    """Construct a GameEvent with a normalized visibility tuple."""
    return GameEvent(
        turn=turn,
        type=event_type,
        description=description,
        visibility=_visibility_tuple(visibility),
        metadata=metadata or {},
    )
