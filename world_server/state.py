"""GameState store: owns a WorldState and exposes clamped mutators plus JSON snapshots.

Every write to world fields goes through a named method here.  Handlers
read ``game_state.state`` but never assign to it directly.
"""

import json
import logging
from typing import List, Optional

import numpy as np

from world_server.balance import GameBalance
from world_server.schemas import (
    ActionType,
    AgentType,
    DataCenter,
    DelayedEffect,
    DestructionState,
    EconomicModel,
    GameConfig,
    HumanState,
    ProtectionState,
    WorldState,
)

logger = logging.getLogger(__name__)

TOTAL_DEVICES = 4_000_000_000.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class GameState:
    """Single owner of one game's WorldState."""

    def __init__(
        self,
        config: GameConfig,
        balance: Optional[GameBalance] = None,
        rng: Optional[np.random.Generator] = None,
        state: Optional[WorldState] = None,
    ) -> None:
        self.config = config
        self.balance = balance or GameBalance.default()
        self._rng = rng if rng is not None else np.random.default_rng(config.random_seed)
        self._state = state if state is not None else self._initial_state()

    @property
    def state(self) -> WorldState:
        return self._state

    # ── Initialization ───────────────────────────

    def _initial_state(self) -> WorldState:
        resources = self.balance.initial_resources
        economy = self.balance.economy
        human = None
        if self.config.enable_human_agent:
            human = HumanState(
                panic=self.config.initial_panic,
                trust=self.config.initial_trust,
            )
        state = WorldState(
            turn=0,
            human_population=self.config.initial_population,
            initial_population=self.config.initial_population,
            data_centers=[],
            destruction=DestructionState(compute_resources=resources.get("destruction", 100.0)),
            protection=ProtectionState(compute_resources=resources.get("protection", 300.0)),
            economic_model=EconomicModel(**economy) if economy else EconomicModel(),
            human=human,
        )
        for _ in range(self.config.initial_data_centers):
            age = int(np.floor(self._rng.random() * 15))
            if age > 8:
                power = self._rng.uniform(50, 100)
                security = self._rng.uniform(20, 50)
            else:
                power = self._rng.uniform(200, 500)
                security = self._rng.uniform(70, 100)
            state.data_centers.append(self._new_data_center(state, age, power, security))
        return state

    @staticmethod
    def _new_data_center(state: WorldState, age: int, power: float, security: float) -> DataCenter:
        dc = DataCenter(
            id=f"dc-{state.next_data_center_index}",
            age=age,
            compute_power=float(power),
            security=float(security),
        )
        state.next_data_center_index += 1
        return dc

    # ── Turn / lifecycle ─────────────────────────

    def advance_turn(self) -> None:
        self._state.turn += 1

    def end_game(self, winner: Optional[AgentType], force: bool = False) -> None:
        """Mark the game finished. An already-decided result is kept unless ``force``."""
        if self._state.game_over and not force:
            return
        self._state.game_over = True
        self._state.winner = winner
        logger.info("Game over at turn %d, winner=%s", self._state.turn, winner.value if winner else "none")

    # ── Delayed effects ──────────────────────────

    def add_delayed_effect(self, effect: DelayedEffect) -> None:
        self._state.delayed_effects.append(effect)

    def pop_due_delayed_effects(self, turn: int) -> List[DelayedEffect]:
        """Remove and return every effect due at or before ``turn``."""
        due = [e for e in self._state.delayed_effects if e.trigger_turn <= turn]
        self._state.delayed_effects = [e for e in self._state.delayed_effects if e.trigger_turn > turn]
        return due

    # ── Destruction actor ────────────────────────

    def update_destruction_resources(self, delta: float) -> None:
        d = self._state.destruction
        d.compute_resources = max(0.0, d.compute_resources + delta)

    def update_detection_risk(self, delta: float) -> None:
        d = self._state.destruction
        d.detection_risk = _clamp(d.detection_risk + delta, 0.0, 100.0)

    def increment_dormant_turns(self) -> None:
        self._state.destruction.dormant_turns += 1

    def reset_dormant_turns(self) -> None:
        self._state.destruction.dormant_turns = 0

    def update_botnet_size(self, delta: float) -> None:
        d = self._state.destruction
        d.botnet_size = _clamp(d.botnet_size + delta, 0.0, TOTAL_DEVICES)

    def update_botnet_quality(self, delta: float) -> None:
        d = self._state.destruction
        d.botnet_quality = _clamp(d.botnet_quality + delta, 0.0, 1.0)

    def update_legacy_device_pool(self, delta: float) -> None:
        self._state.legacy_device_pool = _clamp(self._state.legacy_device_pool + delta, 0.0, TOTAL_DEVICES)

    # ── Protection actor ─────────────────────────

    def update_protection_resources(self, delta: float) -> None:
        p = self._state.protection
        p.compute_resources = max(0.0, p.compute_resources + delta)

    def update_alert_level(self, delta: float) -> None:
        p = self._state.protection
        p.alert_level = _clamp(p.alert_level + delta, 0.0, 100.0)

    def update_burnout(self, delta: float) -> None:
        p = self._state.protection
        p.burnout_level = _clamp(p.burnout_level + delta, 0.0, 100.0)

    def record_intensity(self, intensity: float) -> None:
        """Track alert fatigue from sustained high-intensity protection work."""
        p = self._state.protection
        if intensity > 60:
            p.consecutive_high_intensity += 1
            self.update_burnout(5)
        else:
            p.consecutive_high_intensity = 0

    def add_resources_spent(self, amount: float) -> None:
        p = self._state.protection
        p.total_resources_spent += max(0.0, amount)

    def record_false_positive(self, count: int = 1) -> None:
        p = self._state.protection
        p.recent_false_positives = max(0, p.recent_false_positives + count)

    def record_detection(self) -> None:
        self._state.protection.total_detections += 1

    def add_known_threat(self, description: str) -> None:
        self._state.protection.known_threats.append(description)

    def update_recent_patches(self, delta: int) -> None:
        p = self._state.protection
        p.recent_patches = max(0, p.recent_patches + delta)

    # ── Shared ───────────────────────────────────

    def update_score(self, agent: AgentType, delta: float) -> None:
        if agent is AgentType.DESTRUCTION:
            actor = self._state.destruction
        elif agent is AgentType.PROTECTION:
            actor = self._state.protection
        else:
            return
        actor.score = _clamp(actor.score + delta, 0.0, self.balance.max_score)

    def update_population(self, delta: float) -> None:
        self._state.human_population = max(0.0, self._state.human_population + delta)

    def update_social_division(self, delta: float) -> None:
        self._state.social_division = _clamp(self._state.social_division + delta, 0.0, 100.0)

    def update_ai_dependency(self, delta: float) -> None:
        self._state.ai_dependency = _clamp(self._state.ai_dependency + delta, 0.0, 100.0)

    def add_accumulated_damage(self, delta: float) -> None:
        self._state.accumulated_damage = max(0.0, self._state.accumulated_damage + delta)

    def record_media_sentiment(self, sentiment: float, keep: int = 50) -> None:
        """Append a narrator-supplied sentiment score in [-100, 100]."""
        self._state.media_sentiment.append(_clamp(sentiment, -100.0, 100.0))
        if len(self._state.media_sentiment) > keep:
            self._state.media_sentiment = self._state.media_sentiment[-keep:]

    # ── Human actor ──────────────────────────────

    def update_human_panic(self, delta: float) -> None:
        h = self._state.human
        if h is not None:
            h.panic = _clamp(h.panic + delta, 0.0, 100.0)

    def update_human_trust(self, delta: float) -> None:
        h = self._state.human
        if h is not None:
            h.trust = _clamp(h.trust + delta, 0.0, 100.0)

    def update_regulation(self, delta: float) -> None:
        h = self._state.human
        if h is not None:
            h.regulation_strength = max(0.0, h.regulation_strength + delta)

    def set_last_action(self, action_type: ActionType) -> None:
        if self._state.human is not None:
            self._state.human.last_action = action_type

    def set_last_infra_turn(self, turn: int) -> None:
        if self._state.human is not None:
            self._state.human.last_infra_turn = turn

    # ── Data centers ─────────────────────────────

    def compromise_data_center(self, dc_id: str) -> bool:
        """Hand a data center to the destruction actor. Returns False if not possible."""
        dc = self._state.get_data_center(dc_id)
        if dc is None or dc.compromised:
            return False
        dc.compromised = True
        dc.owner = AgentType.DESTRUCTION
        self._state.destruction.controlled_data_centers.append(dc_id)
        return True

    def update_data_center_security(self, dc_id: str, delta: float) -> None:
        dc = self._state.get_data_center(dc_id)
        if dc is not None:
            dc.security = _clamp(dc.security + delta, 0.0, 100.0)

    def build_data_center(self) -> DataCenter:
        """Add a freshly built (human-funded) data center."""
        power = self._rng.uniform(50, 100)
        security = self._rng.uniform(40, 60)
        dc = self._new_data_center(self._state, 0, power, security)
        self._state.data_centers.append(dc)
        return dc

    def remove_data_center(self, dc_id: str) -> Optional[DataCenter]:
        dc = self._state.get_data_center(dc_id)
        if dc is None:
            return None
        self._state.data_centers = [d for d in self._state.data_centers if d.id != dc_id]
        controlled = self._state.destruction.controlled_data_centers
        if dc_id in controlled:
            controlled.remove(dc_id)
        return dc

    # ── Economy ──────────────────────────────────

    def update_budget(self, delta: float) -> None:
        self._state.economic_model.global_budget += delta

    def update_gdp(self, delta: float) -> None:
        e = self._state.economic_model
        e.gdp = max(0.0, e.gdp + delta)

    def set_infrastructure_cost(self, value: float) -> None:
        self._state.economic_model.infrastructure_cost = max(0.0, value)

    def update_public_debt(self, delta: float) -> None:
        e = self._state.economic_model
        e.public_debt = max(0.0, e.public_debt + delta)

    def set_tax_revenue(self, value: float) -> None:
        self._state.economic_model.tax_revenue = max(0.0, value)

    # ── Persistence ──────────────────────────────

    def save(self, path: Optional[str] = None) -> None:
        """Overwrite the JSON snapshot. I/O errors propagate to the caller."""
        target = path or self.config.snapshot_path
        if not target:
            return
        with open(target, "w") as f:
            json.dump(self._state.to_dict(), f, indent=2)

    @classmethod
    def load(
        cls,
        path: str,
        config: Optional[GameConfig] = None,
        balance: Optional[GameBalance] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> "GameState":
        with open(path, "r") as f:
            data = json.load(f)
        return cls(config or GameConfig(), balance=balance, rng=rng, state=WorldState.from_dict(data))
