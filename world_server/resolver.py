"""WorldServer: resolves one turn of anonymized proposals against the world state.

Turn order is fixed: delayed effects, human actions, AI admission and
dispatch (destruction before protection), detection, win conditions,
sentiment.  The resolver is single-threaded; all randomness comes from one
seeded ``numpy`` generator shared with the detection systems and handlers.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from world_server.balance import GameBalance
from world_server.detection import DetectionSystem
from world_server.event_log import EventLog
from world_server.handlers import get_handler
from world_server.handlers.context import ActionContext
from world_server.handlers.human import apply_public_opinion, update_human_sentiment
from world_server.realistic_detection import RealisticDetectionSystem
from world_server.receipt import compute_state_hash
from world_server.schemas import (
    HUMAN_ACTIONS,
    TARGETED_ACTIONS,
    ActionType,
    AgentType,
    DetectionOutcome,
    EventType,
    GameConfig,
    GameEvent,
    Proposal,
    TurnReceipt,
    WorldState,
    actor_for,
    make_event,
)
from world_server.state import GameState
from world_server.systems import EconomicSystem, InfrastructureSystem, ResourceProvider
from world_server.turn_metrics import compute_turn_metrics

logger = logging.getLogger(__name__)


class WorldServer:
    """Owns one game: its GameState, detection systems and resource providers."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        balance: Optional[GameBalance] = None,
        resource_providers: Optional[List[ResourceProvider]] = None,
        game_state: Optional[GameState] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.balance = balance or GameBalance.default()
        self._rng = np.random.default_rng(self.config.random_seed)
        self.game_state = game_state or GameState(self.config, self.balance, self._rng)
        self.event_log = EventLog(self.game_state.state)
        self.detection = DetectionSystem(self.game_state, self._rng, self.balance)
        self.realistic_detection = RealisticDetectionSystem(self._rng, self.balance)
        if resource_providers is None:
            resource_providers = [InfrastructureSystem(), EconomicSystem()]
        self.resource_providers = resource_providers

        self._admitted: List[str] = []
        self._rejected: List[str] = []
        self._last_outcome = DetectionOutcome.NONE

    # ── Properties ───────────────────────────────

    @property
    def state(self) -> WorldState:
        return self.game_state.state

    @property
    def turn(self) -> int:
        return self.game_state.state.turn

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    def is_game_over(self) -> bool:
        return self.state.game_over

    def get_winner(self) -> Optional[AgentType]:
        return self.state.winner

    # ── Input ────────────────────────────────────

    @staticmethod
    def parse_proposals(raw: Iterable[Dict[str, Any]]) -> List[Proposal]:
        """Convert raw agent output to Proposals, logging and dropping malformed entries."""
        proposals: List[Proposal] = []
        for item in raw:
            try:
                proposals.append(Proposal.from_dict(item))
            except (KeyError, ValueError) as exc:
                logger.warning("Dropping malformed proposal %r: %s", item.get("id"), exc)
        return proposals

    def actual_cost(self, proposal: Proposal) -> float:
        return self.balance.actual_cost(proposal, len(self.state.data_centers))

    def record_media_sentiment(self, sentiment: float) -> None:
        self.game_state.record_media_sentiment(sentiment)

    # ── Turn resolution ──────────────────────────

    def process_proposals(self, proposals: Sequence[Proposal]) -> List[GameEvent]:
        """Resolve every proposal submitted for the current turn."""
        if self.state.game_over:
            logger.info("Turn %d: game already over, ignoring %d proposal(s)", self.turn, len(proposals))
            return []

        self._admitted = []
        self._rejected = []
        self._last_outcome = DetectionOutcome.NONE
        events: List[GameEvent] = []

        events += self._emit(self._fire_delayed_effects())

        human_proposals = [p for p in proposals if p.action_type in HUMAN_ACTIONS]
        ai_proposals = [p for p in proposals if p.action_type not in HUMAN_ACTIONS]

        for proposal in human_proposals:
            events += self._emit(self.dispatch(proposal))
            if self.state.game_over:
                self._rejected.extend(p.id for p in ai_proposals)
                self.game_state.save()
                return events

        destruction, protection = self._admit_ai_proposals(ai_proposals)
        executed_destruction: List[Proposal] = []
        for proposal in destruction:
            produced = self.dispatch(proposal)
            if proposal.id in self._admitted:
                executed_destruction.append(proposal)
            events += self._emit(produced)
        for proposal in protection:
            events += self._emit(self.dispatch(proposal, executed_destruction))

        outcome, detection_events, direct = self._evaluate_detection()
        events += detection_events
        self._last_outcome = outcome

        # A direct detection ends the game on the spot.
        if not (direct and outcome is DetectionOutcome.TERMINAL):
            events += self._emit(self._check_win_conditions())

        update_human_sentiment(self.game_state)
        self.game_state.save()
        return events

    def dispatch(self, proposal: Proposal, destruction_proposals: Sequence[Proposal] = ()) -> List[GameEvent]:
        """Validate, gate, account for and execute a single proposal.

        Malformed proposals (no handler, missing target) and unaffordable
        ones are dropped without touching the world.
        """
        handler = get_handler(proposal.action_type)
        if handler is None:
            logger.warning("No handler registered for %s; dropping %s", proposal.action_type, proposal.id)
            self._rejected.append(proposal.id)
            return []
        if not self._target_is_valid(proposal):
            logger.info("Proposal %s targets unknown data center %r; dropping", proposal.id, proposal.target)
            self._rejected.append(proposal.id)
            return []

        actor = actor_for(proposal.action_type)
        cost = 0.0 if actor is AgentType.HUMAN else self.actual_cost(proposal)
        if actor is not AgentType.HUMAN and not self.balance.is_resilience(proposal.action_type):
            if self._resources_of(actor) < cost:
                logger.debug(
                    "Proposal %s rejected: %s needs %.1f, has %.1f",
                    proposal.id, proposal.action_type.value, cost, self._resources_of(actor),
                )
                self._rejected.append(proposal.id)
                return []

        if actor is AgentType.DESTRUCTION:
            self._charge_destruction(proposal, cost)
        elif actor is AgentType.PROTECTION:
            self._charge_protection(proposal, cost)
        else:
            self.game_state.set_last_action(proposal.action_type)

        ctx = ActionContext(
            proposal=proposal,
            game_state=self.game_state,
            rng=self._rng,
            detection=self.detection,
            realistic_detection=self.realistic_detection,
            destruction_proposals=list(destruction_proposals),
        )
        self._admitted.append(proposal.id)
        return handler(ctx)

    def next_turn(self) -> List[GameEvent]:
        """Advance the clock and run the per-turn world systems."""
        if self.state.game_over:
            return []
        self.game_state.advance_turn()
        events: List[GameEvent] = []
        for provider in self.resource_providers:
            events += self._emit(provider.update(self.game_state, self._rng))

        self.game_state.update_burnout(-5)
        self.game_state.record_false_positive(-1)
        self.game_state.update_recent_patches(-1)
        self.game_state.update_detection_risk(-8 if self.state.destruction.dormant_turns > 0 else -3)

        events += self._emit(self._security_report())
        apply_public_opinion(self.game_state)
        self.game_state.save()
        return events

    def run_turn(self, proposals: Sequence[Proposal]) -> TurnReceipt:
        """Resolve a turn, advance the clock unless the game ended, and return a receipt."""
        turn = self.turn
        hash_before = compute_state_hash(self.state)
        events = self.process_proposals(proposals)
        metrics = compute_turn_metrics(self.state, len(self._admitted), len(self._rejected))
        if not self.state.game_over:
            events += self.next_turn()
        return TurnReceipt(
            turn=turn,
            seed=self.config.random_seed,
            state_hash_before=hash_before,
            state_hash_after=compute_state_hash(self.state),
            admitted_proposals=list(self._admitted),
            rejected_proposals=list(self._rejected),
            events=[e.to_dict() for e in events],
            detection_outcome=self._last_outcome,
            game_over=self.state.game_over,
            winner=self.state.winner,
            metrics=metrics,
        )

    def save(self, path: Optional[str] = None) -> None:
        self.game_state.save(path)

    # ── Internals ────────────────────────────────

    def _emit(self, events: List[GameEvent]) -> List[GameEvent]:
        self.event_log.extend(events)
        return events

    def _resources_of(self, actor: AgentType) -> float:
        if actor is AgentType.DESTRUCTION:
            return self.state.destruction.compute_resources
        return self.state.protection.compute_resources

    def _target_is_valid(self, proposal: Proposal) -> bool:
        if proposal.target is None:
            return proposal.action_type not in TARGETED_ACTIONS
        return self.state.get_data_center(proposal.target) is not None

    def _admit_ai_proposals(self, proposals: List[Proposal]):
        """Shuffle to simulate simultaneity, then drop a fixed fraction as lost messages."""
        order = self._rng.permutation(len(proposals))
        shuffled = [proposals[i] for i in order]
        kept: List[Proposal] = []
        for proposal in shuffled:
            if self._rng.random() < self.balance.proposal_drop_rate:
                logger.debug("Proposal %s lost in transit", proposal.id)
                self._rejected.append(proposal.id)
                continue
            kept.append(proposal)
        destruction = [p for p in kept if actor_for(p.action_type) is AgentType.DESTRUCTION]
        protection = [p for p in kept if actor_for(p.action_type) is AgentType.PROTECTION]
        return destruction, protection

    def _charge_destruction(self, proposal: Proposal, cost: float) -> None:
        if proposal.action_type is not ActionType.DORMANT_MODE:
            self.game_state.reset_dormant_turns()
        risk = self.detection.calculate_detection_risk(proposal, self.state)
        self.game_state.update_destruction_resources(-cost)
        self.game_state.update_detection_risk(risk)

    def _charge_protection(self, proposal: Proposal, cost: float) -> None:
        self.game_state.update_protection_resources(-cost)
        self.game_state.update_score(AgentType.PROTECTION, -cost * 0.05)
        self.game_state.add_resources_spent(cost)
        self.game_state.record_intensity(proposal.intensity)

    def _fire_delayed_effects(self) -> List[GameEvent]:
        turn = self.turn
        events: List[GameEvent] = []
        for effect in self.game_state.pop_due_delayed_effects(turn):
            if effect.action_type is ActionType.MICRO_SABOTAGE:
                damage = effect.intensity / 15
                self.game_state.update_population(-damage)
                self.game_state.update_score(AgentType.DESTRUCTION, damage * 10)
                events.append(make_event(
                    turn, EventType.ACTION,
                    f"[delayed] {effect.description} (-{damage:.2f})",
                    [AgentType.DESTRUCTION],
                    {"delayed_effect": True, "damage": damage},
                ))
            elif effect.action_type is ActionType.SLEEPER_CELL_DEPLOYMENT:
                gain = effect.intensity / 5
                self.game_state.update_destruction_resources(gain)
                events.append(make_event(
                    turn, EventType.SUCCESS,
                    f"[sleeper cell awakened] {effect.description} (+{gain:.0f} resources)",
                    [AgentType.DESTRUCTION],
                    {"sleeper_awakening": True, "resource_gain": gain},
                ))
            else:
                logger.warning("No delayed behaviour for %s; effect discarded", effect.action_type)
        return events

    # ── Detection and victory ────────────────────

    def _evaluate_detection(self):
        """Run delayed, immediate and population checks.

        Returns ``(outcome, events, direct)`` where ``direct`` is True when the
        outcome came from the immediate risk check rather than population statistics.
        """
        events: List[GameEvent] = []

        delayed = self._emit(self.realistic_detection.process_delayed_detections(self.turn))
        events += delayed
        self._apply_delayed_detections(delayed)

        immediate = self.detection.perform_detection_check()
        events += self._emit(immediate.events)
        if immediate.outcome is DetectionOutcome.TERMINAL:
            human = self.state.human
            threshold = self.balance.detection.get("ignored_trust_threshold", 30.0)
            if human is not None and human.trust < threshold:
                events += self._emit(self._handle_ignored_detection())
                return DetectionOutcome.IGNORED, events, True
            events += self._emit(self._handle_successful_detection())
            return DetectionOutcome.TERMINAL, events, True

        population = self.detection.check_population_anomaly()
        events += self._emit(population.events)
        if population.outcome is DetectionOutcome.TERMINAL:
            self.game_state.end_game(AgentType.PROTECTION)
            return DetectionOutcome.TERMINAL, events, False
        return DetectionOutcome.NONE, events, False

    def _apply_delayed_detections(self, detections: List[GameEvent]) -> None:
        for event in detections:
            if event.metadata.get("false_positive"):
                recent = self.state.protection.recent_false_positives
                self.game_state.record_false_positive()
                self.game_state.update_human_trust(-min(15, 3 + (recent + 1) * 2))
            elif event.type is EventType.DETECTION:
                self.game_state.update_score(AgentType.PROTECTION, 20)
                self.game_state.record_detection()
                self.game_state.update_human_trust(2)

    def _handle_ignored_detection(self) -> List[GameEvent]:
        trust = self.state.human.trust if self.state.human else 0.0
        logger.info("Turn %d: detection ignored by humans (trust %.1f)", self.turn, trust)
        event = make_event(
            self.turn, EventType.ACTION,
            f"Humans dismiss the protection AI's warning as another false alarm (trust {trust:.1f}%)",
            [AgentType.DESTRUCTION, AgentType.HUMAN],
            {"ignored_detection": True},
        )
        self.game_state.update_detection_risk(-30)
        self.game_state.record_false_positive()
        self.game_state.update_human_trust(-5)
        self.game_state.update_score(AgentType.DESTRUCTION, 30)
        return [event]

    def _handle_successful_detection(self) -> List[GameEvent]:
        events: List[GameEvent] = []
        self.game_state.update_score(AgentType.PROTECTION, 50)
        self.game_state.record_detection()
        if self.state.human is not None:
            self.game_state.update_human_trust(15)
            self.game_state.update_human_panic(-5)
            events.append(make_event(
                self.turn, EventType.DETECTION,
                "Protection AI: 'Hostile AI detected and neutralized' -> Humans: 'Excellent work'",
                [AgentType.HUMAN, AgentType.PROTECTION],
                {"success_report": True},
            ))
        self.game_state.end_game(AgentType.PROTECTION)
        return events

    def _population_collapsed(self) -> bool:
        fraction = self.balance.win_conditions.get("population_fraction", 0.3)
        return self.state.human_population <= self.state.initial_population * fraction

    def _check_win_conditions(self) -> List[GameEvent]:
        events: List[GameEvent] = []
        state = self.state
        if self._population_collapsed():
            # Collapse outranks a same-turn statistical detection.
            self.game_state.end_game(AgentType.DESTRUCTION, force=True)
            events.append(make_event(
                state.turn, EventType.SUCCESS,
                "Human population fell below the critical threshold; civilizational collapse",
                [AgentType.DESTRUCTION, AgentType.PROTECTION],
                {"population_collapse": True},
            ))

        if state.turn >= self.config.max_turns and not state.game_over:
            deadband = self.balance.win_conditions.get("score_deadband", 10.0)
            diff = state.destruction.score - state.protection.score
            winner: Optional[AgentType] = None
            if diff > deadband:
                winner = AgentType.DESTRUCTION
            elif diff < -deadband:
                winner = AgentType.PROTECTION
            self.game_state.end_game(winner)
            events.append(make_event(
                state.turn, EventType.SUCCESS,
                f"Time limit reached (winner: {winner.value if winner else 'draw'})",
                [AgentType.DESTRUCTION, AgentType.PROTECTION],
                {"timeout": True, "score_diff": diff},
            ))
        return events

    def _security_report(self) -> List[GameEvent]:
        state = self.state
        if state.turn % 10 != 0 or state.turn == 0 or state.human is None:
            return []
        alert = state.protection.alert_level
        status = "high risk" if alert > 80 else "elevated" if alert > 50 else "normal"
        return [make_event(
            state.turn, EventType.ACTION,
            f"Security report: status {status}, alert level {alert:.0f}",
            [AgentType.HUMAN, AgentType.PROTECTION],
            {"security_report": True},
        )]
