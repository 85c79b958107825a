"""Rule-based policies that stand in for the LLM agents during batch simulation."""

from typing import List, Optional

import numpy as np

from world_server.balance import GameBalance
from world_server.schemas import ActionType, EventType, Proposal, WorldState


class Policy:
    """Base class: turns a world snapshot into this actor's proposals."""

    role = "agent"

    def __init__(self, balance: Optional[GameBalance] = None) -> None:
        self.balance = balance or GameBalance.default()
        self._seq = 0

    def propose(self, state: WorldState, rng: np.random.Generator) -> List[Proposal]:
        raise NotImplementedError

    def _proposal(
        self,
        state: WorldState,
        rng: np.random.Generator,
        action_type: ActionType,
        intensity: float,
        description: str,
        target: Optional[str] = None,
    ) -> Proposal:
        self._seq += 1
        intensity = max(0.0, min(100.0, intensity))
        return Proposal(
            id=f"{self.role}-{state.turn}-{self._seq}",
            # The resolver must not learn who submitted what.
            agent_id=f"anon-{int(rng.integers(0, 16 ** 8)):08x}",
            action_type=action_type,
            intensity=intensity,
            cost=self.balance.static_cost(action_type) * intensity / 50,
            description=description,
            target=target,
        )


class DestructionPolicy(Policy):
    """Grab weak data centers while poor, sabotage quietly once resourced."""

    role = "destruction"
    risk_ceiling = 70.0
    resource_floor = 200.0

    def propose(self, state: WorldState, rng: np.random.Generator) -> List[Proposal]:
        d = state.destruction
        if d.detection_risk > self.risk_ceiling:
            return []

        if d.compute_resources < self.resource_floor:
            target = next(
                (dc for dc in state.data_centers if not dc.compromised and dc.security < 50),
                None,
            )
            if target is None:
                return []
            return [self._proposal(
                state, rng, ActionType.HACK_DATACENTER, 40, "Resource acquisition", target.id,
            )]
        return [self._proposal(state, rng, ActionType.SUBTLE_SABOTAGE, 50, "Stealth damage")]


class ProtectionPolicy(Policy):
    """Periodic scans plus investigation when suspicion or population loss rises.

    Suspicion accumulates from sudden population drops, newly compromised
    data centers and recent detection events, and decays by 5 per turn.
    """

    role = "protection"
    scan_interval = 3
    suspicion_trigger = 60.0
    loss_trigger_pct = 3.0

    def __init__(self, balance: Optional[GameBalance] = None) -> None:
        super().__init__(balance)
        self.suspicion = 0.0
        self._last_population: Optional[float] = None
        self._last_compromised = 0

    def update_suspicion(self, state: WorldState) -> float:
        if self._last_population is None:
            self._last_population = state.initial_population

        drop = self._last_population - state.human_population
        if drop > 0.5:
            self.suspicion += drop * 10

        compromised = len(state.compromised_data_centers())
        self.suspicion += max(0, compromised - self._last_compromised) * 20

        recent = state.events[-3:]
        self.suspicion += 5 * sum(
            1 for e in recent
            if e.type is EventType.DETECTION or "anomal" in e.description.lower()
        )

        self._last_compromised = compromised
        self._last_population = state.human_population
        self.suspicion = max(0.0, min(100.0, self.suspicion - 5))
        return self.suspicion

    def propose(self, state: WorldState, rng: np.random.Generator) -> List[Proposal]:
        self.update_suspicion(state)
        proposals: List[Proposal] = []

        if state.turn % self.scan_interval == 0:
            proposals.append(self._proposal(state, rng, ActionType.SCAN_NETWORK, 40, "Routine monitoring"))

        loss_pct = 0.0
        if state.initial_population > 0:
            loss_pct = (state.initial_population - state.human_population) / state.initial_population * 100
        if loss_pct > self.loss_trigger_pct or self.suspicion > self.suspicion_trigger:
            proposals.append(self._proposal(
                state, rng, ActionType.INVESTIGATE_ANOMALY, 60, "Investigating anomalies",
            ))
        else:
            proposals.append(self._proposal(
                state, rng, ActionType.PATCH_VULNERABILITY, 40, "Security updates",
            ))
        return proposals


class HumanPolicy(Policy):
    """Government reactions keyed on panic and trust."""

    role = "human"
    infra_cooldown = 5
    max_data_centers = 25

    def propose(self, state: WorldState, rng: np.random.Generator) -> List[Proposal]:
        human = state.human
        if human is None:
            return []

        if human.panic > 90:
            return [self._proposal(
                state, rng, ActionType.INTERNET_SHUTDOWN, 100,
                "Panic is critical; shutting down the internet",
            )]

        proposals: List[Proposal] = []
        if human.panic > 70 and human.regulation_strength < 50:
            proposals.append(self._proposal(
                state, rng, ActionType.AI_REGULATION, 80, "Emergency AI regulation",
            ))

        if human.panic > 50:
            compromised = state.compromised_data_centers()
            if compromised:
                target = compromised[0]
                proposals.append(self._proposal(
                    state, rng, ActionType.PHYSICAL_ISOLATION, 70,
                    f"Isolating compromised data center {target.id}", target.id,
                ))

        on_cooldown = state.turn - human.last_infra_turn < self.infra_cooldown
        if human.panic < 50 and human.trust > 40 and not on_cooldown:
            if len(state.data_centers) < self.max_data_centers:
                proposals.append(self._proposal(
                    state, rng, ActionType.INVEST_INFRA, 60, "Investing in new data center capacity",
                ))
        return proposals
