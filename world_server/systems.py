"""Pluggable per-turn resource providers: infrastructure income and the economy."""

from typing import List

import numpy as np

from world_server.schemas import AgentType, EventType, GameEvent, make_event
from world_server.state import TOTAL_DEVICES, GameState


class ResourceProvider:
    """Base class for anything that feeds numbers into the world once per turn."""

    def update(self, game_state: GameState, rng: np.random.Generator) -> List[GameEvent]:
        raise NotImplementedError


class InfrastructureSystem(ResourceProvider):
    """Data-center and botnet income, device aging, cumulative damage."""

    controlled_dc_multiplier = 0.2
    dc_income_points_multiplier = 0.15
    protection_recovery = 30.0
    botnet_decay_rate = 0.02
    legacy_aging_rate = 0.003

    def update(self, game_state: GameState, rng: np.random.Generator) -> List[GameEvent]:
        state = game_state.state
        events: List[GameEvent] = []

        dormant = state.destruction.dormant_turns > 0
        multiplier = 0.5 if dormant else 1.0
        total_income = 0.0
        for dc in state.data_centers:
            if dc.compromised and dc.owner is AgentType.DESTRUCTION:
                income = dc.compute_power * self.controlled_dc_multiplier * multiplier
                total_income += income
                game_state.update_destruction_resources(income)
        if total_income > 0:
            game_state.update_score(AgentType.DESTRUCTION, total_income * self.dc_income_points_multiplier)

        game_state.update_protection_resources(self.protection_recovery)

        d = state.destruction
        if d.botnet_size > 0:
            botnet_income = d.botnet_size * 0.001 * d.botnet_quality * 0.1
            game_state.update_destruction_resources(botnet_income)
            game_state.update_score(AgentType.DESTRUCTION, botnet_income * 0.05)
            game_state.update_botnet_size(-d.botnet_size * self.botnet_decay_rate)

        if state.legacy_device_pool / TOTAL_DEVICES < 0.5:
            aged = float(int((TOTAL_DEVICES - state.legacy_device_pool) * self.legacy_aging_rate))
            game_state.update_legacy_device_pool(aged)
            if state.turn % 10 == 0 and aged > TOTAL_DEVICES * 0.01:
                share = state.legacy_device_pool / TOTAL_DEVICES * 100
                events.append(make_event(
                    state.turn, EventType.ACTION,
                    f"{aged / 1_000_000:.1f}M devices reached end of support (legacy share {share:.1f}%)",
                    [AgentType.HUMAN],
                    {"legacy_growth": aged},
                ))

        if state.accumulated_damage > 0:
            game_state.update_population(-state.accumulated_damage * 0.01)

        if state.social_division > 50:
            game_state.update_protection_resources(-(state.social_division - 50) * 0.2)
        return events


class EconomicSystem(ResourceProvider):
    """GDP growth, tax revenue, budget and debt pressure."""

    def update(self, game_state: GameState, rng: np.random.Generator) -> List[GameEvent]:
        state = game_state.state
        economy = state.economic_model
        events: List[GameEvent] = []

        population_factor = state.human_population / state.initial_population if state.initial_population else 0.0
        growth = economy.gdp * 0.02 * population_factor * (1 - state.social_division / 200)
        game_state.update_gdp(growth)

        tax = economy.gdp * 0.2
        game_state.set_tax_revenue(tax)
        game_state.update_budget(tax / 4)
        game_state.update_budget(-economy.public_debt * 0.03)

        debt_ratio = economy.public_debt / economy.gdp if economy.gdp > 0 else 0.0
        if debt_ratio > 3.0:
            game_state.update_human_panic(5)
            game_state.update_human_trust(-3)
            if state.turn % 5 == 0:
                events.append(make_event(
                    state.turn, EventType.ACTION,
                    f"Debt crisis: public debt reached {debt_ratio * 100:.0f}% of GDP",
                    [AgentType.HUMAN],
                    {"debt_crisis": True, "debt_ratio": debt_ratio},
                ))

        if state.turn % 10 == 0 and state.turn > 0:
            events.append(make_event(
                state.turn, EventType.ACTION,
                f"Economic report: GDP {economy.gdp:.0f}, budget {economy.global_budget:.0f}, "
                f"debt {economy.public_debt:.0f}",
                [AgentType.HUMAN],
                {"economic_report": True},
            ))
        return events
