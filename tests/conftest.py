import itertools

import pytest

from world_server.resolver import WorldServer
from world_server.schemas import ActionType, GameConfig, Proposal

_ids = itertools.count()


def _make_proposal(action_type, intensity=50.0, cost=0.0, target=None, analysis_depth=None, description="test"):
    return Proposal(
        id=f"p-{next(_ids)}",
        agent_id="anon",
        action_type=ActionType(action_type),
        intensity=intensity,
        cost=cost,
        description=description,
        target=target,
        analysis_depth=analysis_depth,
    )


@pytest.fixture
def make_proposal():
    """Factory for proposals with unique ids."""
    return _make_proposal


@pytest.fixture
def config():
    return GameConfig(random_seed=42)


@pytest.fixture
def server(config):
    return WorldServer(config)


@pytest.fixture
def game_state(server):
    return server.game_state
