"""Pytest configuration and fixtures."""

import pytest

from cpamm.controller import PoolController
from cpamm.tokens import InMemoryToken, TokenRegistry
from tests.helpers import ALICE, BOB, CAROL, DEADLINE, TKA, TKB, TKC, FakeClock, make_registry


@pytest.fixture
def clock() -> FakeClock:
    """Clock pinned to NOW; advance it to expire deadlines."""
    return FakeClock()


@pytest.fixture
def tokens() -> TokenRegistry:
    """Three in-memory tokens with ALICE, BOB and CAROL funded and approved."""
    return make_registry([TKA, TKB, TKC], accounts=[ALICE, BOB, CAROL])


@pytest.fixture
def controller(tokens: TokenRegistry, clock: FakeClock) -> PoolController:
    """Controller with every pair empty."""
    return PoolController(tokens, clock=clock)


@pytest.fixture
def seeded(controller: PoolController) -> PoolController:
    """Controller whose (TKA, TKB) pool holds reserves (1000, 4000), all owned by ALICE."""
    controller.add_liquidity(ALICE, TKA, TKB, 1000, 4000, 0, 0, ALICE, DEADLINE)
    return controller


def token(controller: PoolController, asset: str) -> InMemoryToken:
    """The in-memory token backing asset."""
    found = controller.tokens.get(asset)
    assert isinstance(found, InMemoryToken)
    return found
