"""Factory functions for creating test objects.

Usage:
    from tests.helpers import FakeClock, make_registry

    registry = make_registry([TKA, TKB], accounts=[ALICE])
"""

from collections.abc import Iterable

from cpamm.tokens import InMemoryToken, TokenRegistry
from tests.helpers.constants import FUNDING, NOW


class FakeClock:
    """Controllable clock returning unix seconds."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def make_registry(
    assets: Iterable[str],
    accounts: Iterable[str] = (),
    amount: int = FUNDING,
) -> TokenRegistry:
    """Create in-memory tokens with every account funded and approved.

    Args:
        assets: Asset identifiers to register
        accounts: Accounts receiving ``amount`` of each asset plus a matching allowance
        amount: Balance and allowance per account per asset

    Returns:
        TokenRegistry backed by InMemoryToken instances
    """
    accounts = list(accounts)
    registry = TokenRegistry()
    for asset in assets:
        token = InMemoryToken(asset)
        for account in accounts:
            token.mint(account, amount)
            token.approve(account, amount)
        registry.register(asset, token)
    return registry


class RevertingToken:
    """Transfer capability whose movements always raise ``error``."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error if error is not None else RuntimeError("token contract reverted")

    def debit(self, account: str, amount: int) -> None:
        raise self.error

    def credit(self, account: str, amount: int) -> None:
        raise self.error
