"""Token transfer collaborators.

The pool never holds balances itself; it asks a per-asset TokenTransfer to
debit depositors/traders into pool custody and to credit recipients out of
it. InMemoryToken is a reference implementation with balances and
allowances, used by the HTTP service and the tests.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import structlog

from cpamm.errors import TransferFailed

logger = structlog.get_logger()

# Account that holds tokens custodied by the pool
POOL_CUSTODY = "pool"

TransferHook = Callable[[str, str, str, int], None]


@runtime_checkable
class TokenTransfer(Protocol):
    """Transfer capability for one asset.

    Both methods raise TransferFailed when the movement cannot happen.
    """

    def debit(self, account: str, amount: int) -> None:
        """Move amount from account into pool custody."""
        ...

    def credit(self, account: str, amount: int) -> None:
        """Move amount from pool custody to account."""
        ...


@runtime_checkable
class ReversibleTokenTransfer(TokenTransfer, Protocol):
    """Transfer capability that can undo its own movements exactly.

    Tokens without these methods are reverted with the opposite movement
    (credit for a debit, debit for a credit).
    """

    def refund(self, account: str, amount: int) -> None:
        """Undo a debit of amount from account."""
        ...

    def reclaim(self, account: str, amount: int) -> None:
        """Undo a credit of amount to account."""
        ...


class InMemoryToken:
    """Balance/allowance ledger for a single asset.

    Debits require both a balance and an allowance granted to the pool via
    approve(), unless the token was created with require_approval=False.
    Movements are serialized by an internal lock, since pools on different
    pairs may share a token.

    Hooks registered with add_hook() run after every completed movement with
    (kind, asset, account, amount), where kind is "debit" or "credit". A hook
    that raises reverts the movement before the error propagates.
    """

    def __init__(self, asset: str, *, require_approval: bool = True) -> None:
        self.asset = asset
        self.require_approval = require_approval
        self._balances: dict[str, int] = {}
        self._allowances: dict[str, int] = {}
        self._hooks: list[TransferHook] = []
        self._lock = threading.RLock()

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str) -> int:
        return self._allowances.get(owner, 0)

    def mint(self, account: str, amount: int) -> None:
        """Create new tokens for account (faucet / test seeding)."""
        if amount < 0:
            raise ValueError(f"Cannot mint negative amount: {amount}")
        with self._lock:
            self._balances[account] = self.balance_of(account) + amount

    def approve(self, owner: str, amount: int) -> None:
        """Set how much the pool may debit from owner."""
        if amount < 0:
            raise ValueError(f"Allowance cannot be negative: {amount}")
        with self._lock:
            self._allowances[owner] = amount

    def add_hook(self, hook: TransferHook) -> None:
        self._hooks.append(hook)

    def debit(self, account: str, amount: int) -> None:
        """Move amount from account into pool custody.

        Raises:
            TransferFailed: If balance or allowance is insufficient
        """
        with self._lock:
            balance = self.balance_of(account)
            if balance < amount:
                raise TransferFailed(
                    f"{self.asset}: balance of {account} is {balance}, cannot debit {amount}"
                )
            if self.require_approval:
                allowance = self.allowance(account)
                if allowance < amount:
                    raise TransferFailed(
                        f"{self.asset}: allowance of {account} is {allowance}, "
                        f"cannot debit {amount}"
                    )
                self._allowances[account] = allowance - amount
            self._move(account, POOL_CUSTODY, amount)
        try:
            self._run_hooks("debit", account, amount)
        except Exception:
            self.refund(account, amount)
            raise

    def credit(self, account: str, amount: int) -> None:
        """Move amount from pool custody to account.

        Raises:
            TransferFailed: If custody holds less than amount
        """
        with self._lock:
            custody = self.balance_of(POOL_CUSTODY)
            if custody < amount:
                raise TransferFailed(
                    f"{self.asset}: custody holds {custody}, cannot credit {amount}"
                )
            self._move(POOL_CUSTODY, account, amount)
        try:
            self._run_hooks("credit", account, amount)
        except Exception:
            self.reclaim(account, amount)
            raise

    def refund(self, account: str, amount: int) -> None:
        """Undo a debit: return tokens and the consumed allowance."""
        with self._lock:
            self._move(POOL_CUSTODY, account, amount)
            if self.require_approval:
                self._allowances[account] = self.allowance(account) + amount

    def reclaim(self, account: str, amount: int) -> None:
        """Undo a credit: pull tokens back into custody without an allowance."""
        with self._lock:
            self._move(account, POOL_CUSTODY, amount)

    def _move(self, source: str, target: str, amount: int) -> None:
        balance = self.balance_of(source)
        if balance < amount:
            raise TransferFailed(f"{self.asset}: {source} holds {balance}, cannot move {amount}")
        self._balances[source] = balance - amount
        self._balances[target] = self.balance_of(target) + amount

    def _run_hooks(self, kind: str, account: str, amount: int) -> None:
        for hook in self._hooks:
            hook(kind, self.asset, account, amount)


class TokenRegistry:
    """Maps asset identifiers to their transfer capability."""

    def __init__(self, tokens: dict[str, TokenTransfer] | None = None) -> None:
        self._tokens: dict[str, TokenTransfer] = dict(tokens or {})

    def register(self, asset: str, token: TokenTransfer) -> None:
        if asset in self._tokens:
            logger.debug("token_replaced", asset=asset)
        self._tokens[asset] = token

    def get(self, asset: str) -> TokenTransfer:
        """Transfer capability for asset.

        Raises:
            TransferFailed: If no token is registered for asset
        """
        token = self._tokens.get(asset)
        if token is None:
            raise TransferFailed(f"No token registered for asset {asset}")
        return token

    def ensure_in_memory(self, asset: str) -> InMemoryToken:
        """Return the in-memory token for asset, creating it if missing.

        Raises:
            TypeError: If asset is backed by a different token implementation
        """
        token = self._tokens.get(asset)
        if token is None:
            token = InMemoryToken(asset)
            self._tokens[asset] = token
        if not isinstance(token, InMemoryToken):
            raise TypeError(f"Asset {asset} is not an in-memory token: {type(token).__name__}")
        return token

    def __contains__(self, asset: object) -> bool:
        return asset in self._tokens


__all__ = [
    "InMemoryToken",
    "POOL_CUSTODY",
    "ReversibleTokenTransfer",
    "TokenRegistry",
    "TokenTransfer",
    "TransferHook",
]
