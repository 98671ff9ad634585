"""All-or-nothing execution of pool operations.

A Transaction journals an undo action for every mutation it performs (store
writes, ledger mints/burns, token movements). If the operation raises, the
journal is replayed in reverse and the exception propagates; if it
succeeds, the queued events are handed back for publication.

ReentrancyGuard serializes operations per pair across threads and rejects
any nested entry from the thread already running an operation.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from types import TracebackType

import structlog

from cpamm.errors import AMMError, ReentrantCall, TransferFailed
from cpamm.events import PoolEvent
from cpamm.pools.ledger import LiquidityLedger
from cpamm.pools.reserves import ReserveStore
from cpamm.pools.types import PairKey, Reserves
from cpamm.tokens import ReversibleTokenTransfer, TokenTransfer

logger = structlog.get_logger()


class Transaction:
    """Undo journal for one pool operation.

    Usage:
        with Transaction("swap", pair) as tx:
            tx.debit(token_in, sender, amount_in)
            tx.adjust_reserves(store, pair, amount_in, -amount_out)
            tx.emit(event)
        events = tx.events
    """

    def __init__(self, operation: str, pair: PairKey) -> None:
        self.operation = operation
        self.pair = pair
        self.events: list[PoolEvent] = []
        self._undo: list[tuple[str, Callable[[], None]]] = []
        self._closed = False

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is not None:
            self.rollback(reason=type(exc).__name__)
        else:
            self._undo.clear()
        self._closed = True
        return False

    def on_rollback(self, label: str, action: Callable[[], None]) -> None:
        """Register a compensating action for a mutation already applied."""
        if self._closed:
            raise RuntimeError(f"Transaction {self.operation} is already closed")
        self._undo.append((label, action))

    def emit(self, event: PoolEvent) -> None:
        """Queue an event; it is only released if the transaction commits."""
        self.events.append(event)

    def rollback(self, reason: str) -> None:
        """Undo every journaled mutation, newest first."""
        steps = len(self._undo)
        while self._undo:
            label, action = self._undo.pop()
            try:
                action()
            except Exception:
                # Keep unwinding so the remaining steps still get reverted
                logger.exception(
                    "rollback_step_failed",
                    operation=self.operation,
                    pair=str(self.pair),
                    step=label,
                )
        self.events.clear()
        logger.debug(
            "transaction_rolled_back",
            operation=self.operation,
            pair=str(self.pair),
            reason=reason,
            steps=steps,
        )

    # --- Journaled mutations ---

    def debit(self, token: TokenTransfer, account: str, amount: int) -> None:
        """Debit account into custody.

        Raises:
            TransferFailed: If the token fails with anything but a pool error
        """
        try:
            token.debit(account, amount)
        except AMMError:
            raise
        except Exception as exc:
            raise TransferFailed(f"Debit of {amount} from {account} failed: {exc}") from exc
        if isinstance(token, ReversibleTokenTransfer):
            self.on_rollback("refund", lambda: token.refund(account, amount))
        else:
            self.on_rollback("refund", lambda: token.credit(account, amount))

    def credit(self, token: TokenTransfer, account: str, amount: int) -> None:
        """Credit account out of custody.

        Raises:
            TransferFailed: If the token fails with anything but a pool error
        """
        try:
            token.credit(account, amount)
        except AMMError:
            raise
        except Exception as exc:
            raise TransferFailed(f"Credit of {amount} to {account} failed: {exc}") from exc
        if isinstance(token, ReversibleTokenTransfer):
            self.on_rollback("reclaim", lambda: token.reclaim(account, amount))
        else:
            self.on_rollback("reclaim", lambda: token.debit(account, amount))

    def adjust_reserves(
        self, store: ReserveStore, pair: PairKey, delta_a: int, delta_b: int
    ) -> Reserves:
        """Apply reserve deltas; returns the new reserves."""
        previous = store.adjust(pair, delta_a, delta_b)
        self.on_rollback("restore_reserves", lambda: store.set(pair, previous))
        return store.get(pair)

    def mint(self, ledger: LiquidityLedger, pair: PairKey, owner: str, amount: int) -> None:
        ledger.mint(pair, owner, amount)
        self.on_rollback("unmint", lambda: ledger.burn(pair, owner, amount))

    def burn(self, ledger: LiquidityLedger, pair: PairKey, owner: str, amount: int) -> None:
        ledger.burn(pair, owner, amount)
        self.on_rollback("unburn", lambda: ledger.mint(pair, owner, amount))


class ReentrancyGuard:
    """Per-pair serialization plus a per-thread reentrancy flag.

    Operations on the same pair take the same lock; operations on different
    pairs never contend. A thread that is already inside a guarded operation
    (for example through a token transfer hook) gets ReentrantCall instead of
    deadlocking on its own lock.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[PairKey, threading.Lock] = {}
        self._local = threading.local()

    @property
    def entered(self) -> bool:
        return getattr(self._local, "entered", False)

    def lock_for(self, pair: PairKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(pair)
            if lock is None:
                lock = threading.Lock()
                self._locks[pair] = lock
            return lock

    @contextmanager
    def enter(self, operation: str, target: str) -> Iterator[None]:
        """Mark the current thread as inside an operation.

        Checked before any argument validation, so a nested call fails the
        same way whatever its arguments. Take lock_for() once the pair is
        known to be valid.

        Raises:
            ReentrantCall: If the current thread is already inside an operation
        """
        if self.entered:
            logger.warning("reentrant_call_rejected", operation=operation, pair=target)
            raise ReentrantCall(f"{operation} on {target} re-entered a running operation")
        self._local.entered = True
        try:
            yield
        finally:
            self._local.entered = False


__all__ = ["ReentrancyGuard", "Transaction"]
