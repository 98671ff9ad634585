"""Tests for the transaction journal and reentrancy guard."""

import threading

import pytest

from cpamm.errors import ReentrantCall, SlippageExceeded, TransferFailed
from cpamm.events import SwapExecuted
from cpamm.pools import LiquidityLedger, PairKey, Reserves, ReserveStore
from cpamm.tokens import POOL_CUSTODY, InMemoryToken
from cpamm.transaction import ReentrancyGuard, Transaction
from tests.helpers import ALICE, BOB, TKA, TKB, RevertingToken

AB = PairKey(TKA, TKB)


@pytest.fixture
def token() -> InMemoryToken:
    token = InMemoryToken(TKA)
    token.mint(ALICE, 1000)
    token.approve(ALICE, 1000)
    return token


class PlainToken:
    """Token without refund/reclaim, reverted with opposite movements."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, int]] = []

    def debit(self, account: str, amount: int) -> None:
        self.calls.append(("debit", account, amount))

    def credit(self, account: str, amount: int) -> None:
        self.calls.append(("credit", account, amount))


class TestTransaction:
    """Tests for Transaction."""

    def test_commit_keeps_mutations(self, token):
        store = ReserveStore()
        ledger = LiquidityLedger()
        with Transaction("add_liquidity", AB) as tx:
            tx.debit(token, ALICE, 100)
            tx.adjust_reserves(store, AB, 100, 400)
            tx.mint(ledger, AB, ALICE, 200)
        assert store.get(AB) == Reserves(100, 400)
        assert ledger.total_supply(AB) == 200
        assert token.balance_of(POOL_CUSTODY) == 100

    def test_failure_reverts_everything(self, token):
        store = ReserveStore()
        store.set(AB, Reserves(1000, 4000))
        ledger = LiquidityLedger()
        ledger.mint(AB, ALICE, 2000)

        with pytest.raises(SlippageExceeded):
            with Transaction("remove_liquidity", AB) as tx:
                tx.debit(token, ALICE, 300)
                tx.credit(token, BOB, 100)
                tx.burn(ledger, AB, ALICE, 500)
                tx.adjust_reserves(store, AB, -250, -1000)
                raise SlippageExceeded("below minimum")

        assert store.get(AB) == Reserves(1000, 4000)
        assert ledger.balance_of(AB, ALICE) == 2000
        assert ledger.total_supply(AB) == 2000
        assert token.balance_of(ALICE) == 1000
        assert token.allowance(ALICE) == 1000
        assert token.balance_of(BOB) == 0
        assert token.balance_of(POOL_CUSTODY) == 0

    def test_events_dropped_on_rollback(self):
        event = SwapExecuted(
            asset_a=TKA, asset_b=TKB, sender=ALICE, recipient=ALICE, amount_in=1, amount_out=1
        )
        with pytest.raises(RuntimeError):
            with Transaction("swap", AB) as tx:
                tx.emit(event)
                raise RuntimeError("boom")
        assert tx.events == []

    def test_events_kept_on_commit(self):
        event = SwapExecuted(
            asset_a=TKA, asset_b=TKB, sender=ALICE, recipient=ALICE, amount_in=1, amount_out=1
        )
        with Transaction("swap", AB) as tx:
            tx.emit(event)
        assert tx.events == [event]

    def test_plain_token_reverted_with_opposite_movement(self):
        plain = PlainToken()
        with pytest.raises(RuntimeError):
            with Transaction("swap", AB) as tx:
                tx.debit(plain, ALICE, 5)
                tx.credit(plain, BOB, 3)
                raise RuntimeError("boom")
        assert plain.calls == [
            ("debit", ALICE, 5),
            ("credit", BOB, 3),
            ("debit", BOB, 3),
            ("credit", ALICE, 5),
        ]

    def test_failed_undo_step_does_not_stop_rollback(self):
        undone = []

        def broken():
            raise RuntimeError("undo failed")

        with pytest.raises(ValueError):
            with Transaction("swap", AB) as tx:
                tx.on_rollback("first", lambda: undone.append("first"))
                tx.on_rollback("broken", broken)
                raise ValueError("boom")
        assert undone == ["first"]

    def test_closed_transaction_rejects_new_steps(self):
        with Transaction("swap", AB) as tx:
            pass
        with pytest.raises(RuntimeError):
            tx.on_rollback("late", lambda: None)

    def test_token_error_becomes_transfer_failed(self):
        with pytest.raises(TransferFailed, match="token contract reverted") as excinfo:
            with Transaction("swap", AB) as tx:
                tx.debit(RevertingToken(), ALICE, 5)
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_credit_error_becomes_transfer_failed(self, token):
        with pytest.raises(TransferFailed):
            with Transaction("swap", AB) as tx:
                tx.debit(token, ALICE, 100)
                tx.credit(RevertingToken(ValueError("bad recipient")), BOB, 1)
        assert token.balance_of(ALICE) == 1000
        assert token.allowance(ALICE) == 1000

    def test_pool_errors_from_token_pass_through(self):
        with pytest.raises(ReentrantCall):
            with Transaction("swap", AB) as tx:
                tx.debit(RevertingToken(ReentrantCall("nested")), ALICE, 5)


class TestReentrancyGuard:
    """Tests for ReentrancyGuard."""

    def test_nested_entry_rejected(self):
        guard = ReentrancyGuard()
        with guard.enter("swap", str(AB)):
            with pytest.raises(ReentrantCall):
                with guard.enter("swap", str(PairKey(TKB, TKA))):
                    pass
        assert not guard.entered

    def test_flag_cleared_after_failure(self):
        guard = ReentrancyGuard()
        with pytest.raises(ValueError):
            with guard.enter("swap", str(AB)):
                raise ValueError("boom")
        with guard.enter("swap", str(AB)):
            assert guard.entered

    def test_same_pair_shares_lock(self):
        guard = ReentrancyGuard()
        assert guard.lock_for(AB) is guard.lock_for(PairKey(TKA, TKB))
        assert guard.lock_for(AB) is not guard.lock_for(PairKey(TKB, TKA))

    def test_other_threads_wait_instead_of_failing(self):
        """A second thread blocks on the pair lock rather than raising."""
        guard = ReentrancyGuard()
        order = []
        inside = threading.Event()
        release = threading.Event()

        def first():
            with guard.enter("swap", str(AB)), guard.lock_for(AB):
                order.append("first-in")
                inside.set()
                release.wait(timeout=5)
                order.append("first-out")

        def second():
            inside.wait(timeout=5)
            with guard.enter("swap", str(AB)), guard.lock_for(AB):
                order.append("second")

        threads = [threading.Thread(target=first), threading.Thread(target=second)]
        for thread in threads:
            thread.start()
        inside.wait(timeout=5)
        release.set()
        for thread in threads:
            thread.join(timeout=5)
        assert order == ["first-in", "first-out", "second"]
