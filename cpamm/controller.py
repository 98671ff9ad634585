"""Pool controller.

The PoolController is the only component that mutates pool state. Every
public operation:

1. enters the reentrancy guard, so a nested call fails before anything else,
2. validates deadline, route, assets and amounts,
3. takes the pair's lock and prices the operation with the
   constant-product math,
4. applies token movements, reserve updates and ledger changes inside a
   Transaction, so any failure reverts all of them,
5. publishes its notification after the transaction commits.

Pairs are directed: liquidity added to (A, B) is not visible to a swap
routed as [B, A].
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager

import structlog

from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.constants import ROUTE_LENGTH
from cpamm.errors import (
    AMMError,
    Expired,
    IdenticalAssets,
    InsufficientBalance,
    InvalidAmount,
    InvalidRoute,
    SlippageExceeded,
)
from cpamm.events import EventBus, LiquidityAdded, LiquidityRemoved, PoolEvent, SwapExecuted
from cpamm.math.pricing import ConstantProductMath
from cpamm.pools.ledger import LiquidityLedger
from cpamm.pools.reserves import ReserveStore
from cpamm.pools.types import PairKey
from cpamm.safe_int import S
from cpamm.tokens import TokenRegistry
from cpamm.transaction import ReentrancyGuard, Transaction

logger = structlog.get_logger()


class PoolController:
    """Orchestrates liquidity and swap operations over all directed pairs.

    Args:
        tokens: Transfer capability per asset
        config: Pool arithmetic constants
        clock: Returns the current unix time; deadlines are compared against it
        events: Bus receiving committed notifications (a new one if None)
    """

    def __init__(
        self,
        tokens: TokenRegistry,
        config: PoolConfig = DEFAULT_POOL_CONFIG,
        clock: Callable[[], float] = time.time,
        events: EventBus | None = None,
    ) -> None:
        self.tokens = tokens
        self.config = config
        self.pricing = ConstantProductMath(config)
        self.reserves = ReserveStore(config)
        self.ledger = LiquidityLedger()
        self.events = events if events is not None else EventBus()
        self._clock = clock
        self._guard = ReentrancyGuard()

    # --- Mutating operations ---

    def add_liquidity(
        self,
        sender: str,
        asset_a: str,
        asset_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        recipient: str,
        deadline: int,
    ) -> tuple[int, int, int]:
        """Deposit both assets of a pair and mint liquidity to recipient.

        The accepted amounts are resolved against the current reserve ratio
        first; the sender is debited only those, never more than desired.

        Returns:
            Tuple of (amount_a, amount_b, liquidity) actually deposited/minted

        Raises:
            ReentrantCall, Expired, IdenticalAssets, InvalidAmount,
            TransferFailed, SlippageExceeded, Overflow
        """
        pair = PairKey(asset_a, asset_b)
        with self._operation("add_liquidity", str(pair)) as committed:
            self._check_deadline(deadline)
            self._check_pair(pair)
            self._require_amount("amount_a_desired", amount_a_desired)
            self._require_amount("amount_b_desired", amount_b_desired)
            self._require_amount("amount_a_min", amount_a_min, allow_zero=True)
            self._require_amount("amount_b_min", amount_b_min, allow_zero=True)
            token_a = self.tokens.get(asset_a)
            token_b = self.tokens.get(asset_b)

            with self._transaction("add_liquidity", pair, committed) as tx:
                amount_a, amount_b, liquidity = self._deposit_amounts(
                    pair, amount_a_desired, amount_b_desired, amount_a_min, amount_b_min
                )
                if amount_a < amount_a_min or amount_b < amount_b_min:
                    raise SlippageExceeded(
                        f"Deposit ({amount_a}, {amount_b}) below minimum ({amount_a_min}, {amount_b_min})"
                    )

                tx.debit(token_a, sender, amount_a)
                tx.debit(token_b, sender, amount_b)
                tx.adjust_reserves(self.reserves, pair, amount_a, amount_b)
                tx.mint(self.ledger, pair, recipient, liquidity)

                tx.emit(
                    LiquidityAdded(
                        asset_a=asset_a,
                        asset_b=asset_b,
                        sender=sender,
                        recipient=recipient,
                        amount_a=amount_a,
                        amount_b=amount_b,
                        liquidity=liquidity,
                    )
                )

        logger.info(
            "liquidity_added",
            pair=str(pair),
            sender=sender,
            recipient=recipient,
            amount_a=amount_a,
            amount_b=amount_b,
            liquidity=liquidity,
        )
        return amount_a, amount_b, liquidity

    def remove_liquidity(
        self,
        sender: str,
        asset_a: str,
        asset_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        recipient: str,
        deadline: int,
    ) -> tuple[int, int]:
        """Burn sender's liquidity and pay the proportional reserves to recipient.

        Returned amounts are rounded down; the remainder stays in the pool.

        Returns:
            Tuple of (amount_a, amount_b) paid out

        Raises:
            ReentrantCall, Expired, IdenticalAssets, InvalidAmount,
            InsufficientBalance, SlippageExceeded, TransferFailed
        """
        pair = PairKey(asset_a, asset_b)
        with self._operation("remove_liquidity", str(pair)) as committed:
            self._check_deadline(deadline)
            self._check_pair(pair)
            self._require_amount("liquidity", liquidity)
            self._require_amount("amount_a_min", amount_a_min, allow_zero=True)
            self._require_amount("amount_b_min", amount_b_min, allow_zero=True)
            token_a = self.tokens.get(asset_a)
            token_b = self.tokens.get(asset_b)

            with self._transaction("remove_liquidity", pair, committed) as tx:
                balance = self.ledger.balance_of(pair, sender)
                if balance < liquidity:
                    raise InsufficientBalance(
                        f"{sender} holds {balance} liquidity of {pair}, cannot burn {liquidity}"
                    )

                reserves = self.reserves.get(pair)
                total_supply = self.ledger.total_supply(pair)
                amount_a = self.pricing.proportional_share(liquidity, reserves.reserve_a, total_supply)
                amount_b = self.pricing.proportional_share(liquidity, reserves.reserve_b, total_supply)
                if amount_a < amount_a_min or amount_b < amount_b_min:
                    raise SlippageExceeded(
                        f"Withdrawal ({amount_a}, {amount_b}) below minimum ({amount_a_min}, {amount_b_min})"
                    )

                tx.burn(self.ledger, pair, sender, liquidity)
                tx.adjust_reserves(self.reserves, pair, -amount_a, -amount_b)
                tx.credit(token_a, recipient, amount_a)
                tx.credit(token_b, recipient, amount_b)

                tx.emit(
                    LiquidityRemoved(
                        asset_a=asset_a,
                        asset_b=asset_b,
                        sender=sender,
                        recipient=recipient,
                        amount_a=amount_a,
                        amount_b=amount_b,
                        liquidity=liquidity,
                    )
                )

        logger.info(
            "liquidity_removed",
            pair=str(pair),
            sender=sender,
            recipient=recipient,
            amount_a=amount_a,
            amount_b=amount_b,
            liquidity=liquidity,
        )
        return amount_a, amount_b

    def swap_exact(
        self,
        sender: str,
        amount_in: int,
        amount_out_min: int,
        route: Sequence[str],
        recipient: str,
        deadline: int,
    ) -> tuple[int, int]:
        """Swap an exact input along a two-asset route [asset_in, asset_out].

        The whole input, fee included, is added to the input reserve.

        Returns:
            Tuple of (amount_in, amount_out)

        Raises:
            ReentrantCall, InvalidRoute, Expired, IdenticalAssets, InvalidAmount,
            InvalidInput (empty pool), TransferFailed, SlippageExceeded, Overflow
        """
        with self._operation("swap", "/".join(map(str, route))) as committed:
            if len(route) != ROUTE_LENGTH:
                raise InvalidRoute(f"Route must be [asset_in, asset_out], got {len(route)} assets")
            asset_in, asset_out = route
            pair = PairKey(asset_in, asset_out)
            self._check_deadline(deadline)
            self._check_pair(pair)
            self._require_amount("amount_in", amount_in)
            self._require_amount("amount_out_min", amount_out_min, allow_zero=True)
            token_in = self.tokens.get(asset_in)
            token_out = self.tokens.get(asset_out)

            with self._transaction("swap", pair, committed) as tx:
                tx.debit(token_in, sender, amount_in)

                reserves = self.reserves.get(pair)
                amount_out = self.pricing.quote_output(amount_in, reserves.reserve_a, reserves.reserve_b)
                if amount_out == 0:
                    raise InvalidAmount(f"Swap of {amount_in} {asset_in} yields no {asset_out}")
                if amount_out < amount_out_min:
                    raise SlippageExceeded(f"Swap output {amount_out} below minimum {amount_out_min}")

                tx.adjust_reserves(self.reserves, pair, amount_in, -amount_out)
                tx.credit(token_out, recipient, amount_out)

                tx.emit(
                    SwapExecuted(
                        asset_a=asset_in,
                        asset_b=asset_out,
                        sender=sender,
                        recipient=recipient,
                        amount_in=amount_in,
                        amount_out=amount_out,
                    )
                )

        logger.info(
            "swap_executed",
            pair=str(pair),
            sender=sender,
            recipient=recipient,
            amount_in=amount_in,
            amount_out=amount_out,
        )
        return amount_in, amount_out

    # --- Read-only queries ---

    def quote_output(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        return self.pricing.quote_output(amount_in, reserve_in, reserve_out)

    def quote_input(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        return self.pricing.quote_input(amount_out, reserve_in, reserve_out)

    def spot_price(self, asset_a: str, asset_b: str) -> int:
        """Price of asset_b in units of asset_a for the (asset_a, asset_b) pool, scaled by 1e18.

        Raises:
            ZeroReserves: If the pool holds no liquidity
        """
        reserves = self.reserves.get(PairKey(asset_a, asset_b))
        return self.pricing.spot_price(reserves.reserve_a, reserves.reserve_b)

    def get_reserves(self, asset_a: str, asset_b: str) -> tuple[int, int]:
        return self.reserves.get(PairKey(asset_a, asset_b)).as_tuple()

    def total_supply(self, asset_a: str, asset_b: str) -> int:
        return self.ledger.total_supply(PairKey(asset_a, asset_b))

    def balance_of(self, asset_a: str, asset_b: str, owner: str) -> int:
        return self.ledger.balance_of(PairKey(asset_a, asset_b), owner)

    def check_invariants(self, asset_a: str, asset_b: str) -> list[str]:
        """Describe every broken pool invariant of a pair (empty if healthy)."""
        pair = PairKey(asset_a, asset_b)
        reserves = self.reserves.get(pair)
        total_supply = self.ledger.total_supply(pair)
        violations = []
        if not (reserves.is_empty or reserves.is_active):
            violations.append(f"one-sided reserves {reserves.as_tuple()}")
        if (total_supply == 0) != reserves.is_empty:
            violations.append(f"total supply {total_supply} with reserves {reserves.as_tuple()}")
        if not self.ledger.is_consistent(pair):
            violations.append("depositor balances do not sum to total supply")
        return violations

    # --- Internals ---

    @contextmanager
    def _operation(self, name: str, target: str) -> Iterator[list[PoolEvent]]:
        """Reentrancy scope of one public call; yields the list of committed events."""
        committed: list[PoolEvent] = []
        with self._guard.enter(name, target):
            try:
                yield committed
            except AMMError as exc:
                logger.warning(
                    "operation_rejected",
                    operation=name,
                    pair=target,
                    error=exc.code,
                    detail=str(exc),
                )
                raise
        # Published outside the guard so listeners may call back into the pool
        for event in committed:
            self.events.publish(event)

    @contextmanager
    def _transaction(
        self, name: str, pair: PairKey, committed: list[PoolEvent]
    ) -> Iterator[Transaction]:
        """Hold the pair lock around an all-or-nothing Transaction."""
        with self._guard.lock_for(pair), Transaction(name, pair) as tx:
            yield tx
        committed.extend(tx.events)

    def _deposit_amounts(
        self,
        pair: PairKey,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> tuple[int, int, int]:
        """Resolve accepted deposit amounts and the liquidity they mint."""
        reserves = self.reserves.get(pair)
        total_supply = self.ledger.total_supply(pair)

        if total_supply == 0:
            # First depositor sets the price
            liquidity = self.pricing.initial_liquidity(amount_a_desired, amount_b_desired)
            return amount_a_desired, amount_b_desired, liquidity

        amount_b_optimal = self.pricing.quote(amount_a_desired, reserves.reserve_a, reserves.reserve_b)
        if amount_b_optimal <= amount_b_desired:
            if amount_b_optimal < amount_b_min:
                raise SlippageExceeded(
                    f"Matching amount {amount_b_optimal} of {pair.asset_b} below minimum {amount_b_min}"
                )
            amount_a, amount_b = amount_a_desired, amount_b_optimal
        else:
            amount_a_optimal = self.pricing.quote(
                amount_b_desired, reserves.reserve_b, reserves.reserve_a
            )
            if amount_a_optimal < amount_a_min:
                raise SlippageExceeded(
                    f"Matching amount {amount_a_optimal} of {pair.asset_a} below minimum {amount_a_min}"
                )
            amount_a, amount_b = amount_a_optimal, amount_b_desired

        liquidity = self.pricing.proportional_liquidity(amount_a, reserves.reserve_a, total_supply)
        if liquidity == 0:
            raise InvalidAmount(f"Deposit ({amount_a}, {amount_b}) mints no liquidity of {pair}")
        return amount_a, amount_b, liquidity

    def _check_deadline(self, deadline: int) -> None:
        now = self._clock()
        if now > deadline:
            raise Expired(f"Deadline {deadline} passed (now {now:.0f})")

    @staticmethod
    def _check_pair(pair: PairKey) -> None:
        if pair.is_identical:
            raise IdenticalAssets(f"Pair uses the same asset twice: {pair.asset_a}")

    @staticmethod
    def _require_amount(name: str, value: int, allow_zero: bool = False) -> None:
        """Validate a caller-supplied amount.

        Raises:
            InvalidAmount: If value is not a non-negative int, or is zero when not allowed
            Overflow: If value exceeds uint256
        """
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise InvalidAmount(f"{name} must be a non-negative integer, got {value!r}")
        if value == 0 and not allow_zero:
            raise InvalidAmount(f"{name} must be positive")
        S(value).to_uint256()


__all__ = ["PoolController"]
