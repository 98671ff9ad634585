"""Liquidity ledger.

Tracks, per directed pair, the total supply of liquidity claims and each
depositor's balance. Balances live in a flat table keyed by
(pair, depositor) rather than a map nested per pair.

Invariant: for every pair, the sum of depositor balances equals the total
supply.
"""

from __future__ import annotations

from collections import defaultdict

from cpamm.errors import InsufficientBalance, InvalidAmount
from cpamm.pools.types import PairKey


class LiquidityLedger:
    """Total supply and depositor balances of liquidity claims."""

    def __init__(self) -> None:
        self._total_supply: dict[PairKey, int] = {}
        self._balances: dict[tuple[PairKey, str], int] = {}
        # Secondary index: pair -> depositors with a non-zero balance
        self._holders: defaultdict[PairKey, set[str]] = defaultdict(set)

    def total_supply(self, pair: PairKey) -> int:
        return self._total_supply.get(pair, 0)

    def balance_of(self, pair: PairKey, owner: str) -> int:
        return self._balances.get((pair, owner), 0)

    def holders(self, pair: PairKey) -> dict[str, int]:
        """Depositors of a pair with their non-zero balances."""
        return {owner: self._balances[(pair, owner)] for owner in self._holders.get(pair, ())}

    def mint(self, pair: PairKey, owner: str, amount: int) -> None:
        """Credit new liquidity to owner and grow total supply.

        Raises:
            InvalidAmount: If amount is not positive
        """
        if amount <= 0:
            raise InvalidAmount(f"Mint amount must be positive, got {amount}")
        self._set_balance(pair, owner, self.balance_of(pair, owner) + amount)
        self._total_supply[pair] = self.total_supply(pair) + amount

    def burn(self, pair: PairKey, owner: str, amount: int) -> None:
        """Destroy owner's liquidity and shrink total supply.

        Raises:
            InvalidAmount: If amount is not positive
            InsufficientBalance: If owner holds less than amount
        """
        if amount <= 0:
            raise InvalidAmount(f"Burn amount must be positive, got {amount}")
        balance = self.balance_of(pair, owner)
        if balance < amount:
            raise InsufficientBalance(
                f"{owner} holds {balance} liquidity of {pair}, cannot burn {amount}"
            )
        self._set_balance(pair, owner, balance - amount)
        self._total_supply[pair] = self.total_supply(pair) - amount

    def is_consistent(self, pair: PairKey) -> bool:
        """True if depositor balances sum to the total supply."""
        return sum(self.holders(pair).values()) == self.total_supply(pair)

    def _set_balance(self, pair: PairKey, owner: str, value: int) -> None:
        key = (pair, owner)
        if value == 0:
            self._balances.pop(key, None)
            self._holders[pair].discard(owner)
        else:
            self._balances[key] = value
            self._holders[pair].add(owner)


__all__ = ["LiquidityLedger"]
