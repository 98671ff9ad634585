"""Reserve pair store.

Holds the two reserve balances of every directed pair. Records are created
implicitly (all zero) on first read and are never deleted.
"""

from __future__ import annotations

import structlog

from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.errors import Overflow
from cpamm.pools.types import PairKey, Reserves
from cpamm.safe_int import S

logger = structlog.get_logger()


class ReserveStore:
    """Per-pair reserve storage with fixed-width slots.

    Only the pool controller writes to this store. Writes that would exceed
    the configured reserve width raise Overflow and leave the record
    untouched.
    """

    def __init__(self, config: PoolConfig = DEFAULT_POOL_CONFIG) -> None:
        self._config = config
        self._reserves: dict[PairKey, Reserves] = {}

    def get(self, pair: PairKey) -> Reserves:
        """Current reserves for a pair (zero if never touched)."""
        return self._reserves.get(pair, Reserves())

    def set(self, pair: PairKey, reserves: Reserves) -> Reserves:
        """Replace a pair's reserves.

        Args:
            pair: Directed pair key
            reserves: New reserve values

        Returns:
            The previous reserves, for undo journaling

        Raises:
            Overflow: If either value does not fit the reserve width
        """
        bits = self._config.reserve_bits
        try:
            reserve_a = S(reserves.reserve_a).to_bits(bits)
            reserve_b = S(reserves.reserve_b).to_bits(bits)
        except Overflow:
            logger.warning(
                "reserve_overflow",
                pair=str(pair),
                reserve_a=reserves.reserve_a,
                reserve_b=reserves.reserve_b,
                reserve_bits=bits,
            )
            raise

        previous = self.get(pair)
        self._reserves[pair] = Reserves(reserve_a, reserve_b)
        return previous

    def adjust(self, pair: PairKey, delta_a: int, delta_b: int) -> Reserves:
        """Add signed deltas to a pair's reserves.

        Returns:
            The previous reserves

        Raises:
            Overflow: If a reserve would exceed the reserve width or go negative
        """
        current = self.get(pair)
        return self.set(
            pair,
            Reserves(current.reserve_a + delta_a, current.reserve_b + delta_b),
        )

    def pairs(self) -> list[PairKey]:
        """All pairs that have ever been written."""
        return list(self._reserves)

    def __contains__(self, pair: object) -> bool:
        return pair in self._reserves


__all__ = ["ReserveStore"]
