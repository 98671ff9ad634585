"""Pair record types."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PairKey:
    """Directed pair of asset identifiers.

    (A, B) and (B, A) are distinct keys with independent records. Asset
    identifiers are opaque and compared by equality only.
    """

    asset_a: str
    asset_b: str

    @property
    def is_identical(self) -> bool:
        return self.asset_a == self.asset_b

    def __str__(self) -> str:
        return f"{self.asset_a}/{self.asset_b}"


@dataclass(frozen=True)
class Reserves:
    """Reserve balances of one pair, ordered as (asset_a, asset_b)."""

    reserve_a: int = 0
    reserve_b: int = 0

    @property
    def is_empty(self) -> bool:
        return self.reserve_a == 0 and self.reserve_b == 0

    @property
    def is_active(self) -> bool:
        return self.reserve_a > 0 and self.reserve_b > 0

    def as_tuple(self) -> tuple[int, int]:
        return self.reserve_a, self.reserve_b


__all__ = ["PairKey", "Reserves"]
