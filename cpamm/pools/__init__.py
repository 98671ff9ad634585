"""Pool state package.

Provides the reserve store and liquidity ledger mutated by the controller.
"""

from .ledger import LiquidityLedger
from .reserves import ReserveStore
from .types import PairKey, Reserves

__all__ = [
    "LiquidityLedger",
    "PairKey",
    "ReserveStore",
    "Reserves",
]
