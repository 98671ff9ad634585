"""Pool configuration."""

from dataclasses import dataclass

from cpamm.constants import FEE_DENOMINATOR, FEE_NUMERATOR, PRICE_SCALE, RESERVE_BITS


@dataclass(frozen=True)
class PoolConfig:
    """Centralized configuration for pool arithmetic.

    The fee is fixed at 0.3% for every pool; this dataclass only gathers the
    constants in one place so tests and the controller agree on them.

    Attributes:
        fee_numerator: Share of swap input that counts towards pricing (997)
        fee_denominator: Denominator of the fee fraction (1000)
        price_scale: Fixed-point scale for spot prices (1e18)
        reserve_bits: Bit width of each stored reserve (128)
    """

    fee_numerator: int = FEE_NUMERATOR
    fee_denominator: int = FEE_DENOMINATOR
    price_scale: int = PRICE_SCALE
    reserve_bits: int = RESERVE_BITS

    @property
    def reserve_max(self) -> int:
        """Largest value a reserve slot can hold."""
        return 2**self.reserve_bits - 1


# Default configuration instance
DEFAULT_POOL_CONFIG = PoolConfig()
