"""Constant-product pricing engine.

The pool prices swaps with the constant product formula x * y = k, charging
a 0.3% fee on the input amount. The fee stays in the pool, so k grows with
every swap.

All functions here are pure: they read integers and return integers, using
floor division throughout.
"""

from __future__ import annotations

from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.errors import InvalidAmount, InvalidInput, ZeroReserves
from cpamm.safe_int import S


def isqrt(x: int) -> int:
    """Floor of the square root of a non-negative integer.

    Babylonian iteration; returns the unique y with y*y <= x < (y+1)*(y+1).

    Raises:
        InvalidInput: If x is negative
    """
    if x < 0:
        raise InvalidInput(f"Square root of negative value: {x}")
    if x > 3:
        z = x
        y = x // 2 + 1
        while y < z:
            z = y
            y = (x // y + y) // 2
        return z
    if x != 0:
        return 1
    return 0


class ConstantProductMath:
    """Constant-product swap and price math.

    Formula: amount_out = (amount_in * 997 * reserve_out) / (reserve_in * 1000 + amount_in * 997)
    """

    def __init__(self, config: PoolConfig = DEFAULT_POOL_CONFIG) -> None:
        self.config = config

    def quote_output(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate swap output for an exact input.

        The result is always strictly less than reserve_out, so a single swap
        can never drain the pool.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pool
            reserve_out: Reserve of output token in pool

        Returns:
            Output token amount (floored)

        Raises:
            InvalidAmount: If amount_in is not positive
            InvalidInput: If either reserve is not positive
        """
        if amount_in <= 0:
            raise InvalidAmount(f"Swap input must be positive, got {amount_in}")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InvalidInput(f"Insufficient liquidity: reserves ({reserve_in}, {reserve_out})")

        amount_in_with_fee = S(amount_in) * self.config.fee_numerator
        numerator = amount_in_with_fee * S(reserve_out)
        denominator = S(reserve_in) * self.config.fee_denominator + amount_in_with_fee

        return (numerator // denominator).value

    def quote_input(self, amount_out: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate the smallest input that yields at least amount_out.

        Formula: amount_in = (res_in * out * 1000) / ((res_out - out) * 997) + 1

        Raises:
            InvalidAmount: If amount_out is not positive
            InvalidInput: If either reserve is not positive, or amount_out
                is not strictly below reserve_out
        """
        if amount_out <= 0:
            raise InvalidAmount(f"Swap output must be positive, got {amount_out}")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InvalidInput(f"Insufficient liquidity: reserves ({reserve_in}, {reserve_out})")
        if amount_out >= reserve_out:
            raise InvalidInput(f"Output {amount_out} would drain reserve {reserve_out}")

        numerator = S(reserve_in) * S(amount_out) * self.config.fee_denominator
        denominator = (S(reserve_out) - S(amount_out)) * self.config.fee_numerator

        return ((numerator // denominator) + 1).value

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        """Amount of asset B matching amount_a at the current reserve ratio.

        Used to size the second side of a deposit; rounds down.

        Raises:
            InvalidAmount: If amount_a is not positive
            ZeroReserves: If either reserve is zero
        """
        if amount_a <= 0:
            raise InvalidAmount(f"Quote amount must be positive, got {amount_a}")
        if reserve_a <= 0 or reserve_b <= 0:
            raise ZeroReserves(f"Cannot quote against reserves ({reserve_a}, {reserve_b})")
        return (S(amount_a) * S(reserve_b) // S(reserve_a)).value

    def spot_price(self, reserve_a: int, reserve_b: int) -> int:
        """Price of asset B in units of asset A, scaled by price_scale.

        Returns reserve_a * 1e18 / reserve_b.

        Raises:
            ZeroReserves: If either reserve is zero
        """
        if reserve_a <= 0 or reserve_b <= 0:
            raise ZeroReserves(f"Spot price undefined for reserves ({reserve_a}, {reserve_b})")
        return (S(reserve_a) * self.config.price_scale // S(reserve_b)).value

    def initial_liquidity(self, amount_a: int, amount_b: int) -> int:
        """Liquidity minted by the first deposit: isqrt(amount_a * amount_b)."""
        return isqrt((S(amount_a) * S(amount_b)).value)

    def proportional_liquidity(self, amount_a: int, reserve_a: int, total_supply: int) -> int:
        """Liquidity minted by a later deposit: amount_a * total_supply / reserve_a."""
        return (S(amount_a) * S(total_supply) // S(reserve_a)).value

    def proportional_share(self, liquidity: int, reserve: int, total_supply: int) -> int:
        """Reserve returned for burning liquidity, rounded down in the pool's favour."""
        return (S(liquidity) * S(reserve) // S(total_supply)).value


# Singleton instance
constant_product = ConstantProductMath()


__all__ = [
    "ConstantProductMath",
    "constant_product",
    "isqrt",
]
