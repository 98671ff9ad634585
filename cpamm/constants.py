"""Protocol constants for the constant-product pool.

Centralizes the fee, scaling and bit-width parameters shared by the
pricing math and the pool controller.
"""

# Fee applied to swap input: amount_in_with_fee = amount_in * 997 / 1000 (0.3%)
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000

# Fixed-point scale for spot prices (1e18)
PRICE_SCALE = 10**18

# Reserves are stored in 128-bit slots; caller amounts are uint256
RESERVE_BITS = 128
UINT128_MAX = 2**RESERVE_BITS - 1
UINT256_MAX = 2**256 - 1

# Length of a single-hop swap route: [asset_in, asset_out]
ROUTE_LENGTH = 2
