"""Pydantic request/response models for the pool service.

Amounts travel as decimal strings so uint256 values survive JSON clients
that only have doubles.
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer

from cpamm.constants import UINT256_MAX


def validate_uint256(value: Any) -> int:
    """Parse a uint256 from a decimal string or int.

    Raises:
        ValueError: If value is not a non-negative integer within uint256 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint256 cannot be a boolean")
    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if int_value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")
    return int_value


# 256-bit unsigned integer, parsed to int and serialized as decimal string
Uint256 = Annotated[
    int,
    BeforeValidator(validate_uint256),
    PlainSerializer(str, return_type=str),
    Field(description="256-bit unsigned integer as decimal string"),
]

# Opaque asset / account identifier
Identifier = Annotated[str, Field(min_length=1, max_length=128)]


class AddLiquidityRequest(BaseModel):
    sender: Identifier
    asset_a: Identifier = Field(alias="assetA")
    asset_b: Identifier = Field(alias="assetB")
    amount_a_desired: Uint256 = Field(alias="amountADesired")
    amount_b_desired: Uint256 = Field(alias="amountBDesired")
    amount_a_min: Uint256 = Field(default=0, alias="amountAMin")
    amount_b_min: Uint256 = Field(default=0, alias="amountBMin")
    recipient: Identifier
    deadline: int = Field(ge=0, description="Unix time after which the request is rejected.")

    model_config = {"populate_by_name": True}


class AddLiquidityResponse(BaseModel):
    amount_a: Uint256 = Field(alias="amountA")
    amount_b: Uint256 = Field(alias="amountB")
    liquidity: Uint256

    model_config = {"populate_by_name": True}


class RemoveLiquidityRequest(BaseModel):
    sender: Identifier
    asset_a: Identifier = Field(alias="assetA")
    asset_b: Identifier = Field(alias="assetB")
    liquidity: Uint256
    amount_a_min: Uint256 = Field(default=0, alias="amountAMin")
    amount_b_min: Uint256 = Field(default=0, alias="amountBMin")
    recipient: Identifier
    deadline: int = Field(ge=0)

    model_config = {"populate_by_name": True}


class RemoveLiquidityResponse(BaseModel):
    amount_a: Uint256 = Field(alias="amountA")
    amount_b: Uint256 = Field(alias="amountB")

    model_config = {"populate_by_name": True}


class SwapRequest(BaseModel):
    sender: Identifier
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out_min: Uint256 = Field(default=0, alias="amountOutMin")
    route: list[Identifier] = Field(description="[assetIn, assetOut]")
    recipient: Identifier
    deadline: int = Field(ge=0)

    model_config = {"populate_by_name": True}


class SwapResponse(BaseModel):
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class QuoteRequest(BaseModel):
    amount_in: Uint256 = Field(alias="amountIn")
    reserve_in: Uint256 = Field(alias="reserveIn")
    reserve_out: Uint256 = Field(alias="reserveOut")

    model_config = {"populate_by_name": True}


class QuoteResponse(BaseModel):
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class PairState(BaseModel):
    """Snapshot of one directed pair."""

    asset_a: str = Field(alias="assetA")
    asset_b: str = Field(alias="assetB")
    reserve_a: Uint256 = Field(alias="reserveA")
    reserve_b: Uint256 = Field(alias="reserveB")
    total_supply: Uint256 = Field(alias="totalSupply")
    spot_price: Uint256 | None = Field(
        default=None,
        alias="spotPrice",
        description="reserveA * 1e18 / reserveB, absent for an empty pool.",
    )

    model_config = {"populate_by_name": True}


class TokenAmountRequest(BaseModel):
    account: Identifier
    amount: Uint256


class BalanceResponse(BaseModel):
    account: str
    balance: Uint256


class ErrorResponse(BaseModel):
    error: str
    detail: str
