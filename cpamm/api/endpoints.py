"""API endpoints for the pool service."""

from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends

from cpamm.controller import PoolController
from cpamm.errors import ZeroReserves
from cpamm.events import EventBus
from cpamm.models import (
    AddLiquidityRequest,
    AddLiquidityResponse,
    BalanceResponse,
    PairState,
    QuoteRequest,
    QuoteResponse,
    RemoveLiquidityRequest,
    RemoveLiquidityResponse,
    SwapRequest,
    SwapResponse,
    TokenAmountRequest,
)
from cpamm.tokens import TokenRegistry

logger = structlog.get_logger()

router = APIRouter()


@lru_cache(maxsize=1)
def get_default_controller() -> PoolController:
    """Process-wide controller backed by in-memory tokens, keeping no event history."""
    return PoolController(TokenRegistry(), events=EventBus(keep_history=False))


def get_controller() -> PoolController:
    """Dependency provider for the pool controller.

    Override this in tests to inject a fresh controller:
        app.dependency_overrides[get_controller] = lambda: controller
    """
    return get_default_controller()


@router.post("/liquidity/add")
def add_liquidity(
    request: AddLiquidityRequest,
    controller: PoolController = Depends(get_controller),
) -> AddLiquidityResponse:
    amount_a, amount_b, liquidity = controller.add_liquidity(
        sender=request.sender,
        asset_a=request.asset_a,
        asset_b=request.asset_b,
        amount_a_desired=request.amount_a_desired,
        amount_b_desired=request.amount_b_desired,
        amount_a_min=request.amount_a_min,
        amount_b_min=request.amount_b_min,
        recipient=request.recipient,
        deadline=request.deadline,
    )
    return AddLiquidityResponse(amount_a=amount_a, amount_b=amount_b, liquidity=liquidity)


@router.post("/liquidity/remove")
def remove_liquidity(
    request: RemoveLiquidityRequest,
    controller: PoolController = Depends(get_controller),
) -> RemoveLiquidityResponse:
    amount_a, amount_b = controller.remove_liquidity(
        sender=request.sender,
        asset_a=request.asset_a,
        asset_b=request.asset_b,
        liquidity=request.liquidity,
        amount_a_min=request.amount_a_min,
        amount_b_min=request.amount_b_min,
        recipient=request.recipient,
        deadline=request.deadline,
    )
    return RemoveLiquidityResponse(amount_a=amount_a, amount_b=amount_b)


@router.post("/swap")
def swap(
    request: SwapRequest,
    controller: PoolController = Depends(get_controller),
) -> SwapResponse:
    amount_in, amount_out = controller.swap_exact(
        sender=request.sender,
        amount_in=request.amount_in,
        amount_out_min=request.amount_out_min,
        route=request.route,
        recipient=request.recipient,
        deadline=request.deadline,
    )
    return SwapResponse(amount_in=amount_in, amount_out=amount_out)


@router.post("/quote")
def quote(
    request: QuoteRequest,
    controller: PoolController = Depends(get_controller),
) -> QuoteResponse:
    """Read-only swap quote against caller-supplied reserves."""
    amount_out = controller.quote_output(request.amount_in, request.reserve_in, request.reserve_out)
    return QuoteResponse(amount_out=amount_out)


@router.get("/pairs/{asset_a}/{asset_b}")
def pair_state(
    asset_a: str,
    asset_b: str,
    controller: PoolController = Depends(get_controller),
) -> PairState:
    reserve_a, reserve_b = controller.get_reserves(asset_a, asset_b)
    try:
        spot_price: int | None = controller.spot_price(asset_a, asset_b)
    except ZeroReserves:
        spot_price = None
    return PairState(
        asset_a=asset_a,
        asset_b=asset_b,
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        total_supply=controller.total_supply(asset_a, asset_b),
        spot_price=spot_price,
    )


@router.get("/pairs/{asset_a}/{asset_b}/balances/{owner}")
def liquidity_balance(
    asset_a: str,
    asset_b: str,
    owner: str,
    controller: PoolController = Depends(get_controller),
) -> BalanceResponse:
    return BalanceResponse(account=owner, balance=controller.balance_of(asset_a, asset_b, owner))


@router.post("/tokens/{asset}/mint")
def mint_tokens(
    asset: str,
    request: TokenAmountRequest,
    controller: PoolController = Depends(get_controller),
) -> BalanceResponse:
    """Faucet: create in-memory tokens for an account."""
    token = controller.tokens.ensure_in_memory(asset)
    token.mint(request.account, request.amount)
    logger.info("tokens_minted", asset=asset, account=request.account, amount=request.amount)
    return BalanceResponse(account=request.account, balance=token.balance_of(request.account))


@router.post("/tokens/{asset}/approve")
def approve_tokens(
    asset: str,
    request: TokenAmountRequest,
    controller: PoolController = Depends(get_controller),
) -> BalanceResponse:
    """Allow the pool to debit up to amount from account."""
    token = controller.tokens.ensure_in_memory(asset)
    token.approve(request.account, request.amount)
    return BalanceResponse(account=request.account, balance=token.balance_of(request.account))


@router.get("/tokens/{asset}/balances/{account}")
def token_balance(
    asset: str,
    account: str,
    controller: PoolController = Depends(get_controller),
) -> BalanceResponse:
    """Balance of an in-memory token; unknown assets read as zero and stay unregistered."""
    if asset not in controller.tokens:
        return BalanceResponse(account=account, balance=0)
    token = controller.tokens.ensure_in_memory(asset)
    return BalanceResponse(account=account, balance=token.balance_of(account))
