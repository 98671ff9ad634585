"""State-change notifications.

The controller queues one event per successful operation and publishes it
to subscribers only after the operation has committed, so listeners never
observe an operation that was later rolled back.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

import structlog
from eth_abi import encode  # type: ignore[attr-defined]
from pydantic import BaseModel, Field

logger = structlog.get_logger()


class PoolEvent(BaseModel):
    """Common fields of every pool notification."""

    # Solidity-style event signature, used as the log topic
    SIGNATURE: ClassVar[str] = ""
    # Names of the uint256 amount fields, in log data order
    DATA_FIELDS: ClassVar[tuple[str, ...]] = ()

    asset_a: str = Field(description="First asset of the directed pair.")
    asset_b: str = Field(description="Second asset of the directed pair.")
    sender: str = Field(description="Account that supplied or burned funds.")
    recipient: str = Field(description="Account that received liquidity or tokens.")

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        return self.SIGNATURE.split("(", 1)[0]

    def encode_data(self) -> bytes:
        """ABI-encode the event's amounts as uint256 log data."""
        values = [getattr(self, field) for field in self.DATA_FIELDS]
        return encode(["uint256"] * len(values), values)


class LiquidityAdded(PoolEvent):
    """Liquidity was deposited and claims minted to the recipient."""

    SIGNATURE: ClassVar[str] = "LiquidityAdded(uint256,uint256,uint256)"
    DATA_FIELDS: ClassVar[tuple[str, ...]] = ("amount_a", "amount_b", "liquidity")

    amount_a: int = Field(ge=0)
    amount_b: int = Field(ge=0)
    liquidity: int = Field(ge=0)


class LiquidityRemoved(PoolEvent):
    """Claims were burned and the proportional reserves paid out."""

    SIGNATURE: ClassVar[str] = "LiquidityRemoved(uint256,uint256,uint256)"
    DATA_FIELDS: ClassVar[tuple[str, ...]] = ("amount_a", "amount_b", "liquidity")

    amount_a: int = Field(ge=0)
    amount_b: int = Field(ge=0)
    liquidity: int = Field(ge=0)


class SwapExecuted(PoolEvent):
    """An exact-input swap settled against the pair (asset_a in, asset_b out)."""

    SIGNATURE: ClassVar[str] = "SwapExecuted(uint256,uint256)"
    DATA_FIELDS: ClassVar[tuple[str, ...]] = ("amount_in", "amount_out")

    amount_in: int = Field(ge=0)
    amount_out: int = Field(ge=0)


EventListener = Callable[[PoolEvent], None]


class EventBus:
    """Fan-out of committed pool events to listeners.

    A listener that raises is logged and skipped; it cannot undo an
    operation that has already committed.
    """

    def __init__(self, keep_history: bool = True) -> None:
        self._listeners: list[EventListener] = []
        self._keep_history = keep_history
        self.history: list[PoolEvent] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: PoolEvent) -> None:
        if self._keep_history:
            self.history.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("event_listener_failed", event_name=event.name)


__all__ = [
    "EventBus",
    "EventListener",
    "LiquidityAdded",
    "LiquidityRemoved",
    "PoolEvent",
    "SwapExecuted",
]
