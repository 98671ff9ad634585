"""Tests for pool notifications."""

import pytest
from eth_abi import decode
from pydantic import ValidationError

from cpamm.events import EventBus, LiquidityAdded, LiquidityRemoved, SwapExecuted
from tests.helpers import ALICE, BOB, TKA, TKB


def make_swap(amount_out: int = 362) -> SwapExecuted:
    return SwapExecuted(
        asset_a=TKA,
        asset_b=TKB,
        sender=ALICE,
        recipient=BOB,
        amount_in=100,
        amount_out=amount_out,
    )


class TestPoolEvents:
    """Tests for event models."""

    def test_names(self):
        assert make_swap().name == "SwapExecuted"
        assert LiquidityAdded.SIGNATURE.startswith("LiquidityAdded(")
        assert LiquidityRemoved.SIGNATURE.startswith("LiquidityRemoved(")

    def test_encode_data_is_uint256_words(self):
        data = make_swap().encode_data()
        assert len(data) == 64
        assert decode(["uint256", "uint256"], data) == (100, 362)

    def test_liquidity_event_encoding(self):
        event = LiquidityAdded(
            asset_a=TKA,
            asset_b=TKB,
            sender=ALICE,
            recipient=ALICE,
            amount_a=1000,
            amount_b=4000,
            liquidity=2000,
        )
        assert decode(["uint256"] * 3, event.encode_data()) == (1000, 4000, 2000)

    def test_events_are_frozen(self):
        event = make_swap()
        with pytest.raises(ValidationError):
            event.amount_out = 1

    def test_negative_amounts_rejected(self):
        with pytest.raises(ValidationError):
            make_swap(amount_out=-1)


class TestEventBus:
    """Tests for EventBus."""

    def test_publish_reaches_listeners_and_history(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        event = make_swap()
        bus.publish(event)
        assert received == [event]
        assert bus.history == [event]

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        bus.unsubscribe(received.append)
        bus.unsubscribe(received.append)
        bus.publish(make_swap())
        assert received == []

    def test_failing_listener_does_not_block_others(self):
        bus = EventBus()
        received = []

        def explode(_event):
            raise RuntimeError("listener failure")

        bus.subscribe(explode)
        bus.subscribe(received.append)
        bus.publish(make_swap())
        assert len(received) == 1

    def test_history_can_be_disabled(self):
        bus = EventBus(keep_history=False)
        bus.publish(make_swap())
        assert bus.history == []
