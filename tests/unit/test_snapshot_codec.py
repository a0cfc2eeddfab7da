"""
Tests for wire and state snapshots.

Covers exact encoding, deterministic output and restoring a fresh
simulator from either snapshot form.
"""

import json

import pytest

from streamsim.simulator import (
    STATE_CHANNEL_SUBSCRIBED,
    BitmexSimulator,
    FilteredStateError,
    Snapshot,
)
from streamsim.simulator.bitmex_codec import decode_channel_list


def subscribed(channel):
    return json.dumps({"success": True, "subscribe": channel}).encode()


def book(action, *elements):
    return json.dumps({"table": "orderBookL2", "action": action, "data": list(elements)}).encode()


def order(order_id, side, price, size, symbol="XBTUSD"):
    return {"symbol": symbol, "id": order_id, "side": side, "size": size, "price": price}


def populated(channel_filter=None, reverse=False):
    """Simulator with two channels and a small two-symbol book."""
    sim = BitmexSimulator(channel_filter=channel_filter)
    channels = ["trade", "orderBookL2"]
    elements = [
        order(8799285500, "Sell", 7147.5, 4),
        order(8799285550, "Buy", 7144.5, 10),
        order(8799285551, "Buy", 7144.0, 3),
        order(17, "Sell", 250.25, 1, symbol="ETHUSD"),
        order(16, "Buy", 250.0, 2, symbol="ETHUSD"),
    ]
    if reverse:
        channels.reverse()
        elements.reverse()
    for ch in channels:
        sim.process_message_websocket(subscribed(ch))
    for elem in elements:
        sim.process_message_websocket(book("insert", elem))
    return sim


class TestWireSnapshot:
    """Tests for take_snapshot."""

    def test_exact_frames(self):
        snapshots = populated().take_snapshot()

        assert [s.channel for s in snapshots] == ["orderBookL2", "trade", "orderBookL2"]
        assert snapshots[0].snapshot == (
            b'{"success":true,"subscribe":"orderBookL2",'
            b'"request":{"op":"subscribe","args":["orderBookL2"]}}'
        )
        assert snapshots[2].snapshot == (
            b'{"table":"orderBookL2","action":"partial","data":['
            b'{"symbol":"ETHUSD","id":16,"side":"Buy","size":2,"price":250},'
            b'{"symbol":"ETHUSD","id":17,"side":"Sell","size":1,"price":250.25},'
            b'{"symbol":"XBTUSD","id":8799285550,"side":"Buy","size":10,"price":7144.5},'
            b'{"symbol":"XBTUSD","id":8799285551,"side":"Buy","size":3,"price":7144},'
            b'{"symbol":"XBTUSD","id":8799285500,"side":"Sell","size":4,"price":7147.5}]}'
        )

    def test_no_book_frame_without_subscription(self):
        sim = BitmexSimulator()
        sim.process_message_websocket(subscribed("trade"))
        sim.process_message_websocket(book("insert", order(1, "Buy", 1.0, 1)))

        snapshots = sim.take_snapshot()
        assert [s.channel for s in snapshots] == ["trade"]

    def test_empty_simulator(self):
        assert BitmexSimulator().take_snapshot() == []

    def test_deterministic_across_insertion_order(self):
        assert populated().take_snapshot() == populated(reverse=True).take_snapshot()

    def test_roundtrip_through_fresh_instance(self):
        original = populated()
        fresh = BitmexSimulator()
        for snap in original.take_snapshot():
            fresh.process_message_channel_known(snap.channel, snap.snapshot)

        assert fresh.order_book.as_dict() == original.order_book.as_dict()
        assert fresh.subscriptions.sorted_channels() == original.subscriptions.sorted_channels()
        assert fresh.take_snapshot() == original.take_snapshot()

    def test_allowed_with_filter(self):
        sim = populated(channel_filter=["orderBookL2"])
        assert [s.channel for s in sim.take_snapshot()] == ["orderBookL2", "orderBookL2"]


class TestStateSnapshot:
    """Tests for take_state_snapshot."""

    def test_exact_frames(self):
        snapshots = populated().take_state_snapshot()

        assert snapshots[0] == Snapshot(STATE_CHANNEL_SUBSCRIBED, b'["orderBookL2","trade"]')
        assert snapshots[1].channel == "orderBookL2"
        data = json.loads(snapshots[1].snapshot)
        assert [e["id"] for e in data] == [16, 17, 8799285550, 8799285551, 8799285500]

    def test_filtered_refuses(self):
        sim = populated(channel_filter=["orderBookL2"])
        with pytest.raises(FilteredStateError):
            sim.take_state_snapshot()

    def test_deterministic_across_insertion_order(self):
        assert populated().take_state_snapshot() == populated(reverse=True).take_state_snapshot()

    def test_roundtrip_through_process_state(self):
        original = populated()
        fresh = BitmexSimulator()
        for snap in original.take_state_snapshot():
            fresh.process_state(snap.channel, snap.snapshot)

        assert fresh.order_book.as_dict() == original.order_book.as_dict()
        assert fresh.take_state_snapshot() == original.take_state_snapshot()

    def test_restore_into_filtered_instance(self):
        original = populated()
        fresh = BitmexSimulator(channel_filter=["trade"])
        for snap in original.take_state_snapshot():
            fresh.process_state(snap.channel, snap.snapshot)

        assert fresh.subscriptions.sorted_channels() == ["trade"]
        assert len(fresh.order_book) == 0

    def test_channel_list_decoding(self):
        assert decode_channel_list(b'["a","b"]') == ["a", "b"]
