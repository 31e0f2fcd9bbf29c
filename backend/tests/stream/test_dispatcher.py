"""Tests for BroadcastDispatcher."""

import json
from unittest.mock import patch

from app.market.models import PriceUpdate
from app.stream.directory import ConnectionDirectory
from app.stream.dispatcher import BroadcastDispatcher


def _update(instrument: str, price: float) -> PriceUpdate:
    return PriceUpdate(instrument=instrument, price=price, timestamp=1700000000.0)


class TestBroadcastDispatcher:
    """Unit tests for per-tick fan-out."""

    def test_dispatch_only_to_interested(self, make_connection, drain):
        directory = ConnectionDirectory()
        dispatcher = BroadcastDispatcher(directory)
        goog, tsla, unbound = make_connection(), make_connection(), make_connection()
        directory.bind(goog, "a@x.com", {"GOOG"})
        directory.bind(tsla, "b@x.com", {"TSLA"})

        assert dispatcher.dispatch(_update("GOOG", 101.234)) == 1

        assert drain(goog) == [
            {
                "type": "price_update",
                "instrument": "GOOG",
                "price": 101.23,
                "timestamp": "2023-11-14T22:13:20.000Z",
            }
        ]
        assert drain(tsla) == []
        assert drain(unbound) == []

    def test_dispatch_with_no_listeners(self):
        dispatcher = BroadcastDispatcher(ConnectionDirectory())
        assert dispatcher.dispatch(_update("GOOG", 100.0)) == 0

    def test_closed_connection_is_skipped_and_unbound(self, make_connection, drain):
        """Test that a dead connection does not block others and is removed."""
        directory = ConnectionDirectory()
        dispatcher = BroadcastDispatcher(directory)
        dead, alive = make_connection(), make_connection()
        directory.bind(dead, "a@x.com", {"GOOG"})
        directory.bind(alive, "b@x.com", {"GOOG"})
        dead.close()

        assert dispatcher.dispatch(_update("GOOG", 100.0)) == 1

        assert dead not in directory
        assert len(drain(alive)) == 1

    def test_per_instrument_order_preserved(self, make_connection, drain):
        directory = ConnectionDirectory()
        dispatcher = BroadcastDispatcher(directory)
        conn = make_connection()
        directory.bind(conn, "a@x.com", {"GOOG", "TSLA"})

        for i in range(20):
            dispatcher.dispatch(_update("GOOG", 100.0 + i))
            dispatcher.dispatch(_update("TSLA", 200.0 + i))

        goog_prices = [m["price"] for m in drain(conn) if m["instrument"] == "GOOG"]
        assert goog_prices == [100.0 + i for i in range(20)]

    def test_slow_connection_drops_oldest_without_affecting_others(self, make_connection, drain):
        directory = ConnectionDirectory()
        dispatcher = BroadcastDispatcher(directory)
        slow, fast = make_connection(max_queue=2), make_connection()
        directory.bind(slow, "a@x.com", {"GOOG"})
        directory.bind(fast, "b@x.com", {"GOOG"})

        for i in range(5):
            dispatcher.dispatch(_update("GOOG", 100.0 + i))

        assert [m["price"] for m in drain(slow)] == [103.0, 104.0]
        assert len(drain(fast)) == 5

    def test_deliver_counts_accepted(self, make_connection):
        directory = ConnectionDirectory()
        dispatcher = BroadcastDispatcher(directory)
        a, b = make_connection(), make_connection()
        b.close()
        assert dispatcher.deliver([a, b], {"type": "ping"}) == 1

    def test_frame_encoded_once_per_tick(self, make_connection):
        """Test that every recipient gets the same encoded text."""
        directory = ConnectionDirectory()
        dispatcher = BroadcastDispatcher(directory)
        conns = [make_connection() for _ in range(50)]
        for i, conn in enumerate(conns):
            directory.bind(conn, f"user{i}@x.com", {"GOOG"})

        with patch("app.stream.dispatcher.json.dumps", wraps=json.dumps) as dumps:
            assert dispatcher.dispatch(_update("GOOG", 100.0)) == 50

        assert dumps.call_count == 1
        payloads = {id(conn._queue[0]) for conn in conns}
        assert len(payloads) == 1
