"""Pytest configuration and fixtures."""

import json

import pytest

from app.market.cache import PriceCache
from app.stream.connection import ClientConnection
from app.stream.directory import ConnectionDirectory
from app.stream.dispatcher import BroadcastDispatcher
from app.stream.session import SessionController
from app.subscriptions.registry import SubscriptionRegistry


class FakeWebSocket:
    """Records text frames and closes; optionally fails every send."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[str] = []
        self.fail = fail
        self.close_code: int | None = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.close_code = code

    @property
    def messages(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]


def drain_messages(conn: ClientConnection) -> list[dict]:
    """Pop every queued (unwritten) message from a connection."""
    out = [json.loads(payload) for payload in conn._queue]
    conn._queue.clear()
    return out


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture
def drain():
    return drain_messages


@pytest.fixture
def make_connection():
    """Factory for unstarted connections backed by a FakeWebSocket."""

    def _make(max_queue: int = 256, fail: bool = False, on_failure=None) -> ClientConnection:
        return ClientConnection(FakeWebSocket(fail=fail), max_queue=max_queue, on_failure=on_failure)

    return _make


@pytest.fixture
def fake_websocket():
    return FakeWebSocket


@pytest.fixture
def price_cache():
    cache = PriceCache()
    cache.update("GOOG", 150.0)
    cache.update("TSLA", 250.0)
    cache.update("AMZN", 185.0)
    return cache


@pytest.fixture
def registry():
    return SubscriptionRegistry()


@pytest.fixture
def directory():
    return ConnectionDirectory()


@pytest.fixture
def dispatcher(directory):
    return BroadcastDispatcher(directory)


@pytest.fixture
def controller(registry, directory, price_cache, dispatcher):
    return SessionController(registry, directory, price_cache, dispatcher)
