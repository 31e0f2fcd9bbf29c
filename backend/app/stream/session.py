"""Connection lifecycle and subscription control plane."""

from __future__ import annotations

import asyncio
import json
import logging
from threading import Lock
from typing import Any

from app.market.cache import PriceCache
from app.subscriptions.errors import InvalidIdentity
from app.subscriptions.registry import SubscriptionRegistry

from . import messages
from .connection import ClientConnection
from .directory import ConnectionDirectory
from .dispatcher import BroadcastDispatcher

logger = logging.getLogger(__name__)


class SessionController:
    """Binds connections to users and keeps the directory in step with the registry.

    Per connection:

        unbound --register--> bound --register--> bound (fresh snapshot)
           |                    |
           +------close---------+-----> closed (terminal)

    Registration, close and every subscription mutation run under one lock,
    so a registry change and its directory synchronization are applied as a
    single step: a registering connection either snapshots the set before a
    change (and then receives its notification) or after it.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        directory: ConnectionDirectory,
        price_cache: PriceCache,
        dispatcher: BroadcastDispatcher | None = None,
        max_queue: int = 256,
    ) -> None:
        self._registry = registry
        self._directory = directory
        self._cache = price_cache
        self._dispatcher = dispatcher or BroadcastDispatcher(directory)
        self._max_queue = max_queue
        self._connections: set[ClientConnection] = set()
        self._lock = Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # --- Connection lifecycle ---

    def open(self, websocket: Any) -> ClientConnection:
        """Track a newly accepted socket and start its writer."""
        conn = ClientConnection(websocket, max_queue=self._max_queue, on_failure=self.close)
        with self._lock:
            self._connections.add(conn)
        conn.start()
        logger.info("Connection #%d opened (%d open)", conn.id, len(self._connections))
        return conn

    def register(self, conn: ClientConnection, user_key: str | None) -> bool:
        """Bind a connection to a user and send the initial snapshot.

        An unknown user leaves the connection unbound and gets a single
        ``register_failed`` frame.
        """
        with self._lock:
            if conn.closed:
                return False
            subscriptions = self._registry.get(user_key) if user_key else None
            if subscriptions is None:
                logger.info("Connection #%d tried to register unknown user %r", conn.id, user_key)
                conn.send(messages.register_failed(user_key, "User not found. Please login first."))
                return False

            prices = self._cache.get_prices(subscriptions)
            self._directory.bind(conn, user_key, subscriptions)
            conn.bind(user_key)
            conn.send(messages.initial_prices(prices, subscriptions))

        logger.info(
            "Connection #%d registered as %s (%d subscriptions)",
            conn.id,
            user_key,
            len(subscriptions),
        )
        return True

    def close(self, conn: ClientConnection) -> None:
        """Close a connection and drop its directory entry. Idempotent."""
        with self._lock:
            conn.close()
            entry = self._directory.unbind(conn)
            known = conn in self._connections
            self._connections.discard(conn)
        if known:
            logger.info(
                "Connection #%d closed%s",
                conn.id,
                f" ({entry.user_key})" if entry else "",
            )

    async def close_all(self) -> None:
        with self._lock:
            conns = list(self._connections)
        for conn in conns:
            self.close(conn)
        await asyncio.gather(*(conn.wait_closed() for conn in conns))

    def handle_message(self, conn: ClientConnection, raw: str) -> None:
        """Route one inbound text frame."""
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Connection #%d sent malformed JSON", conn.id)
            return
        if not isinstance(data, dict):
            logger.warning("Connection #%d sent a non-object frame", conn.id)
            return

        msg_type = data.get("type")
        if msg_type == "register":
            user_key = data.get("userKey", data.get("email"))
            self.register(conn, user_key if isinstance(user_key, str) else None)
        else:
            logger.debug("Connection #%d sent unknown message type %r", conn.id, msg_type)

    # --- Control plane ---

    def supported_instruments(self) -> list[str]:
        return list(self._registry.instruments)

    def login(self, user_key: str | None) -> frozenset[str]:
        if not user_key or "@" not in user_key:
            raise InvalidIdentity(user_key)
        return self._registry.login(user_key)

    def subscribe(self, user_key: str, instrument: str) -> frozenset[str]:
        with self._lock:
            subscriptions = self._registry.subscribe(user_key, instrument)
            conns = self._directory.add_instrument(user_key, instrument)
            price = self._cache.get_price(instrument)
            self._dispatcher.deliver(conns, messages.subscription_added(instrument, price))
        return subscriptions

    def unsubscribe(self, user_key: str, instrument: str) -> frozenset[str]:
        with self._lock:
            subscriptions = self._registry.unsubscribe(user_key, instrument)
            conns = self._directory.remove_instrument(user_key, instrument)
            self._dispatcher.deliver(conns, messages.subscription_removed(instrument))
        return subscriptions
