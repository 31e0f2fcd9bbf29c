"""Per-tick fan-out of price updates to interested connections."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

from app.market.models import PriceUpdate

from .connection import ClientConnection
from .directory import ConnectionDirectory

logger = logging.getLogger(__name__)


class BroadcastDispatcher:
    """Delivers price updates and notifications, best effort, per connection.

    Delivery is an enqueue onto each connection's outbound queue, so a slow
    or dead client never delays the tick or any other client. A connection
    that refuses a message is dropped from the directory.
    """

    def __init__(self, directory: ConnectionDirectory) -> None:
        self._directory = directory

    def dispatch(self, update: PriceUpdate) -> int:
        """Fan a price update out to every connection interested in its instrument."""
        conns = self._directory.interested(update.instrument)
        if not conns:
            return 0
        return self.deliver(conns, update.to_message())

    def deliver(self, conns: Iterable[ClientConnection], message: dict) -> int:
        """Send one message to each connection. Returns the number accepted.

        The message is encoded once and the same text is queued everywhere.
        """
        payload = json.dumps(message)
        delivered = 0
        for conn in conns:
            if conn.send_payload(payload):
                delivered += 1
            elif self._directory.unbind(conn) is not None:
                logger.debug("Dropped closed connection #%d from directory", conn.id)
        logger.debug("Delivered %s to %d connections", message.get("type"), delivered)
        return delivered
