"""Per-client WebSocket connection with a bounded outbound queue."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections import deque
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


class TransportFailure(Exception):
    """A write to a client connection failed."""


class ConnectionState(str, Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    CLOSED = "closed"


class ClientConnection:
    """One live duplex channel to a client.

    ``send()`` never blocks: it serialises the message onto a bounded queue
    and returns immediately. ``send_payload()`` queues text that is already
    encoded, so a broadcast serialises each frame once for all recipients. When the queue is full the oldest message is
    dropped. A single writer task drains the queue in FIFO order, so updates
    for any one instrument reach the client in the order they were produced.

    A failed write marks the connection closed, invokes ``on_failure`` and
    closes the socket with code 1011; from then on ``send()`` returns False.
    """

    def __init__(
        self,
        websocket: Any,
        max_queue: int = 256,
        on_failure: Callable[[ClientConnection], None] | None = None,
    ) -> None:
        self.id = next(_connection_ids)
        self.state = ConnectionState.UNBOUND
        self.user_key: str | None = None
        self.dropped = 0
        self.last_error: TransportFailure | None = None
        self._ws = websocket
        self._queue: deque[str] = deque(maxlen=max_queue)
        self._wakeup = asyncio.Event()
        self._on_failure = on_failure
        self._task: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"<ClientConnection #{self.id} {self.state.value} user={self.user_key!r}>"

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def pending(self) -> int:
        """Messages queued but not yet written."""
        return len(self._queue)

    def send(self, message: dict) -> bool:
        """Queue a message for delivery. Returns False if the connection is closed."""
        return self.send_payload(json.dumps(message))

    def send_payload(self, payload: str) -> bool:
        """Queue an encoded text frame. Returns False if the connection is closed."""
        if self.closed:
            return False
        if len(self._queue) == self._queue.maxlen:
            self.dropped += 1
            logger.debug("Outbound queue full on #%d, dropping oldest message", self.id)
        self._queue.append(payload)
        self._wakeup.set()
        return True

    def bind(self, user_key: str) -> None:
        self.user_key = user_key
        self.state = ConnectionState.BOUND

    def start(self) -> None:
        """Start the writer task. Must be called from the event loop."""
        self._task = asyncio.create_task(self._write_loop(), name=f"ws-writer-{self.id}")

    def close(self) -> bool:
        """Transition to closed and discard queued output.

        Returns True only for the call that performed the transition.
        """
        if self.closed:
            return False
        self.state = ConnectionState.CLOSED
        self._queue.clear()
        if self._task and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()
        return True

    async def wait_closed(self) -> None:
        """Wait for the writer task to finish after close()."""
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    # --- Internals ---

    async def _write_loop(self) -> None:
        while not self.closed:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._queue and not self.closed:
                payload = self._queue.popleft()
                try:
                    await self._ws.send_text(payload)
                except Exception as e:
                    self._fail(TransportFailure(str(e) or type(e).__name__))
                    await self._abort_transport()
                    return

    def _fail(self, error: TransportFailure) -> None:
        logger.info("Send to connection #%d failed, closing: %s", self.id, error)
        self.last_error = error
        if self.close() and self._on_failure is not None:
            self._on_failure(self)

    async def _abort_transport(self) -> None:
        """Close the socket after a failed write so the reader side ends too."""
        try:
            await self._ws.close(code=1011)
        except Exception as e:
            logger.debug("Closing socket of connection #%d failed: %s", self.id, e)
