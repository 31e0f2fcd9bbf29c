"""WebSocket endpoint for live price delivery."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket

from .session import SessionController

logger = logging.getLogger(__name__)


def create_stream_router(controller: SessionController) -> APIRouter:
    """Create the WebSocket router with a reference to the session controller.

    This factory pattern lets us inject the controller without globals.
    """
    router = APIRouter(tags=["streaming"])

    @router.websocket("/ws")
    async def stream_prices(websocket: WebSocket) -> None:
        """Duplex channel for price delivery.

        The client sends ``{"type": "register", "userKey": ...}`` and then
        receives an ``initial_prices`` snapshot followed by ``price_update``
        and ``subscription_added`` / ``subscription_removed`` frames.
        Reconnecting clients simply register again. Binary frames are not
        part of the protocol and close the socket with code 1003.
        """
        await websocket.accept()
        conn = controller.open(websocket)
        try:
            while not conn.closed:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.debug("Client disconnected: #%d", conn.id)
                    break
                raw = message.get("text")
                if raw is None:
                    logger.warning("Connection #%d sent a binary frame, closing", conn.id)
                    await websocket.close(code=1003)
                    break
                controller.handle_message(conn, raw)
        finally:
            controller.close(conn)
            await conn.wait_closed()

    return router
