"""Connection directory, fan-out and session lifecycle.

Public API:
    ClientConnection     - One client channel with a bounded outbound queue
    ConnectionDirectory  - Live bindings indexed by user and instrument
    BroadcastDispatcher  - Best-effort per-connection delivery
    SessionController    - Register/close lifecycle and subscription control plane
    create_stream_router - FastAPI router factory for the WebSocket endpoint
"""

from .connection import ClientConnection, ConnectionState, TransportFailure
from .directory import ConnectionDirectory, DirectoryEntry
from .dispatcher import BroadcastDispatcher
from .routes import create_stream_router
from .session import SessionController

__all__ = [
    "ClientConnection",
    "ConnectionState",
    "TransportFailure",
    "ConnectionDirectory",
    "DirectoryEntry",
    "BroadcastDispatcher",
    "SessionController",
    "create_stream_router",
]
