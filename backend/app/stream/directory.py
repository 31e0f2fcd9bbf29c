"""Directory of live bound connections and their cached interest sets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from threading import Lock

from .connection import ClientConnection


@dataclass(slots=True)
class DirectoryEntry:
    """A bound connection's identity and its cached view of the user's subscriptions."""

    user_key: str
    subscriptions: set[str] = field(default_factory=set)


class ConnectionDirectory:
    """Thread-safe mapping of connection -> (user, cached subscriptions).

    Two indexes are kept in step with the entries:

      - user -> connections bound to that user (multi-tab)
      - instrument -> connections whose cached set contains it

    so a tick touches only the interested connections. The directory never
    originates subscription changes; it mirrors the registry through
    ``add_instrument`` / ``remove_instrument``.
    """

    def __init__(self) -> None:
        self._entries: dict[ClientConnection, DirectoryEntry] = {}
        self._by_user: dict[str, set[ClientConnection]] = {}
        self._by_instrument: dict[str, set[ClientConnection]] = {}
        self._lock = Lock()

    def bind(self, conn: ClientConnection, user_key: str, subscriptions: Iterable[str]) -> None:
        """Record a binding, replacing any previous one for this connection."""
        with self._lock:
            self._remove_locked(conn)
            entry = DirectoryEntry(user_key=user_key, subscriptions=set(subscriptions))
            self._entries[conn] = entry
            self._by_user.setdefault(user_key, set()).add(conn)
            for instrument in entry.subscriptions:
                self._by_instrument.setdefault(instrument, set()).add(conn)

    def unbind(self, conn: ClientConnection) -> DirectoryEntry | None:
        """Remove a connection's entry. Only the first call returns it."""
        with self._lock:
            return self._remove_locked(conn)

    def add_instrument(self, user_key: str, instrument: str) -> list[ClientConnection]:
        """Add an instrument to every connection bound to the user. Returns those connections."""
        with self._lock:
            conns = list(self._by_user.get(user_key, ()))
            for conn in conns:
                self._entries[conn].subscriptions.add(instrument)
                self._by_instrument.setdefault(instrument, set()).add(conn)
            return conns

    def remove_instrument(self, user_key: str, instrument: str) -> list[ClientConnection]:
        """Remove an instrument from every connection bound to the user. Returns those connections."""
        with self._lock:
            conns = list(self._by_user.get(user_key, ()))
            for conn in conns:
                self._entries[conn].subscriptions.discard(instrument)
                self._discard_index(self._by_instrument, instrument, conn)
            return conns

    def interested(self, instrument: str) -> list[ClientConnection]:
        """Connections whose cached subscriptions contain the instrument."""
        with self._lock:
            return list(self._by_instrument.get(instrument, ()))

    def connections_for(self, user_key: str) -> list[ClientConnection]:
        with self._lock:
            return list(self._by_user.get(user_key, ()))

    def entry(self, conn: ClientConnection) -> DirectoryEntry | None:
        """Copy of a connection's entry, or None if it is not bound."""
        with self._lock:
            entry = self._entries.get(conn)
            if entry is None:
                return None
            return DirectoryEntry(entry.user_key, set(entry.subscriptions))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, conn: ClientConnection) -> bool:
        with self._lock:
            return conn in self._entries

    # --- Internals ---

    def _remove_locked(self, conn: ClientConnection) -> DirectoryEntry | None:
        entry = self._entries.pop(conn, None)
        if entry is None:
            return None
        self._discard_index(self._by_user, entry.user_key, conn)
        for instrument in entry.subscriptions:
            self._discard_index(self._by_instrument, instrument, conn)
        return entry

    @staticmethod
    def _discard_index(
        index: dict[str, set[ClientConnection]], key: str, conn: ClientConnection
    ) -> None:
        conns = index.get(key)
        if conns is None:
            return
        conns.discard(conn)
        if not conns:
            del index[key]
