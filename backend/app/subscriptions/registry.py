"""In-process registry of users and their instrument subscriptions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from threading import Lock

from app.market.instruments import SUPPORTED_INSTRUMENTS

from .errors import UnknownUser, UnsupportedInstrument

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class SubscriptionRegistry:
    """Thread-safe mapping of user key -> set of subscribed instruments.

    The registry is the single source of truth for what a user is subscribed
    to. Callers only ever receive frozenset copies, never the live sets.

    Every state change (user created, instrument added or removed) notifies
    the change listeners after the lock is released. The persistence writer
    registers itself here to learn that the state is dirty.
    """

    def __init__(self, instruments: Iterable[str] = SUPPORTED_INSTRUMENTS) -> None:
        self._instruments: tuple[str, ...] = tuple(instruments)
        self._users: dict[str, set[str]] = {}
        self._lock = Lock()
        self._listeners: list[ChangeListener] = []

    @property
    def instruments(self) -> tuple[str, ...]:
        return self._instruments

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def load(self, users: Mapping[str, Iterable[str]]) -> None:
        """Restore persisted state. Instruments outside the universe are dropped."""
        with self._lock:
            for user_key, instruments in users.items():
                kept = set()
                for instrument in instruments:
                    if instrument in self._instruments:
                        kept.add(instrument)
                    else:
                        logger.warning(
                            "Dropping unsupported instrument %s for %s", instrument, user_key
                        )
                self._users[user_key] = kept
        logger.info("Loaded %d users", len(users))

    def login(self, user_key: str) -> frozenset[str]:
        """Return the user's subscriptions, creating an empty set if unseen."""
        with self._lock:
            subscriptions = self._users.get(user_key)
            created = subscriptions is None
            if created:
                subscriptions = self._users[user_key] = set()
            result = frozenset(subscriptions)
        if created:
            logger.info("Created user %s", user_key)
            self._notify()
        return result

    def subscribe(self, user_key: str, instrument: str) -> frozenset[str]:
        if instrument not in self._instruments:
            raise UnsupportedInstrument(instrument, self._instruments)
        with self._lock:
            subscriptions = self._require(user_key)
            changed = instrument not in subscriptions
            subscriptions.add(instrument)
            result = frozenset(subscriptions)
        if changed:
            logger.debug("%s subscribed to %s", user_key, instrument)
            self._notify()
        return result

    def unsubscribe(self, user_key: str, instrument: str) -> frozenset[str]:
        with self._lock:
            subscriptions = self._require(user_key)
            changed = instrument in subscriptions
            subscriptions.discard(instrument)
            result = frozenset(subscriptions)
        if changed:
            logger.debug("%s unsubscribed from %s", user_key, instrument)
            self._notify()
        return result

    def get(self, user_key: str) -> frozenset[str] | None:
        """Current subscriptions for a user, or None if the user is unknown."""
        with self._lock:
            subscriptions = self._users.get(user_key)
            return frozenset(subscriptions) if subscriptions is not None else None

    def snapshot(self) -> dict[str, frozenset[str]]:
        """Copy of the full mapping, for persistence."""
        with self._lock:
            return {user_key: frozenset(subs) for user_key, subs in self._users.items()}

    def __contains__(self, user_key: str) -> bool:
        with self._lock:
            return user_key in self._users

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    # --- Internals ---

    def _require(self, user_key: str) -> set[str]:
        """Live set for a known user. Caller must hold the lock."""
        subscriptions = self._users.get(user_key)
        if subscriptions is None:
            raise UnknownUser(user_key)
        return subscriptions

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()
