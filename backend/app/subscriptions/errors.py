"""Errors raised by the subscription control plane and persistence."""

from __future__ import annotations

from collections.abc import Iterable


class SubscriptionError(Exception):
    """Base class for recoverable subscription-service errors."""

    status_code = 400
    message = "Subscription request failed"

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidIdentity(SubscriptionError):
    """User key is malformed (must contain an '@')."""

    message = "Valid email is required"

    def __init__(self, user_key: str | None) -> None:
        super().__init__(f"Invalid user key: {user_key!r}")
        self.user_key = user_key


class IncompleteRequest(SubscriptionError):
    """A subscription request is missing its user key or instrument."""

    message = "Email and ticker are required"


class UnknownUser(SubscriptionError):
    """Operation on a user key that never logged in."""

    status_code = 404
    message = "User not found. Please login first."

    def __init__(self, user_key: str) -> None:
        super().__init__(f"Unknown user: {user_key}")
        self.user_key = user_key


class UnsupportedInstrument(SubscriptionError):
    """Instrument outside the fixed universe."""

    message = "Stock not supported"

    def __init__(self, instrument: str, supported: Iterable[str]) -> None:
        super().__init__(f"Unsupported instrument: {instrument}")
        self.instrument = instrument
        self.supported = list(supported)

    def to_dict(self) -> dict:
        return {"error": self.message, "supported": self.supported}


class PersistenceFailure(Exception):
    """Writing or reading the persisted user state failed."""
