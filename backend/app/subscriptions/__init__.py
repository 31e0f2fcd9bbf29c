"""User subscription state: registry, persistence and errors."""

from .errors import (
    IncompleteRequest,
    InvalidIdentity,
    PersistenceFailure,
    SubscriptionError,
    UnknownUser,
    UnsupportedInstrument,
)
from .registry import SubscriptionRegistry
from .store import DebouncedWriter, JsonFileStore

__all__ = [
    "SubscriptionRegistry",
    "JsonFileStore",
    "DebouncedWriter",
    "SubscriptionError",
    "IncompleteRequest",
    "InvalidIdentity",
    "UnknownUser",
    "UnsupportedInstrument",
    "PersistenceFailure",
]
