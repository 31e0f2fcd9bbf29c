"""Data models for market data."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """Immutable snapshot of a single instrument's price at a point in time."""

    instrument: str
    price: float
    timestamp: float = field(default_factory=time.time)  # Unix seconds

    @property
    def iso_timestamp(self) -> str:
        """Timestamp as an ISO-8601 UTC string with millisecond precision."""
        dt = datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_message(self) -> dict:
        """Serialize as a ``price_update`` frame for WebSocket transmission."""
        return {
            "type": "price_update",
            "instrument": self.instrument,
            "price": round(self.price, 2),
            "timestamp": self.iso_timestamp,
        }
