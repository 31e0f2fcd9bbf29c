"""Thread-safe in-memory price cache with a bounded trailing history."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Iterable
from threading import Lock

from .instruments import HISTORY_SIZE
from .models import PriceUpdate


class PriceCache:
    """Thread-safe in-memory cache of the latest price for each instrument.

    Writer: PriceGenerator (the only owner of price state).
    Readers: BroadcastDispatcher, SessionController snapshots, history endpoint.

    Each instrument also keeps its most recent ``history_size`` prices;
    appending past the window evicts the oldest sample.
    """

    def __init__(self, history_size: int = HISTORY_SIZE) -> None:
        self._prices: dict[str, PriceUpdate] = {}
        self._history: dict[str, deque[float]] = {}
        self._history_size = history_size
        self._lock = Lock()

    def update(self, instrument: str, price: float, timestamp: float | None = None) -> PriceUpdate:
        """Record a new price for an instrument. Returns the created PriceUpdate."""
        with self._lock:
            update = PriceUpdate(instrument=instrument, price=price, timestamp=timestamp or time.time())
            self._prices[instrument] = update
            history = self._history.get(instrument)
            if history is None:
                history = self._history[instrument] = deque(maxlen=self._history_size)
            history.append(price)
            return update

    def get(self, instrument: str) -> PriceUpdate | None:
        """Get the latest price for a single instrument, or None if unknown."""
        with self._lock:
            return self._prices.get(instrument)

    def get_price(self, instrument: str) -> float | None:
        """Convenience: get just the price float, or None."""
        update = self.get(instrument)
        return update.price if update else None

    def get_prices(self, instruments: Iterable[str]) -> dict[str, float]:
        """Current price for each of ``instruments`` that has one."""
        with self._lock:
            return {
                instrument: self._prices[instrument].price
                for instrument in instruments
                if instrument in self._prices
            }

    def history(self, instrument: str) -> list[float]:
        """Trailing prices for an instrument, oldest first."""
        with self._lock:
            return list(self._history.get(instrument, ()))

    @property
    def history_size(self) -> int:
        return self._history_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._prices)

    def __contains__(self, instrument: str) -> bool:
        with self._lock:
            return instrument in self._prices
