"""Bounded random-walk price simulator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

import numpy as np

from .cache import PriceCache
from .instruments import FLOOR_PRICE, INITIAL_PRICE_RANGE, MAX_DELTA, SUPPORTED_INSTRUMENTS
from .models import PriceUpdate

logger = logging.getLogger(__name__)

TickListener = Callable[[PriceUpdate], None]


class RandomWalkSimulator:
    """Floored uniform random walk over a fixed set of instruments.

    Math:
        S(t+1) = max(floor, S(t) + S(t) * U(-max_delta, +max_delta))

    Where:
        S(t)      = current price
        floor     = minimum price (default 10)
        max_delta = largest fractional move per tick (default 0.05, i.e. +/-5%)

    All instruments are stepped together with one vectorised draw.
    """

    def __init__(
        self,
        instruments: Sequence[str],
        floor_price: float = FLOOR_PRICE,
        max_delta: float = MAX_DELTA,
        initial_prices: dict[str, float] | None = None,
        seed: int | None = None,
    ) -> None:
        self._instruments: list[str] = list(dict.fromkeys(instruments))
        self._floor = floor_price
        self._max_delta = max_delta
        self._rng = np.random.default_rng(seed)

        low, high = INITIAL_PRICE_RANGE
        seeds = initial_prices or {}
        self._prices = np.array(
            [seeds.get(i, self._rng.uniform(low, high)) for i in self._instruments],
            dtype=float,
        )

    @property
    def instruments(self) -> list[str]:
        return list(self._instruments)

    def step(self) -> dict[str, float]:
        """Advance every instrument by one tick. Returns {instrument: new_price}."""
        n = len(self._instruments)
        if n == 0:
            return {}

        deltas = self._rng.uniform(-self._max_delta, self._max_delta, n)
        self._prices = np.maximum(self._floor, self._prices + self._prices * deltas)
        return {i: float(p) for i, p in zip(self._instruments, self._prices)}

    def get_price(self, instrument: str) -> float | None:
        """Current price for an instrument, or None if not simulated."""
        try:
            return float(self._prices[self._instruments.index(instrument)])
        except ValueError:
            return None


class PriceGenerator:
    """Periodic tick task driving the simulator.

    Runs a background asyncio task that calls RandomWalkSimulator.step() every
    ``update_interval`` seconds, writes results to the PriceCache and hands
    each resulting PriceUpdate to the registered tick listeners.
    """

    def __init__(
        self,
        price_cache: PriceCache,
        instruments: Sequence[str] = SUPPORTED_INSTRUMENTS,
        update_interval: float = 1.0,
        floor_price: float = FLOOR_PRICE,
        max_delta: float = MAX_DELTA,
        seed: int | None = None,
    ) -> None:
        self._cache = price_cache
        self._interval = update_interval
        self._sim = RandomWalkSimulator(
            instruments,
            floor_price=floor_price,
            max_delta=max_delta,
            seed=seed,
        )
        self._listeners: list[TickListener] = []
        self._task: asyncio.Task | None = None

        # Seed the cache so snapshots have data before the first tick
        for instrument in self._sim.instruments:
            price = self._sim.get_price(instrument)
            if price is not None:
                self._cache.update(instrument, price)

    def add_listener(self, listener: TickListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run_loop(), name="price-generator")
        logger.info(
            "Price generator started: %d instruments, %.2fs interval",
            len(self._sim.instruments),
            self._interval,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Price generator stopped")

    def tick(self) -> list[PriceUpdate]:
        """Run one cycle: step, write to cache, signal listeners."""
        updates = []
        for instrument, price in self._sim.step().items():
            update = self._cache.update(instrument, price)
            updates.append(update)
            for listener in self._listeners:
                try:
                    listener(update)
                except Exception:
                    logger.exception("Tick listener failed for %s", instrument)
        return updates

    async def _run_loop(self) -> None:
        """Core loop: sleep, tick."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.tick()
            except Exception:
                logger.exception("Price generator tick failed")
