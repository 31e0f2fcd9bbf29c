"""JSON file persistence for user subscriptions, with a debounced writer."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Reads and writes the user -> subscriptions mapping as a JSON document.

    Layout on disk:

        {
          "a@x.com": {"email": "a@x.com", "subscriptions": ["GOOG", "TSLA"]},
          ...
        }
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, set[str]]:
        """Read persisted users. Missing or unreadable files yield an empty mapping."""
        if not self._path.exists():
            logger.info("No user data at %s, starting empty", self._path)
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Error loading user data from %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.error("Ignoring user data at %s: expected an object", self._path)
            return {}

        users: dict[str, set[str]] = {}
        for user_key, record in data.items():
            subscriptions = record.get("subscriptions") if isinstance(record, dict) else None
            users[user_key] = set(subscriptions or [])
        logger.info("Loaded %d users from %s", len(users), self._path)
        return users

    def save(self, users: Mapping[str, Iterable[str]]) -> None:
        """Write the full mapping atomically. Raises PersistenceFailure on OS errors."""
        payload = {
            user_key: {"email": user_key, "subscriptions": sorted(subscriptions)}
            for user_key, subscriptions in users.items()
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".users-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2)
                os.replace(tmp, self._path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceFailure(f"Could not write {self._path}: {e}") from e
        logger.debug("User data saved to %s", self._path)


class DebouncedWriter:
    """Coalesces bursts of registry changes into one write of the latest state.

    ``mark_dirty()`` is cheap and safe to call from request handlers. The
    first call opens a debounce window; when it closes, the current snapshot
    is saved once on a worker thread. A failed save re-arms the window, so
    the next cycle retries.
    """

    def __init__(
        self,
        store: JsonFileStore,
        snapshot: Callable[[], Mapping[str, Iterable[str]]],
        delay: float = 1.0,
    ) -> None:
        self._store = store
        self._snapshot = snapshot
        self._delay = delay
        self._generation = 0  # bumped on every change
        self._saved_generation = 0
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def dirty(self) -> bool:
        return self._generation != self._saved_generation

    def mark_dirty(self) -> None:
        self._generation += 1
        self._wakeup.set()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run_loop(), name="debounced-writer")
        logger.info("Persistence writer started: %s, %.2fs debounce", self._store.path, self._delay)

    async def stop(self) -> None:
        """Cancel the background task and write any pending state."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        await self.flush()
        logger.info("Persistence writer stopped")

    async def flush(self) -> bool:
        """Write the latest snapshot if dirty. Returns False if the write failed."""
        target = self._generation
        if target == self._saved_generation:
            return True
        data = self._snapshot()
        try:
            await asyncio.to_thread(self._store.save, data)
        except PersistenceFailure as e:
            logger.error("Error saving user data, will retry: %s", e)
            self._wakeup.set()
            return False
        self._saved_generation = max(self._saved_generation, target)
        logger.info("User data saved (%d users)", len(data))
        return True

    async def _run_loop(self) -> None:
        while True:
            await self._wakeup.wait()
            await asyncio.sleep(self._delay)
            self._wakeup.clear()
            await self.flush()
