"""Runtime settings read from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    data_file: Path = Path("users-data.json")
    tick_interval: float = 1.0
    save_debounce: float = 1.0
    history_size: int = 60
    outbound_queue_size: int = 256
    static_dir: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from the environment. Unset or invalid values fall back to defaults."""
        env = os.environ if env is None else env
        static_dir = env.get("STATIC_DIR", "").strip()
        return cls(
            host=env.get("HOST", "").strip() or cls.host,
            port=_get_int(env, "PORT", cls.port),
            data_file=Path(env.get("DATA_FILE", "").strip() or cls.data_file),
            tick_interval=_get_float(env, "TICK_INTERVAL", cls.tick_interval),
            save_debounce=_get_float(env, "SAVE_DEBOUNCE", cls.save_debounce),
            history_size=_get_int(env, "HISTORY_SIZE", cls.history_size),
            outbound_queue_size=_get_int(env, "OUTBOUND_QUEUE_SIZE", cls.outbound_queue_size),
            static_dir=Path(static_dir) if static_dir else None,
            log_level=env.get("LOG_LEVEL", "").strip().upper() or cls.log_level,
        )
