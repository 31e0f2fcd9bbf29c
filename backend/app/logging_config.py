"""Process-wide logging setup."""

from __future__ import annotations

import logging

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: int | str = logging.INFO, log_format: str | None = None) -> None:
    """Configure the root logger with a consistent format.

    Intended to be called once from the entrypoint. Subsequent calls are
    ignored if handlers already exist.
    """
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=log_format or DEFAULT_FORMAT)
