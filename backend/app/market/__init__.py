"""Market data subsystem.

Public API:
    PriceUpdate          - Immutable price snapshot dataclass
    PriceCache           - Thread-safe in-memory price store with history
    RandomWalkSimulator  - Floored random walk over the instrument universe
    PriceGenerator       - Periodic tick task feeding the cache and listeners
    SUPPORTED_INSTRUMENTS - The fixed instrument universe
"""

from .cache import PriceCache
from .instruments import SUPPORTED_INSTRUMENTS
from .models import PriceUpdate
from .simulator import PriceGenerator, RandomWalkSimulator

__all__ = [
    "PriceUpdate",
    "PriceCache",
    "RandomWalkSimulator",
    "PriceGenerator",
    "SUPPORTED_INSTRUMENTS",
]
