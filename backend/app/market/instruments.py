"""Instrument universe and price-walk parameters."""

# Fixed universe served by this process. No dynamic instrument creation.
SUPPORTED_INSTRUMENTS: tuple[str, ...] = ("GOOG", "TSLA", "AMZN", "META", "NVDA")

# Random-walk parameters
# floor: prices never drop below this
# max_delta: largest per-tick move as a fraction of the current price
FLOOR_PRICE = 10.0
MAX_DELTA = 0.05

# Starting prices are drawn uniformly from this range
INITIAL_PRICE_RANGE: tuple[float, float] = (100.0, 1100.0)

# Trailing samples kept per instrument for charting
HISTORY_SIZE = 60
