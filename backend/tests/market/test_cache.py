"""Tests for PriceCache."""

from app.market.cache import PriceCache


class TestPriceCache:
    """Unit tests for the PriceCache."""

    def test_update_and_get(self):
        """Test updating and getting a price."""
        cache = PriceCache()
        update = cache.update("GOOG", 190.50)
        assert update.instrument == "GOOG"
        assert update.price == 190.50
        assert cache.get("GOOG") == update

    def test_update_replaces_latest(self):
        """Test that a later update replaces the latest price."""
        cache = PriceCache()
        cache.update("GOOG", 190.00)
        cache.update("GOOG", 191.00, timestamp=1234567890.0)
        latest = cache.get("GOOG")
        assert latest.price == 191.00
        assert latest.timestamp == 1234567890.0
        assert len(cache) == 1

    def test_get_prices_subset(self):
        """Test that get_prices returns only the requested instruments."""
        cache = PriceCache()
        cache.update("GOOG", 190.00)
        cache.update("TSLA", 175.00)
        cache.update("AMZN", 185.00)
        assert cache.get_prices({"GOOG", "AMZN"}) == {"GOOG": 190.00, "AMZN": 185.00}

    def test_get_prices_skips_unknown(self):
        """Test that instruments without a price are omitted."""
        cache = PriceCache()
        cache.update("GOOG", 190.00)
        assert cache.get_prices(["GOOG", "NOPE"]) == {"GOOG": 190.00}

    def test_history_appends(self):
        """Test that every update is appended to the history."""
        cache = PriceCache()
        for price in (100.0, 101.0, 102.0):
            cache.update("GOOG", price)
        assert cache.history("GOOG") == [100.0, 101.0, 102.0]

    def test_history_evicts_oldest(self):
        """Test that the history window drops the oldest sample first."""
        cache = PriceCache(history_size=3)
        for price in (1.0, 2.0, 3.0, 4.0, 5.0):
            cache.update("GOOG", price)
        assert cache.history("GOOG") == [3.0, 4.0, 5.0]

    def test_default_history_window(self):
        """Test the default window of 60 samples."""
        cache = PriceCache()
        for i in range(100):
            cache.update("GOOG", 100.0 + i)
        history = cache.history("GOOG")
        assert len(history) == 60
        assert history[0] == 140.0

    def test_history_unknown_instrument(self):
        """Test that an unknown instrument has an empty history."""
        cache = PriceCache()
        assert cache.history("NOPE") == []

    def test_get_price_convenience(self):
        """Test the convenience get_price method."""
        cache = PriceCache()
        cache.update("GOOG", 190.50)
        assert cache.get_price("GOOG") == 190.50
        assert cache.get_price("NOPE") is None

    def test_len(self):
        """Test __len__ method."""
        cache = PriceCache()
        assert len(cache) == 0
        cache.update("GOOG", 190.00)
        assert len(cache) == 1
        cache.update("TSLA", 175.00)
        assert len(cache) == 2

    def test_contains(self):
        """Test __contains__ method."""
        cache = PriceCache()
        cache.update("GOOG", 190.00)
        assert "GOOG" in cache
        assert "TSLA" not in cache

    def test_custom_timestamp(self):
        """Test updating with a custom timestamp."""
        cache = PriceCache()
        custom_ts = 1234567890.0
        update = cache.update("GOOG", 190.50, timestamp=custom_ts)
        assert update.timestamp == custom_ts
