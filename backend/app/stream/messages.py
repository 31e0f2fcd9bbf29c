"""Outbound WebSocket frame builders."""

from __future__ import annotations

from collections.abc import Iterable, Mapping


def _price(value: float | None) -> float | None:
    return round(value, 2) if value is not None else None


def initial_prices(prices: Mapping[str, float], subscriptions: Iterable[str]) -> dict:
    return {
        "type": "initial_prices",
        "prices": {instrument: _price(price) for instrument, price in prices.items()},
        "subscriptions": sorted(subscriptions),
    }


def subscription_added(instrument: str, price: float | None) -> dict:
    return {"type": "subscription_added", "instrument": instrument, "price": _price(price)}


def subscription_removed(instrument: str) -> dict:
    return {"type": "subscription_removed", "instrument": instrument}


def register_failed(user_key: str | None, error: str) -> dict:
    return {"type": "register_failed", "userKey": user_key, "error": error}
