from __future__ import annotations

import math
from typing import Any, Iterable, Mapping
from urllib.parse import urlencode

from market_feed.config.markets import COINGECKO_SIMPLE_PRICE_URL
from market_feed.schemas.quote import CryptoQuote


def simple_price_url(ids: Iterable[str]) -> str:
    params = {
        "ids": ",".join(ids),
        "vs_currencies": "usd",
        "include_24hr_change": "true",
    }
    return f"{COINGECKO_SIMPLE_PRICE_URL}?{urlencode(params, safe=',')}"


def _to_float_default(value: Any, default: float = 0.0) -> float:
    try:
        if value is None or value == "":
            return default
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def parse_simple_price(
    payload: Any, crypto_map: Mapping[str, Mapping[str, str]]
) -> list[CryptoQuote]:
    """One quote per configured id, in mapping order; absent ids price at 0."""
    if not isinstance(payload, dict):
        raise ValueError("simple price payload must be an object")

    out: list[CryptoQuote] = []
    for coin_id, info in crypto_map.items():
        coin = payload.get(coin_id)
        if not isinstance(coin, dict):
            coin = {}
        out.append(
            CryptoQuote(
                name=info["name"],
                symbol=info["symbol"],
                price=_to_float_default(coin.get("usd")),
                change=_to_float_default(coin.get("usd_24h_change")),
            )
        )
    return out
