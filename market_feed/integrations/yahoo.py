from __future__ import annotations

import math
from typing import Any
from urllib.parse import quote

from market_feed.config.markets import YAHOO_CHART_URL


def chart_url(symbol: str) -> str:
    return YAHOO_CHART_URL.format(symbol=quote(symbol, safe=""))


def _to_float(value: Any) -> float | None:
    try:
        if value is None or value == "" or isinstance(value, bool):
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_chart_meta(payload: Any) -> tuple[float, float] | None:
    """Return (price, reference_close) from a chart payload, or None when no quote is available.

    The reference prefers `chartPreviousClose`, then `previousClose`, then the
    price itself. Zero closes count as missing.
    """
    if not isinstance(payload, dict):
        return None
    chart = payload.get("chart")
    results = chart.get("result") if isinstance(chart, dict) else None
    if not isinstance(results, list) or not results:
        return None
    first = results[0]
    meta = first.get("meta") if isinstance(first, dict) else None
    if not isinstance(meta, dict):
        return None

    price = _to_float(meta.get("regularMarketPrice"))
    if price is None:
        return None

    reference = (
        _to_float(meta.get("chartPreviousClose"))
        or _to_float(meta.get("previousClose"))
        or price
    )
    return price, reference


def percent_change(price: float, reference: float) -> float:
    if reference == 0:
        return 0.0
    return (price - reference) / reference * 100
