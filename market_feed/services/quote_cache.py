from __future__ import annotations

from market_feed.schemas.quote import MarketQuote


class LastGoodCache:
    """Holds the most recent non-empty batch of successful quotes."""

    def __init__(self) -> None:
        self._rows: list[MarketQuote] = []

    def replace(self, rows: list[MarketQuote]) -> bool:
        if not rows:
            return False
        self._rows = list(rows)
        return True

    def list_all(self) -> list[MarketQuote]:
        return list(self._rows)

    def clear(self) -> None:
        self._rows = []

    def __len__(self) -> int:
        return len(self._rows)
