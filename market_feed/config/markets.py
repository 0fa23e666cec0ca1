from __future__ import annotations

from market_feed.schemas.quote import StockTarget

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
COINGECKO_SIMPLE_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"

# provider id -> display info, in render order
CRYPTO_MAP: dict[str, dict[str, str]] = {
    "bitcoin": {"name": "Bitcoin", "symbol": "BTC"},
    "ethereum": {"name": "Ethereum", "symbol": "ETH"},
    "solana": {"name": "Solana", "symbol": "SOL"},
}

DEFAULT_MARKET_SYMBOLS: list[StockTarget] = [
    StockTarget(symbol="^GSPC", name="S&P 500", display="SPX"),
    StockTarget(symbol="^DJI", name="Dow Jones", display="DOW"),
    StockTarget(symbol="^IXIC", name="NASDAQ", display="NDX"),
    StockTarget(symbol="^VIX", name="Volatility Index", display="VIX"),
    StockTarget(symbol="GC=F", name="Gold", display="GOLD"),
    StockTarget(symbol="CL=F", name="Crude Oil", display="OIL"),
    StockTarget(symbol="AAPL", name="Apple", display="AAPL"),
    StockTarget(symbol="MSFT", name="Microsoft", display="MSFT"),
    StockTarget(symbol="NVDA", name="NVIDIA", display="NVDA"),
    StockTarget(symbol="GOOGL", name="Alphabet", display="GOOGL"),
    StockTarget(symbol="AMZN", name="Amazon", display="AMZN"),
    StockTarget(symbol="TSLA", name="Tesla", display="TSLA"),
]


def target_for_symbol(symbol: str) -> StockTarget:
    """Look up watchlist display info; unknown symbols display as themselves."""
    for target in DEFAULT_MARKET_SYMBOLS:
        if target.symbol == symbol:
            return target
    return StockTarget(symbol=symbol, name=symbol, display=symbol)
