from pydantic import BaseModel, ConfigDict


class StockTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    display: str


class MarketQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    display: str
    price: float | None = None
    change: float | None = None
    rate_limited: bool = False


class CryptoQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    symbol: str
    price: float = 0.0
    change: float = 0.0
