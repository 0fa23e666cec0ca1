import os
from functools import lru_cache

from pydantic import BaseModel, Field

from market_feed.config.markets import DEFAULT_MARKET_SYMBOLS


class Settings(BaseModel):
    MARKETS_PROXY_URL: str | None = None
    MARKETS_HTTP_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    MARKETS_BATCH_SIZE: int = Field(default=2, ge=1)
    MARKETS_BATCH_DELAY_MS: int = Field(default=3000, ge=0)
    MARKETS_RATE_LIMIT_COOLDOWN_SEC: float = Field(default=300.0, gt=0)
    MARKETS_SYMBOLS: list[str]

    @classmethod
    def from_env(cls) -> "Settings":
        default_symbols = [t.symbol for t in DEFAULT_MARKET_SYMBOLS]
        raw_symbols = os.getenv("MARKETS_SYMBOLS", ",".join(default_symbols))
        symbols = [s.strip() for s in raw_symbols.split(",") if s.strip()]
        if not symbols:
            symbols = default_symbols

        values = {
            "MARKETS_PROXY_URL": os.getenv("MARKETS_PROXY_URL") or None,
            "MARKETS_SYMBOLS": symbols,
        }
        for key in (
            "MARKETS_HTTP_TIMEOUT_SEC",
            "MARKETS_BATCH_SIZE",
            "MARKETS_BATCH_DELAY_MS",
            "MARKETS_RATE_LIMIT_COOLDOWN_SEC",
        ):
            raw = os.getenv(key)
            if raw is not None and raw.strip():
                values[key] = raw.strip()

        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
