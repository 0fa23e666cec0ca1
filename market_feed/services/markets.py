from __future__ import annotations

import asyncio
import random
from functools import lru_cache
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence, Union

from market_feed.config.markets import CRYPTO_MAP, target_for_symbol
from market_feed.config.settings import get_settings
from market_feed.errors import UpstreamHTTPError
from market_feed.integrations import coingecko, yahoo
from market_feed.integrations.proxy import ProxyTransport
from market_feed.schemas.quote import CryptoQuote, MarketQuote, StockTarget
from market_feed.services.quote_cache import LastGoodCache
from market_feed.services.rate_limit import RateLimitGuard
from market_feed.utils import chunk_list

DEFAULT_BATCH_SIZE = 2
DEFAULT_DELAY_MS = 3000
JITTER_MS = 1000

TargetLike = Union[StockTarget, str, Sequence[str], Mapping[str, str]]
BatchCallback = Callable[[list[MarketQuote]], Any]


def _as_target(value: TargetLike) -> StockTarget:
    if isinstance(value, StockTarget):
        return value
    if isinstance(value, str):
        return target_for_symbol(value)
    if isinstance(value, Mapping):
        return StockTarget.model_validate(dict(value))
    symbol, name, display = value
    return StockTarget(symbol=symbol, name=name, display=display)


def _status_code(response: Any) -> int | None:
    code = getattr(response, "status_code", None)
    if isinstance(code, int):
        return code
    return None


def _is_rate_limit_error(exc: Exception) -> bool:
    if _status_code(getattr(exc, "response", None)) == 429:
        return True
    return "429" in str(exc)


class MarketDataService:
    """Stock and crypto quote fetcher with chunked pacing and a 429 circuit breaker."""

    def __init__(
        self,
        *,
        transport: Callable[[str], Any],
        rate_limit_guard: RateLimitGuard,
        last_good_cache: LastGoodCache,
        crypto_map: Mapping[str, Mapping[str, str]] | None = None,
        sleep_fn: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        random_fn: Callable[[], float] = random.random,
    ) -> None:
        self.transport = transport
        self.rate_limit_guard = rate_limit_guard
        self.last_good_cache = last_good_cache
        self.crypto_map = dict(crypto_map if crypto_map is not None else CRYPTO_MAP)
        self.sleep_fn = sleep_fn
        self.random_fn = random_fn

        self.stock_requests = 0
        self.stock_failures = 0
        self.rate_limit_hits = 0
        self.cache_served = 0
        self.crypto_requests = 0
        self.crypto_failures = 0
        self.last_batch_target = 0
        self.last_batch_chunks = 0
        self.last_batch_final = 0

    async def _get(self, url: str) -> Any:
        return await asyncio.to_thread(self.transport, url)

    def _rate_limited_quote(self, target: StockTarget) -> MarketQuote:
        self.rate_limit_guard.trigger()
        self.rate_limit_hits += 1
        return MarketQuote(**target.model_dump(), rate_limited=True)

    async def fetch_stock_quote(self, symbol: str, name: str, display: str) -> MarketQuote:
        target = StockTarget(symbol=symbol, name=name, display=display)
        if self.rate_limit_guard.is_limited():
            return MarketQuote(**target.model_dump())

        self.stock_requests += 1
        try:
            response = await self._get(yahoo.chart_url(symbol))
            status = _status_code(response)
            if status == 429:
                return self._rate_limited_quote(target)
            if status is None or not 200 <= status < 300:
                raise UpstreamHTTPError(status or 0)

            parsed = yahoo.parse_chart_meta(response.json())
            if parsed is None:
                return MarketQuote(**target.model_dump())

            price, reference = parsed
            return MarketQuote(
                **target.model_dump(),
                price=price,
                change=yahoo.percent_change(price, reference),
            )
        except Exception as exc:
            if _is_rate_limit_error(exc):
                return self._rate_limited_quote(target)
            self.stock_failures += 1
            print(f"[MARKETS][quote_error] symbol={symbol} error={exc}", flush=True)
            return MarketQuote(**target.model_dump())

    async def fetch_multiple_stocks(
        self,
        targets: Iterable[TargetLike],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_ms: float = DEFAULT_DELAY_MS,
        on_batch: BatchCallback | None = None,
    ) -> list[MarketQuote]:
        if self.rate_limit_guard.is_limited():
            cached = self.last_good_cache.list_all()
            if cached:
                self.cache_served += 1
                if on_batch is not None:
                    on_batch(cached)
            return cached

        normalized = [_as_target(t) for t in targets]
        chunks = chunk_list(normalized, batch_size)
        results: list[MarketQuote] = []
        hit_rate_limit = False

        for index, chunk in enumerate(chunks):
            if self.rate_limit_guard.is_limited():
                print(
                    f"[MARKETS][batch_stop] fetched={len(results)} reason=cooldown_active",
                    flush=True,
                )
                hit_rate_limit = True
                break

            chunk_results = await asyncio.gather(
                *(self.fetch_stock_quote(t.symbol, t.name, t.display) for t in chunk)
            )
            chunk_limited = any(r.rate_limited for r in chunk_results)
            results.extend(chunk_results)

            if on_batch is not None:
                on_batch([r for r in results if r.price is not None])

            if chunk_limited:
                print(
                    f"[MARKETS][batch_stop] fetched={len(results)} reason=rate_limit_hit",
                    flush=True,
                )
                hit_rate_limit = True
                break

            if index < len(chunks) - 1:
                jitter_ms = self.random_fn() * JITTER_MS
                await self.sleep_fn((delay_ms + jitter_ms) / 1000)

        successful = [r for r in results if r.price is not None]
        self.last_good_cache.replace(successful)

        self.last_batch_target = len(normalized)
        self.last_batch_chunks = len(chunks)
        self.last_batch_final = len(successful)
        print(
            "[MARKETS][batch_resolve] "
            f"target_count={len(normalized)} chunk_count={len(chunks)} "
            f"final_count={len(successful)} rate_limited={int(hit_rate_limit)}",
            flush=True,
        )
        return successful

    async def fetch_crypto(self) -> list[CryptoQuote]:
        self.crypto_requests += 1
        try:
            response = await self._get(coingecko.simple_price_url(self.crypto_map.keys()))
            status = _status_code(response)
            if status is None or not 200 <= status < 300:
                raise UpstreamHTTPError(status or 0)
            return coingecko.parse_simple_price(response.json(), self.crypto_map)
        except Exception as exc:
            self.crypto_failures += 1
            print(f"[MARKETS][crypto_error] error={exc}", flush=True)
            return []

    def metrics(self) -> dict[str, int | float | bool]:
        guard = self.rate_limit_guard
        return {
            "rate_limited": guard.remaining_sec() > 0,
            "rate_limited_until": guard.limited_until,
            "cooldown_remaining_sec": round(guard.remaining_sec(), 3),
            "rate_limit_triggers": guard.trigger_count,
            "cached_quotes": len(self.last_good_cache),
            "stock_requests": self.stock_requests,
            "stock_failures": self.stock_failures,
            "rate_limit_hits": self.rate_limit_hits,
            "cache_served": self.cache_served,
            "crypto_requests": self.crypto_requests,
            "crypto_failures": self.crypto_failures,
            "batch_target_count": self.last_batch_target,
            "batch_chunk_count": self.last_batch_chunks,
            "batch_final_count": self.last_batch_final,
        }


rate_limit_guard = RateLimitGuard()
last_good_cache = LastGoodCache()


@lru_cache
def get_market_service() -> MarketDataService:
    settings = get_settings()
    rate_limit_guard.cooldown_sec = settings.MARKETS_RATE_LIMIT_COOLDOWN_SEC
    return MarketDataService(
        transport=ProxyTransport(
            settings.MARKETS_PROXY_URL,
            timeout=settings.MARKETS_HTTP_TIMEOUT_SEC,
        ),
        rate_limit_guard=rate_limit_guard,
        last_good_cache=last_good_cache,
    )


async def fetch_stock_quote(symbol: str, name: str, display: str) -> MarketQuote:
    return await get_market_service().fetch_stock_quote(symbol, name, display)


async def fetch_multiple_stocks(
    targets: Iterable[TargetLike],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    delay_ms: float = DEFAULT_DELAY_MS,
    on_batch: BatchCallback | None = None,
) -> list[MarketQuote]:
    return await get_market_service().fetch_multiple_stocks(
        targets, batch_size=batch_size, delay_ms=delay_ms, on_batch=on_batch
    )


async def fetch_crypto() -> list[CryptoQuote]:
    return await get_market_service().fetch_crypto()
