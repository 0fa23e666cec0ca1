import unittest

from market_feed.integrations import yahoo
from market_feed.services.markets import MarketDataService
from market_feed.services.quote_cache import LastGoodCache
from market_feed.services.rate_limit import RateLimitGuard


class StubResponse:
    def __init__(self, status_code: int = 200, payload=None, json_error: Exception | None = None) -> None:
        self.status_code = status_code
        self.payload = payload
        self.json_error = json_error

    def json(self):
        if self.json_error is not None:
            raise self.json_error
        return self.payload


def chart_payload(price, chart_prev=None, prev=None) -> dict:
    meta = {"regularMarketPrice": price}
    if chart_prev is not None:
        meta["chartPreviousClose"] = chart_prev
    if prev is not None:
        meta["previousClose"] = prev
    return {"chart": {"result": [{"meta": meta}]}}


class StubTransport:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.urls: list[str] = []

    def __call__(self, url: str):
        self.urls.append(url)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FetchStockQuoteTest(unittest.IsolatedAsyncioTestCase):
    def _service(self, transport: StubTransport) -> MarketDataService:
        self.clock = FakeClock(1000.0)
        self.guard = RateLimitGuard(clock=self.clock)
        return MarketDataService(
            transport=transport,
            rate_limit_guard=self.guard,
            last_good_cache=LastGoodCache(),
        )

    def assert_null_quote(self, quote, *, rate_limited: bool = False):
        self.assertEqual((quote.symbol, quote.name, quote.display), ("AAPL", "Apple", "AAPL"))
        self.assertIsNone(quote.price)
        self.assertIsNone(quote.change)
        self.assertEqual(quote.rate_limited, rate_limited)

    async def test_success_computes_change_from_chart_previous_close(self):
        transport = StubTransport(StubResponse(payload=chart_payload(110.0, chart_prev=100.0, prev=50.0)))
        service = self._service(transport)

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assertEqual(quote.price, 110.0)
        self.assertAlmostEqual(quote.change, 10.0)
        self.assertFalse(quote.rate_limited)
        self.assertEqual(transport.urls, [yahoo.chart_url("AAPL")])

    async def test_success_falls_back_to_previous_close(self):
        service = self._service(StubTransport(StubResponse(payload=chart_payload(90.0, prev=100.0))))

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assertAlmostEqual(quote.change, -10.0)

    async def test_success_without_reference_close_yields_zero_change(self):
        service = self._service(StubTransport(StubResponse(payload=chart_payload(123.4))))

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assertEqual(quote.price, 123.4)
        self.assertEqual(quote.change, 0.0)

    async def test_status_429_trips_breaker_and_flags_quote(self):
        service = self._service(StubTransport(StubResponse(status_code=429)))

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assert_null_quote(quote, rate_limited=True)
        self.assertTrue(self.guard.is_limited())
        self.assertEqual(service.metrics()["rate_limit_hits"], 1)

    async def test_other_http_failure_degrades_without_flag(self):
        service = self._service(StubTransport(StubResponse(status_code=503)))

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assert_null_quote(quote)
        self.assertFalse(self.guard.is_limited())
        self.assertEqual(service.metrics()["stock_failures"], 1)

    async def test_missing_meta_degrades_without_error(self):
        service = self._service(StubTransport(StubResponse(payload={"chart": {"result": []}})))

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assert_null_quote(quote)
        self.assertEqual(service.metrics()["stock_failures"], 0)

    async def test_error_message_mentioning_429_trips_breaker(self):
        service = self._service(StubTransport(RuntimeError("429 Client Error: Too Many Requests")))

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assert_null_quote(quote, rate_limited=True)
        self.assertTrue(self.guard.is_limited())

    async def test_error_carrying_429_response_trips_breaker(self):
        class Response:
            status_code = 429

        class RateLimitError(Exception):
            def __init__(self):
                super().__init__("too many requests")
                self.response = Response()

        service = self._service(StubTransport(RateLimitError()))

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assert_null_quote(quote, rate_limited=True)
        self.assertTrue(self.guard.is_limited())

    async def test_unexpected_errors_never_propagate(self):
        for outcome in (
            TimeoutError("read timed out"),
            StubResponse(json_error=ValueError("Expecting value")),
            StubResponse(payload={"chart": {"result": [{"meta": {"regularMarketPrice": "n/a"}}]}}),
        ):
            with self.subTest(outcome=outcome):
                service = self._service(StubTransport(outcome))

                quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

                self.assert_null_quote(quote)
                self.assertFalse(self.guard.is_limited())

    async def test_active_cooldown_skips_network(self):
        transport = StubTransport(StubResponse(payload=chart_payload(110.0)))
        service = self._service(transport)
        self.guard.trigger()

        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assert_null_quote(quote)
        self.assertEqual(transport.urls, [])

    async def test_cooldown_elapses_and_network_resumes(self):
        transport = StubTransport(StubResponse(payload=chart_payload(110.0, chart_prev=100.0)))
        service = self._service(transport)
        self.guard.trigger()

        self.clock.now += 300
        quote = await service.fetch_stock_quote("AAPL", "Apple", "AAPL")

        self.assertEqual(quote.price, 110.0)
        self.assertEqual(len(transport.urls), 1)


if __name__ == "__main__":
    unittest.main()
