class MarketDataError(Exception):
    """Base error for market data fetch failures."""


class UpstreamHTTPError(MarketDataError):
    def __init__(self, status_code: int) -> None:
        self.status_code = int(status_code)
        super().__init__(f"HTTP {self.status_code}")
