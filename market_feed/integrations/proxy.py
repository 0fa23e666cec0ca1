from __future__ import annotations

from typing import Any, Optional

import requests

DEFAULT_HEADERS = {
    "user-agent": "Mozilla/5.0 (compatible; market-feed/0.1)",
    "accept": "application/json",
}


class ProxyTransport:
    """Blocking GET transport; routes through `proxy_url?url=<target>` when set."""

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        *,
        timeout: float = 10.0,
        session: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.proxy_url = proxy_url.rstrip("/") if proxy_url else None
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}

    def __call__(self, url: str) -> Any:
        if self.proxy_url:
            return self.session.get(
                self.proxy_url,
                params={"url": url},
                headers=self.headers,
                timeout=self.timeout,
            )
        return self.session.get(url, headers=self.headers, timeout=self.timeout)
