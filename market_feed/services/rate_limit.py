from __future__ import annotations

import math
import time
from typing import Callable

DEFAULT_COOLDOWN_SEC = 5 * 60


class RateLimitGuard:
    """Process-wide circuit breaker for upstream 429s."""

    def __init__(
        self,
        cooldown_sec: float = DEFAULT_COOLDOWN_SEC,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.cooldown_sec = cooldown_sec
        self.clock = clock or time.time
        self.limited_until = 0.0
        self.trigger_count = 0

    def remaining_sec(self) -> float:
        return max(self.limited_until - self.clock(), 0.0)

    def is_limited(self) -> bool:
        remaining = self.remaining_sec()
        if remaining > 0:
            print(f"[MARKETS][rate_limited] remaining_sec={math.ceil(remaining)}", flush=True)
            return True
        return False

    def trigger(self) -> None:
        # never shortens an active cooldown
        self.limited_until = max(self.limited_until, self.clock() + self.cooldown_sec)
        self.trigger_count += 1
        print(f"[MARKETS][rate_limit_triggered] cooldown_sec={self.cooldown_sec:g}", flush=True)

    def reset(self) -> None:
        self.limited_until = 0.0
        self.trigger_count = 0
