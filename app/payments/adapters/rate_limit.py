"""
Token bucket used to pace outbound provider requests.

The adapter owns one limiter and takes a token before every HTTP call, so
anything that loops over the adapter (batch disbursement, list pagination)
is paced without its own sleep logic.

With the defaults (2 tokens/second, capacity 1) consecutive requests are
spaced about 500ms apart and the first request goes out immediately.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class TokenBucketRateLimiter:
    """
    Blocking token bucket.

    Args:
        rate_per_second: Refill rate
        capacity: Maximum burst size
        clock: Monotonic time source (injectable for tests)
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        rate_per_second: float = 2.0,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = float(rate_per_second)
        self.capacity = float(capacity)
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._updated_at = clock()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        # _updated_at runs ahead of the clock while a reservation is pending
        if now > self._updated_at:
            elapsed = now - self._updated_at
            self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
            self._updated_at = now

    def acquire(self) -> float:
        """
        Take a token, sleeping until one is available.

        Returns:
            Seconds spent waiting (0.0 when a token was ready)
        """
        with self._lock:
            now = self._clock()
            self._refill(now)
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0

            ready_at = max(now, self._updated_at) + (1 - self._tokens) / self.rate
            self._tokens = 0.0
            self._updated_at = ready_at
            wait = ready_at - now

        self._sleep(wait)
        return wait


__all__ = ["TokenBucketRateLimiter"]
