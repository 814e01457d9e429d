"""
Client-side rate limiting for upstream requests.

Polling ticks and manual refreshes share one budget so the dashboard stays
under the upstream's per-minute quota.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict


@dataclass
class TokenBucket:
    """Bucket of ``capacity`` tokens refilled at ``rate`` tokens per second.

    ``tokens`` may go negative: each negative token is a caller already
    queued behind the budget.
    """
    capacity: float
    rate: float
    tokens: float
    updated_at: float

    def refill(self, now: float) -> None:
        self.tokens = min(self.capacity, self.tokens + (now - self.updated_at) * self.rate)
        self.updated_at = now

    def take(self, now: float) -> float:
        """Take one token; returns the seconds until it is actually available."""
        self.refill(now)
        self.tokens -= 1.0
        return 0.0 if self.tokens >= 0.0 else -self.tokens / self.rate


class RateLimiter:
    """
    Async token-bucket limiter for the HTTP transport.

    Usage:
        limiter = RateLimiter(requests_per_minute=60, burst=10)
        await limiter.acquire()  # sleeps if the budget is spent

    A token is reserved at call time and the caller then sleeps off its
    deficit, so concurrent callers are spaced in arrival order without a
    lock held across the sleep.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        burst: int = 10,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            requests_per_minute: Sustained request budget
            burst: Requests allowed back to back from a full bucket
            enabled: When False, ``acquire`` never waits
            clock: Monotonic clock in seconds
            sleep: Awaitable sleep in seconds
        """
        if requests_per_minute <= 0 or burst <= 0:
            raise ValueError("requests_per_minute and burst must be greater than 0")
        self._rpm = requests_per_minute
        self._enabled = enabled
        self._clock = clock
        self._sleep = sleep
        self._bucket = TokenBucket(
            capacity=float(burst),
            rate=requests_per_minute / 60.0,
            tokens=float(burst),
            updated_at=clock(),
        )
        self._stats = {"total_requests": 0, "throttled_count": 0, "total_wait_time": 0.0}

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def requests_per_minute(self) -> int:
        return self._rpm

    @property
    def burst(self) -> int:
        return int(self._bucket.capacity)

    def reserve(self) -> float:
        """Reserve a request slot now; returns how many seconds to wait for it."""
        if not self._enabled:
            return 0.0
        wait = self._bucket.take(self._clock())
        self._stats["total_requests"] += 1
        if wait > 0:
            self._stats["throttled_count"] += 1
            self._stats["total_wait_time"] += wait
        return wait

    async def acquire(self) -> float:
        """
        Wait until a request may be sent.

        Returns:
            Seconds waited (0 when the budget had room)
        """
        wait = self.reserve()
        if wait > 0:
            await self._sleep(wait)
        return wait

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "available_tokens": max(self._bucket.tokens, 0.0),
            "enabled": self._enabled,
        }

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
