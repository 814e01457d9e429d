"""Tests for weather_pulse.utils.rate_limit module."""

import asyncio

import pytest

from conftest import FakeClock
from weather_pulse.utils.rate_limit import RateLimiter


class TestRateLimiterConfig:
    """Construction and properties."""

    def test_properties(self):
        limiter = RateLimiter(requests_per_minute=120, burst=5)
        assert limiter.requests_per_minute == 120
        assert limiter.burst == 5
        assert limiter.is_enabled is True

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            RateLimiter(requests_per_minute=0)
        with pytest.raises(ValueError):
            RateLimiter(burst=0)


class TestRateLimiter:
    """Token bucket behaviour with a controlled clock."""

    @pytest.mark.asyncio
    async def test_disabled_returns_immediately(self, no_sleep):
        limiter = RateLimiter(requests_per_minute=1, burst=1, enabled=False, sleep=no_sleep)
        for _ in range(10):
            assert await limiter.acquire() == 0.0
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_burst_capacity(self, no_sleep):
        limiter = RateLimiter(requests_per_minute=60, burst=5, clock=FakeClock(), sleep=no_sleep)
        for _ in range(5):
            assert await limiter.acquire() == 0.0
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_throttles_after_burst(self, no_sleep):
        limiter = RateLimiter(requests_per_minute=60, burst=2, clock=FakeClock(), sleep=no_sleep)
        await limiter.acquire()
        await limiter.acquire()
        waited = await limiter.acquire()
        assert waited == pytest.approx(1.0)
        assert no_sleep.delays == [pytest.approx(1.0)]

    def test_reservations_queue_up(self):
        """Each over-budget reservation waits one token longer than the previous."""
        limiter = RateLimiter(requests_per_minute=60, burst=1, clock=FakeClock())
        assert limiter.reserve() == 0.0
        assert limiter.reserve() == pytest.approx(1.0)
        assert limiter.reserve() == pytest.approx(2.0)

    def test_refills_over_time(self):
        clock = FakeClock()
        limiter = RateLimiter(requests_per_minute=60, burst=1, clock=clock)
        limiter.reserve()
        clock.advance(1.0)
        assert limiter.reserve() == 0.0

    def test_refill_capped_at_burst(self):
        clock = FakeClock()
        limiter = RateLimiter(requests_per_minute=60, burst=2, clock=clock)
        clock.advance(3600)
        assert limiter.reserve() == 0.0
        assert limiter.reserve() == 0.0
        assert limiter.reserve() > 0.0

    def test_get_stats(self):
        limiter = RateLimiter(requests_per_minute=60, burst=1, clock=FakeClock())
        limiter.reserve()
        limiter.reserve()
        stats = limiter.get_stats()
        assert stats["total_requests"] == 2
        assert stats["throttled_count"] == 1
        assert stats["total_wait_time"] == pytest.approx(1.0)
        assert stats["available_tokens"] == 0.0
        assert stats["enabled"] is True

    def test_set_enabled(self):
        limiter = RateLimiter(requests_per_minute=60, burst=1, clock=FakeClock())
        limiter.set_enabled(False)
        assert limiter.reserve() == 0.0
        assert limiter.reserve() == 0.0
        assert limiter.get_stats()["total_requests"] == 0


class TestRateLimiterConcurrency:
    """Concurrent acquirers."""

    @pytest.mark.asyncio
    async def test_concurrent_acquire(self, no_sleep):
        limiter = RateLimiter(requests_per_minute=60, burst=3, clock=FakeClock(), sleep=no_sleep)
        results = await asyncio.gather(*(limiter.acquire() for _ in range(5)))
        assert sorted(results) == [0.0, 0.0, 0.0, pytest.approx(1.0), pytest.approx(2.0)]
