"""Tests for the pass-through services."""

import sys

import pytest

from docshield.services.base import CircuitState
from docshield.services.null_services import (
    NullCacheService,
    NullCircuitBreaker,
    NullRateLimiter,
)


class TestNullCacheService:
    @pytest.mark.asyncio
    async def test_never_caches(self):
        cache = NullCacheService()
        await cache.set("k", {"data": 1}, 60)
        assert await cache.get("k") is None
        await cache.delete("k")

    @pytest.mark.asyncio
    async def test_get_or_set_always_fetches(self):
        cache = NullCacheService()
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            return {"data": calls}

        await cache.get_or_set("k", fetch, 60)
        assert await cache.get_or_set("k", fetch, 60) == {"data": 2}


class TestNullRateLimiter:
    @pytest.mark.asyncio
    async def test_always_allows(self, clock):
        limiter = NullRateLimiter(clock=clock)
        for _ in range(100):
            result = await limiter.check_and_record("ratelimit:upstream-api")
            assert result.allowed
        assert result.remaining == sys.maxsize
        assert result.reset_at == clock.now + 60_000
        assert result.retry_after is None
        assert (await limiter.check_limit("any")).allowed


class TestNullCircuitBreaker:
    @pytest.mark.asyncio
    async def test_always_closed(self):
        breaker = NullCircuitBreaker()
        for _ in range(10):
            await breaker.record_failure()
        status = await breaker.get_state()
        assert status.state == CircuitState.CLOSED
        assert status.failure_count == 0

    @pytest.mark.asyncio
    async def test_execute_ignores_fallback_and_propagates_errors(self):
        breaker = NullCircuitBreaker()

        async def fallback():
            return "fallback"

        async def failing():
            raise TimeoutError("slow")

        async def operation():
            return "ok"

        assert await breaker.execute(operation, fallback) == "ok"
        with pytest.raises(TimeoutError):
            await breaker.execute(failing, fallback)
