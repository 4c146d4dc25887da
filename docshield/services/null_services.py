"""
Pass-through services used when no key-value store is configured.

Nothing is cached, every request is allowed and the circuit never opens.
"""

import sys
from typing import Any, TypeVar

from docshield.clock import Clock, system_clock
from docshield.services.base import (
    BaseCacheService,
    BaseCircuitBreaker,
    BaseRateLimiter,
    CircuitBreakerStatus,
    CircuitState,
    Operation,
    RateLimitResult,
)

T = TypeVar("T")

# Window reported by NullRateLimiter results (1 minute)
NULL_RATE_LIMIT_WINDOW_MS = 60_000


class NullCacheService(BaseCacheService):
    """Always misses; ``get_or_set`` always fetches."""

    async def get(self, key: str) -> Any | None:
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        pass

    async def delete(self, key: str) -> None:
        pass

    async def get_or_set(
        self, key: str, fetch: Operation[T], ttl_seconds: int | None = None
    ) -> T:
        return await fetch()


class NullRateLimiter(BaseRateLimiter):
    """Allows everything."""

    def __init__(self, clock: Clock = system_clock):
        self._clock = clock

    def _unlimited(self) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            remaining=sys.maxsize,
            reset_at=self._clock() + NULL_RATE_LIMIT_WINDOW_MS,
        )

    async def check_limit(self, key: str) -> RateLimitResult:
        return self._unlimited()

    async def record_request(self, key: str) -> None:
        pass

    async def check_and_record(self, key: str) -> RateLimitResult:
        return self._unlimited()


class NullCircuitBreaker(BaseCircuitBreaker):
    """Always CLOSED; the fallback is never used."""

    async def get_state(self) -> CircuitBreakerStatus:
        return CircuitBreakerStatus(
            state=CircuitState.CLOSED,
            failure_count=0,
            last_failure_time=None,
            next_retry_time=None,
        )

    async def execute(
        self, operation: Operation[T], fallback: Operation[T] | None = None
    ) -> T:
        return await operation()

    async def record_success(self) -> None:
        pass

    async def record_failure(self) -> None:
        pass
