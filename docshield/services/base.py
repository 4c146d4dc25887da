"""
Service interfaces and the value types they exchange.

The KV-backed services and their null counterparts both implement these, so
the cached repositories never know which flavour they were handed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Blocking requests
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


@dataclass
class RateLimiterConfig:
    """Configuration for a fixed-window rate limiter."""

    max_requests: int
    window_seconds: int


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Failures before opening
    recovery_time_seconds: int = 30  # Time before half-open
    half_open_requests: int = 1  # Probes allowed in half-open state


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_at: int  # epoch ms
    retry_after: int | None = None  # seconds, only set when not allowed


@dataclass
class CircuitBreakerStatus:
    """Snapshot of a circuit as seen at read time."""

    state: CircuitState
    failure_count: int
    last_failure_time: int | None
    next_retry_time: int | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time": self.last_failure_time,
            "next_retry_time": self.next_retry_time,
        }


class BaseCacheService(ABC):
    """Cache-aside operations over some backing store."""

    @abstractmethod
    async def get(self, key: str) -> Any | None: ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def get_or_set(
        self, key: str, fetch: Operation[T], ttl_seconds: int | None = None
    ) -> T: ...


class BaseRateLimiter(ABC):
    """Request counting per key."""

    @abstractmethod
    async def check_limit(self, key: str) -> RateLimitResult:
        """Report the current allowance without recording anything."""
        ...

    @abstractmethod
    async def record_request(self, key: str) -> None: ...

    @abstractmethod
    async def check_and_record(self, key: str) -> RateLimitResult:
        """Record a request only when it is allowed."""
        ...


class BaseCircuitBreaker(ABC):
    """Failure isolation for one upstream dependency."""

    @abstractmethod
    async def get_state(self) -> CircuitBreakerStatus: ...

    @abstractmethod
    async def execute(
        self, operation: Operation[T], fallback: Operation[T] | None = None
    ) -> T: ...

    @abstractmethod
    async def record_success(self) -> None: ...

    @abstractmethod
    async def record_failure(self) -> None: ...
