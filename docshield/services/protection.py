"""
ProtectedExecutor - Rate limiting in front of a circuit breaker.

Within one call the order is fixed: rate-limit check, then circuit-breaker
evaluation, then the operation itself. A call rejected by the rate limiter
never reaches the breaker and is therefore never counted as a failure.
"""

from typing import TypeVar

from docshield.services.base import BaseCircuitBreaker, BaseRateLimiter, Operation
from docshield.services.errors import RateLimitExceededError

T = TypeVar("T")


class ProtectedExecutor:
    """
    Guarded execution of upstream operations.

    Usage:
        executor = ProtectedExecutor(rate_limiter, circuit_breaker, "ratelimit:upstream-api")
        page = await executor.execute(lambda: upstream.get_document("invoices", "inv-001"))
    """

    def __init__(
        self,
        rate_limiter: BaseRateLimiter,
        circuit_breaker: BaseCircuitBreaker,
        rate_limit_key: str,
    ):
        self.rate_limiter = rate_limiter
        self.circuit_breaker = circuit_breaker
        self.rate_limit_key = rate_limit_key

    async def _check_rate_limit(self) -> None:
        result = await self.rate_limiter.check_and_record(self.rate_limit_key)
        if not result.allowed:
            raise RateLimitExceededError(
                self.rate_limit_key,
                result.retry_after if result.retry_after is not None else 1,
                result.reset_at,
            )

    async def execute(
        self, operation: Operation[T], fallback: Operation[T] | None = None
    ) -> T:
        """
        Execute operation with rate limiting and circuit breaker protection.

        Raises:
            RateLimitExceededError: When the rate limit is exceeded
            CircuitOpenError: When the circuit is open and no fallback is provided
        """
        await self._check_rate_limit()
        return await self.circuit_breaker.execute(operation, fallback)
