"""
Service layer infrastructure - resilience patterns for upstream reads.

Provides:
- KVCacheService: Cache-aside over a shared key-value store
- KVRateLimiter: Fixed-window request counting
- KVCircuitBreaker: Prevents cascading failures
- ProtectedExecutor: Rate limiter and circuit breaker combined
- Null services: Pass-through stand-ins when no store is configured
"""

from docshield.services.errors import (
    ServiceError,
    CacheError,
    CircuitOpenError,
    RateLimitExceededError,
    RequestTimeoutError,
    UpstreamError,
    InvalidKeyError,
)
from docshield.services.base import (
    BaseCacheService,
    BaseCircuitBreaker,
    BaseRateLimiter,
    CircuitBreakerConfig,
    CircuitBreakerStatus,
    CircuitState,
    RateLimiterConfig,
    RateLimitResult,
)
from docshield.services.cache import KVCacheService, CacheStats
from docshield.services.rate_limiter import KVRateLimiter
from docshield.services.circuit_breaker import KVCircuitBreaker
from docshield.services.protection import ProtectedExecutor
from docshield.services.null_services import (
    NullCacheService,
    NullCircuitBreaker,
    NullRateLimiter,
)

__all__ = [
    # Errors
    "ServiceError",
    "CacheError",
    "CircuitOpenError",
    "RateLimitExceededError",
    "RequestTimeoutError",
    "UpstreamError",
    "InvalidKeyError",
    # Interfaces
    "BaseCacheService",
    "BaseCircuitBreaker",
    "BaseRateLimiter",
    "CircuitBreakerConfig",
    "CircuitBreakerStatus",
    "CircuitState",
    "RateLimiterConfig",
    "RateLimitResult",
    # Cache
    "KVCacheService",
    "CacheStats",
    # Rate Limiter
    "KVRateLimiter",
    # Circuit Breaker
    "KVCircuitBreaker",
    # Protection
    "ProtectedExecutor",
    # Null services
    "NullCacheService",
    "NullCircuitBreaker",
    "NullRateLimiter",
]
