"""
Service layer exceptions.
"""

import math
import re


def sanitize_key(key: str) -> str:
    """Redact identifiers from a storage key so it is safe to put in a message."""
    sanitized = re.sub(r"(:detail:)[^:]+", r"\1[ID]", key)
    sanitized = re.sub(
        r"ratelimit:ip:.*", "ratelimit:ip:[REDACTED]", sanitized, flags=re.DOTALL
    )
    return sanitized


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class CacheError(ServiceError):
    """
    Cache store operation failed.

    Only ever built inside the cache service to describe a swallowed store
    failure in the logs. It is never raised to callers.
    """

    def __init__(
        self,
        operation: str,
        key: str,
        cause: BaseException | None = None,
        message: str | None = None,
    ):
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(
            message or f"Cache {operation} failed for key: {sanitize_key(key)}."
        )


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request blocked."""

    def __init__(
        self,
        circuit_key: str,
        next_retry_time: int,
        failure_count: int,
        now: int | None = None,
    ):
        self.circuit_key = circuit_key
        self.next_retry_time = next_retry_time
        self.failure_count = failure_count
        msg = f"Circuit breaker is OPEN for: {circuit_key}."
        if now is not None:
            retry_in = max(0, math.ceil((next_retry_time - now) / 1000))
            msg += f" Retry in {retry_in}s"
        else:
            msg += f" Retry at {next_retry_time}"
        msg += f" after {failure_count} failures."
        super().__init__(msg, service_id=circuit_key)


class RateLimitExceededError(ServiceError):
    """Rate limit exceeded."""

    def __init__(self, key: str, retry_after: int, reset_at: int):
        self.key = key
        self.retry_after = retry_after
        self.reset_at = reset_at
        super().__init__(
            f"Rate limit exceeded for resource: {sanitize_key(key)}. "
            f"Retry after {retry_after}s.",
            service_id=key,
        )


class RequestTimeoutError(ServiceError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class UpstreamError(ServiceError):
    """Upstream store answered with an error status or could not be reached."""

    def __init__(
        self, message: str, service_id: str | None = None, status_code: int | None = None
    ):
        self.status_code = status_code
        super().__init__(message, service_id=service_id)


class InvalidKeyError(ValueError):
    """Identifier rejected before a storage key was built from it."""

    pass
