"""
Composition root: builds the services and repositories from settings.

With a key-value store available the KV-backed cache, rate limiter and circuit
breaker are used; without one every service falls back to its pass-through
null implementation so the upstream can still be read.
"""

from dataclasses import dataclass

from loguru import logger

from docshield.clock import Clock, system_clock
from docshield.datastore.engine import get_session_factory, init_db
from docshield.datastore.kv import BaseKVStore, MemoryKVStore
from docshield.datastore.sql_store import SQLKVStore
from docshield.repositories.base import BaseDocumentRepository
from docshield.repositories.cached import CachedDocumentRepository, CacheTTL
from docshield.repositories.http import HttpDocumentRepository
from docshield.services.base import BaseCacheService, BaseCircuitBreaker, BaseRateLimiter
from docshield.services.cache import KVCacheService
from docshield.services.circuit_breaker import KVCircuitBreaker
from docshield.services.errors import RateLimitExceededError
from docshield.services.keys import (
    circuit_breaker_key,
    client_rate_limit_key,
    upstream_rate_limit_key,
)
from docshield.services.null_services import (
    NullCacheService,
    NullCircuitBreaker,
    NullRateLimiter,
)
from docshield.services.protection import ProtectedExecutor
from docshield.services.rate_limiter import KVRateLimiter
from docshield.settings import Settings, global_settings


@dataclass
class Container:
    """Wired services for one process or one invocation."""

    cache: BaseCacheService
    rate_limiter: BaseRateLimiter
    client_rate_limiter: BaseRateLimiter
    circuit_breaker: BaseCircuitBreaker
    executor: ProtectedExecutor
    upstream: BaseDocumentRepository
    documents: CachedDocumentRepository

    async def check_client(self, ip: str) -> None:
        """
        Count one request of a client address against its own limit.

        Raises:
            InvalidKeyError: If ``ip`` is not an IPv4/IPv6 address
            RateLimitExceededError: When the client is over its limit
        """
        key = client_rate_limit_key(ip)
        result = await self.client_rate_limiter.check_and_record(key)
        if not result.allowed:
            raise RateLimitExceededError(
                key,
                result.retry_after if result.retry_after is not None else 1,
                result.reset_at,
            )

    async def close(self) -> None:
        close = getattr(self.upstream, "close", None)
        if close is not None:
            await close()


async def create_store(
    settings: Settings | None = None, clock: Clock = system_clock
) -> BaseKVStore | None:
    """Store selected by ``settings.store_backend``; None for the ``none`` backend."""
    settings = settings or global_settings

    if settings.store_backend == "memory":
        return MemoryKVStore(clock=clock)

    if settings.store_backend == "sql":
        await init_db(settings.database_url, echo=settings.database_echo)
        return SQLKVStore(get_session_factory(), clock=clock)

    return None


def build_container(
    settings: Settings | None = None,
    store: BaseKVStore | None = None,
    clock: Clock = system_clock,
    upstream: BaseDocumentRepository | None = None,
) -> Container:
    """
    Wire every component.

    Args:
        settings: Configuration (global settings when omitted)
        store: Shared key-value store; null services are used when None
        clock: Time source handed to every stateful component
        upstream: Raw repository; an HttpDocumentRepository built from
            settings when omitted
    """
    settings = settings or global_settings

    if upstream is None:
        settings.validate_upstream()
        upstream = HttpDocumentRepository(
            settings.upstream_base_url,
            api_key=settings.upstream_api_key,
            timeout=settings.upstream_timeout,
            service_id=settings.upstream_name,
        )

    cache: BaseCacheService
    rate_limiter: BaseRateLimiter
    client_rate_limiter: BaseRateLimiter
    circuit_breaker: BaseCircuitBreaker

    if store is not None:
        cache = KVCacheService(store, debug=settings.debug)
        rate_limiter = KVRateLimiter(store, settings.rate_limit, clock=clock)
        client_rate_limiter = KVRateLimiter(store, settings.client_rate_limit, clock=clock)
        circuit_breaker = KVCircuitBreaker(
            store,
            circuit_breaker_key(settings.upstream_name),
            settings.circuit_breaker,
            clock=clock,
        )
    else:
        logger.warning("No key-value store configured, caching and protection disabled")
        cache = NullCacheService()
        rate_limiter = NullRateLimiter(clock=clock)
        client_rate_limiter = NullRateLimiter(clock=clock)
        circuit_breaker = NullCircuitBreaker()

    executor = ProtectedExecutor(
        rate_limiter,
        circuit_breaker,
        upstream_rate_limit_key(settings.upstream_name),
    )
    documents = CachedDocumentRepository(
        repository=upstream,
        cache=cache,
        executor=executor,
        ttl=CacheTTL(
            listing=settings.list_cache_ttl,
            detail=settings.detail_cache_ttl,
            workspace=settings.workspace_cache_ttl,
        ),
    )

    return Container(
        cache=cache,
        rate_limiter=rate_limiter,
        client_rate_limiter=client_rate_limiter,
        circuit_breaker=circuit_breaker,
        executor=executor,
        upstream=upstream,
        documents=documents,
    )
