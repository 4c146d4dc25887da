"""Tests for the composition root."""

import pytest

from docshield.container import build_container, create_store
from docshield.datastore import engine
from docshield.datastore.kv import MemoryKVStore
from docshield.datastore.sql_store import SQLKVStore
from docshield.repositories.http import HttpDocumentRepository
from docshield.services.cache import KVCacheService
from docshield.services.circuit_breaker import KVCircuitBreaker
from docshield.services.errors import InvalidKeyError, RateLimitExceededError
from docshield.services.null_services import (
    NullCacheService,
    NullCircuitBreaker,
    NullRateLimiter,
)
from docshield.settings import Settings


@pytest.fixture
def settings():
    return Settings(
        upstream_base_url="https://docs.example.com/v1",
        upstream_api_key="token",
        client_rate_limit_max_requests=2,
    )


class TestBuildContainer:
    def test_kv_services_with_store(self, settings, store, clock, upstream):
        container = build_container(settings, store=store, clock=clock, upstream=upstream)

        assert isinstance(container.cache, KVCacheService)
        assert isinstance(container.circuit_breaker, KVCircuitBreaker)
        assert container.circuit_breaker.key == "circuit:upstream-api"
        assert container.executor.rate_limit_key == "ratelimit:upstream-api"
        assert container.documents.ttl.detail == settings.detail_cache_ttl

    def test_null_services_without_store(self, settings, clock, upstream):
        container = build_container(settings, store=None, clock=clock, upstream=upstream)

        assert isinstance(container.cache, NullCacheService)
        assert isinstance(container.rate_limiter, NullRateLimiter)
        assert isinstance(container.circuit_breaker, NullCircuitBreaker)

    @pytest.mark.asyncio
    async def test_null_services_still_read_upstream(self, settings, clock, upstream, invoices):
        container = build_container(settings, store=None, clock=clock, upstream=upstream)

        for _ in range(5):
            assert await container.documents.list_documents("invoices") == invoices
        assert len(upstream.calls) == 5

    @pytest.mark.asyncio
    async def test_builds_http_upstream_from_settings(self, settings, store):
        container = build_container(settings, store=store)
        assert isinstance(container.upstream, HttpDocumentRepository)
        await container.close()

    def test_missing_upstream_settings_fail_fast(self, store):
        with pytest.raises(ValueError, match="UPSTREAM_BASE_URL"):
            build_container(Settings(), store=store)


class TestCheckClient:
    @pytest.mark.asyncio
    async def test_limits_each_address(self, settings, store, clock, upstream):
        container = build_container(settings, store=store, clock=clock, upstream=upstream)

        await container.check_client("203.0.113.7")
        await container.check_client("203.0.113.7")
        with pytest.raises(RateLimitExceededError) as exc_info:
            await container.check_client("203.0.113.7")

        assert exc_info.value.retry_after == 60
        await container.check_client("203.0.113.8")

    @pytest.mark.asyncio
    async def test_rejects_invalid_address(self, settings, store, clock, upstream):
        container = build_container(settings, store=store, clock=clock, upstream=upstream)
        with pytest.raises(InvalidKeyError):
            await container.check_client("not-an-ip")


class TestCreateStore:
    @pytest.mark.asyncio
    async def test_memory(self):
        assert isinstance(await create_store(Settings(store_backend="memory")), MemoryKVStore)

    @pytest.mark.asyncio
    async def test_none(self):
        assert await create_store(Settings(store_backend="none")) is None

    @pytest.mark.asyncio
    async def test_sql(self, tmp_path):
        settings = Settings(
            store_backend="sql",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}",
        )
        try:
            store = await create_store(settings)
            assert isinstance(store, SQLKVStore)
            await store.put("k", '{"data": 1}', expiration_ttl=60)
            assert await store.get("k") == {"data": 1}
        finally:
            await engine.close_db()
