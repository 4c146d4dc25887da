"""
CachedDocumentRepository - Caching, rate limiting and circuit breaking around a repository.

Every cacheable read becomes::

    cache.get_or_set(key, lambda: executor.execute(lambda: upstream.op(...)), ttl)

Results are cached wrapped as ``{"data": ...}`` so that a missing document is
remembered (``{"data": null}``) just like a present one. Reads that only make
sense as part of a larger aggregate are not cached, but still pass through
the protected executor on every call.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loguru import logger

from docshield.repositories.base import BaseDocumentRepository
from docshield.repositories.models import Document, Workspace
from docshield.services.base import BaseCacheService
from docshield.services.keys import detail_key, list_key, workspace_key
from docshield.services.protection import ProtectedExecutor


@dataclass
class CacheTTL:
    """Cache TTLs in seconds."""

    listing: int = 5 * 60
    detail: int = 10 * 60
    workspace: int = 15 * 60


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    if value is None:
        return None
    return value.model_dump(mode="json")


class CachedDocumentRepository(BaseDocumentRepository):
    """
    Read-through cache in front of another document repository.

    Usage:
        repo = CachedDocumentRepository(
            repository=HttpDocumentRepository(base_url, api_key),
            cache=KVCacheService(store),
            executor=ProtectedExecutor(rate_limiter, circuit_breaker, "ratelimit:upstream-api"),
        )
        invoice = await repo.get_document("invoices", "inv-001")
    """

    def __init__(
        self,
        repository: BaseDocumentRepository,
        cache: BaseCacheService,
        executor: ProtectedExecutor,
        ttl: CacheTTL | None = None,
    ):
        self.repository = repository
        self.cache = cache
        self.executor = executor
        self.ttl = ttl or CacheTTL()

    async def _cached(
        self, key: str, operation: Callable[[], Awaitable[Any]], ttl_seconds: int
    ) -> Any:
        """Cached JSON form of ``operation()``'s result, fetched under protection on a miss."""

        async def fetch() -> dict[str, Any]:
            result = await self.executor.execute(operation)
            return {"data": _dump(result)}

        entry = await self.cache.get_or_set(key, fetch, ttl_seconds)
        return entry["data"]

    async def list_documents(self, collection: str) -> list[Document]:
        data = await self._cached(
            list_key(collection),
            lambda: self.repository.list_documents(collection),
            self.ttl.listing,
        )
        return [Document.model_validate(item) for item in data]

    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        data = await self._cached(
            detail_key(collection, doc_id),
            lambda: self.repository.get_document(collection, doc_id),
            self.ttl.detail,
        )
        return Document.model_validate(data) if data is not None else None

    async def list_children(self, collection: str, doc_id: str) -> list[Document]:
        # Fetched alongside get_document by callers, so it has no cache entry of its own
        return await self.executor.execute(
            lambda: self.repository.list_children(collection, doc_id)
        )

    async def get_workspace(self) -> Workspace:
        data = await self._cached(
            workspace_key(),
            lambda: self.repository.get_workspace(),
            self.ttl.workspace,
        )
        return Workspace.model_validate(data)

    async def invalidate(self, collection: str, doc_id: str | None = None) -> None:
        """Drop the cached listing of a collection and, optionally, one document."""
        await self.cache.delete(list_key(collection))
        if doc_id is not None:
            await self.cache.delete(detail_key(collection, doc_id))
        logger.debug(f"Invalidated cache for '{collection}'")
