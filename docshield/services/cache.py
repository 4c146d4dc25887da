"""
KVCacheService - Cache-aside layer over a shared key-value store.

Features:
- JSON serialization of cached values (datetimes and pydantic models included)
- TTL handed to the store on every write
- Store failures degrade to cache misses / no-ops, never to errors
- Errors raised by the fetch function of get_or_set always propagate
"""

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from docshield.datastore.kv import BaseKVStore
from docshield.services.base import BaseCacheService, Operation
from docshield.services.errors import CacheError

T = TypeVar("T")


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize(value: Any) -> str:
    """Serialize a value the way it will be stored."""
    return json.dumps(value, default=_json_default, ensure_ascii=False)


class KVCacheService(BaseCacheService):
    """
    Cache-aside service over a ``BaseKVStore``.

    Usage:
        cache = KVCacheService(store)

        result = await cache.get_or_set(
            "invoices:list",
            lambda: fetch_invoices(),
            ttl_seconds=300,
        )
    """

    def __init__(self, store: BaseKVStore, debug: bool = False):
        self._store = store
        self._debug = debug
        self._stats = CacheStats()

    async def get(self, key: str) -> Any | None:
        """
        Get value from cache.

        Returns the decoded value, or None on a miss or a store failure.
        """
        try:
            value = await self._store.get(key, type="json")
        except Exception as e:
            self._report(CacheError("get", key, cause=e))
            return None

        if value is None:
            self._stats.misses += 1
            self._log(f"MISS: {key[:50]}")
        else:
            self._stats.hits += 1
            self._log(f"HIT: {key[:50]}")
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """
        Set value in cache. Best-effort: failures are logged and dropped.

        Args:
            key: Cache key
            value: JSON-serializable data to cache
            ttl_seconds: Time to live; the entry never expires when omitted
        """
        try:
            payload = serialize(value)
            await self._store.put(key, payload, expiration_ttl=ttl_seconds or None)
        except Exception as e:
            self._report(CacheError("set", key, cause=e))
            return

        self._log(f"SET: {key[:50]} (TTL: {ttl_seconds}s)")

    async def delete(self, key: str) -> None:
        """Delete a specific key from cache."""
        try:
            await self._store.delete(key)
        except Exception as e:
            self._report(CacheError("delete", key, cause=e))
            return

        self._log(f"DELETE: {key[:50]}")

    async def get_or_set(
        self, key: str, fetch: Operation[T], ttl_seconds: int | None = None
    ) -> T:
        """
        Return the cached value, or fetch, cache and return a fresh one.

        ``fetch`` is awaited outside of any error handling: whatever it raises
        reaches the caller untouched and nothing is written.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = await fetch()
        await self.set(key, value, ttl_seconds)
        return value

    def get_stats(self) -> "CacheStats":
        """Get cache statistics for this instance."""
        return self._stats

    def _report(self, error: CacheError) -> None:
        self._stats.errors += 1
        logger.warning(f"[KVCache] {error} ({type(error.cause).__name__}: {error.cause})")

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[KVCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
