"""
Key-value store adapters.

The services coordinate exclusively through this contract: JSON documents
stored as strings, with an optional time-to-live given at write time.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal

from docshield.clock import Clock, system_clock

ValueType = Literal["json", "text"]


class BaseKVStore(ABC):
    """
    Abstract base class for key-value stores.

    Implementations:
    - Return ``None`` for absent or expired keys
    - Decode the stored string as JSON when ``type="json"``
    - May raise on transport failure; callers decide whether to absorb it
    """

    @abstractmethod
    async def get(self, key: str, type: ValueType = "json") -> Any | None:
        """Read a value, or None if absent/expired."""
        ...

    @abstractmethod
    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        """Write a serialized value, expiring after ``expiration_ttl`` seconds."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...


def decode(raw: str, type: ValueType) -> Any:
    return json.loads(raw) if type == "json" else raw


@dataclass
class _StoredItem:
    value: str
    expires_at: int | None  # epoch ms


class MemoryKVStore(BaseKVStore):
    """
    Dict-backed store for development and tests.

    Expiry is evaluated against the injected clock, so a test clock moving
    forward expires entries exactly like a real store would.
    """

    def __init__(self, clock: Clock = system_clock):
        self._clock = clock
        self._items: dict[str, _StoredItem] = {}

    async def get(self, key: str, type: ValueType = "json") -> Any | None:
        item = self._items.get(key)
        if item is None:
            return None
        if item.expires_at is not None and self._clock() >= item.expires_at:
            del self._items[key]
            return None
        return decode(item.value, type)

    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        expires_at = None
        if expiration_ttl is not None:
            expires_at = self._clock() + expiration_ttl * 1000
        self._items[key] = _StoredItem(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        """Keys currently held, expired or not."""
        return list(self._items)

    def raw(self, key: str) -> str | None:
        """Stored string of a key without any expiry check."""
        item = self._items.get(key)
        return item.value if item else None
