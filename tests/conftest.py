"""
Shared fixtures for the test suite.

Every component takes its clock as a constructor argument, so tests drive
time through a FakeClock instead of sleeping.
"""

import asyncio
from typing import Any

import pytest

from docshield.datastore.kv import BaseKVStore, MemoryKVStore, ValueType
from docshield.repositories.base import BaseDocumentRepository
from docshield.repositories.models import Document, Workspace

# 2024-01-15T00:00:00Z, aligned on every window size used in the tests
START_TIME_MS = 1_705_276_800_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = START_TIME_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms

    def advance_seconds(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FailingKVStore(BaseKVStore):
    """Every operation raises, like a store whose transport is down."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def get(self, key: str, type: ValueType = "json") -> Any | None:
        self.calls.append("get")
        raise ConnectionError("store unreachable")

    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        self.calls.append("put")
        raise ConnectionError("store unreachable")

    async def delete(self, key: str) -> None:
        self.calls.append("delete")
        raise ConnectionError("store unreachable")


class YieldingKVStore(MemoryKVStore):
    """Memory store that gives up the event loop on every call, like real I/O."""

    async def get(self, key: str, type: ValueType = "json") -> Any | None:
        await asyncio.sleep(0)
        return await super().get(key, type)

    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        await asyncio.sleep(0)
        await super().put(key, value, expiration_ttl)


class FakeDocumentRepository(BaseDocumentRepository):
    """In-memory upstream that counts calls and can be told to fail."""

    def __init__(self, documents: dict[str, list[Document]] | None = None):
        self.documents = documents or {}
        self.calls: list[tuple[str, ...]] = []
        self.error: Exception | None = None

    def _record(self, *call: str) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def list_documents(self, collection: str) -> list[Document]:
        self._record("list_documents", collection)
        return list(self.documents.get(collection, []))

    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        self._record("get_document", collection, doc_id)
        for document in self.documents.get(collection, []):
            if document.id == doc_id:
                return document
        return None

    async def list_children(self, collection: str, doc_id: str) -> list[Document]:
        self._record("list_children", collection, doc_id)
        return [
            Document(id=f"{doc_id}-line-1", collection=collection, title="Line 1"),
            Document(id=f"{doc_id}-line-2", collection=collection, title="Line 2"),
        ]

    async def get_workspace(self) -> Workspace:
        self._record("get_workspace")
        return Workspace(id="ws-1", name="Acme Studio", properties={"currency": "KRW"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryKVStore:
    return MemoryKVStore(clock=clock)


@pytest.fixture
def failing_store() -> FailingKVStore:
    return FailingKVStore()


@pytest.fixture
def yielding_store(clock: FakeClock) -> YieldingKVStore:
    return YieldingKVStore(clock=clock)


@pytest.fixture
def invoices() -> list[Document]:
    return [
        Document(
            id="inv-001",
            collection="invoices",
            title="INV-001",
            properties={"amount": 1500000, "status": "sent"},
            created_at="2024-01-15T09:30:00Z",
        ),
        Document(
            id="inv-002",
            collection="invoices",
            title="INV-002",
            properties={"amount": 320000, "status": "draft"},
        ),
    ]


@pytest.fixture
def upstream(invoices: list[Document]) -> FakeDocumentRepository:
    return FakeDocumentRepository({"invoices": invoices})
