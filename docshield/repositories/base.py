"""
Base document repository interface.
"""

from abc import ABC, abstractmethod

from docshield.repositories.models import Document, Workspace


class BaseDocumentRepository(ABC):
    """
    Abstract base class for document repositories.

    Every operation is a single-shot coroutine that returns data or raises.
    ``get_document`` signals absence with None rather than an exception.
    """

    @abstractmethod
    async def list_documents(self, collection: str) -> list[Document]:
        """All documents of a collection."""
        ...

    @abstractmethod
    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        """One document, or None when the upstream does not know it."""
        ...

    @abstractmethod
    async def list_children(self, collection: str, doc_id: str) -> list[Document]:
        """Documents nested under a document (line items, blocks, ...)."""
        ...

    @abstractmethod
    async def get_workspace(self) -> Workspace: ...
