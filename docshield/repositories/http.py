"""
HttpDocumentRepository - Document repository backed by the upstream REST API.

Endpoints (relative to the configured base URL):
- GET /collections/{collection}/documents
- GET /collections/{collection}/documents/{id}          (404 means absent)
- GET /collections/{collection}/documents/{id}/children
- GET /workspace

List endpoints answer ``{"results": [...]}``.
"""

from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import ValidationError

from docshield.repositories.base import BaseDocumentRepository
from docshield.repositories.models import Document, Workspace
from docshield.services.errors import RequestTimeoutError, UpstreamError


def _path(*segments: str) -> str:
    return "/" + "/".join(quote(segment, safe="") for segment in segments)


class HttpDocumentRepository(BaseDocumentRepository):
    """
    Plain upstream access: no caching, no rate limiting, no circuit breaker.

    Wrap it in a CachedDocumentRepository for that. Errors are raised as
    RequestTimeoutError / UpstreamError so callers can tell them apart.

    Usage:
        async with HttpDocumentRepository("https://docs.example.com/v1", api_key) as repo:
            documents = await repo.list_documents("invoices")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        service_id: str = "upstream-api",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self.service_id = service_id
        self._transport = transport

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            headers = {"Accept": "application/json"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def _request(self, path: str, allow_missing: bool = False) -> Any:
        """GET a path and decode its JSON body; None on 404 when allowed."""
        client = await self._get_http_client()

        try:
            response = await client.get(path)
            if allow_missing and response.status_code == httpx.codes.NOT_FOUND:
                return None
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(self.service_id, self._timeout) from e

        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                service_id=self.service_id,
                status_code=e.response.status_code,
            ) from e

        except httpx.RequestError as e:
            raise UpstreamError(str(e), service_id=self.service_id) from e

        except ValueError as e:
            raise UpstreamError(
                f"Invalid JSON from {path}: {e}", service_id=self.service_id
            ) from e

    def _documents(self, payload: Any, collection: str) -> list[Document]:
        try:
            return [
                Document.model_validate({**item, "collection": collection})
                for item in payload["results"]
            ]
        except (KeyError, TypeError, ValidationError) as e:
            raise UpstreamError(
                f"Malformed document list for '{collection}': {e}",
                service_id=self.service_id,
            ) from e

    async def list_documents(self, collection: str) -> list[Document]:
        payload = await self._request(_path("collections", collection, "documents"))
        documents = self._documents(payload, collection)
        logger.debug(f"Fetched {len(documents)} documents from '{collection}'")
        return documents

    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        payload = await self._request(
            _path("collections", collection, "documents", doc_id), allow_missing=True
        )
        if payload is None:
            logger.debug(f"Document not found in '{collection}'")
            return None
        try:
            return Document.model_validate({**payload, "collection": collection})
        except (TypeError, ValidationError) as e:
            raise UpstreamError(
                f"Malformed document in '{collection}': {e}",
                service_id=self.service_id,
            ) from e

    async def list_children(self, collection: str, doc_id: str) -> list[Document]:
        payload = await self._request(
            _path("collections", collection, "documents", doc_id, "children")
        )
        return self._documents(payload, collection)

    async def get_workspace(self) -> Workspace:
        payload = await self._request("/workspace")
        try:
            return Workspace.model_validate(payload)
        except ValidationError as e:
            raise UpstreamError(
                f"Malformed workspace: {e}", service_id=self.service_id
            ) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("HttpDocumentRepository closed")

    async def __aenter__(self) -> "HttpDocumentRepository":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
