"""Base index adapter — Abstract interface for all search engine connectors.

Every search backend must implement this interface to integrate with IndexSync.
The adapter is responsible for:
  1. Installing a type mapping into an index
  2. Writing and deleting single documents
  3. Executing queries scoped to an index and, where possible, a type
  4. Reporting health status

Several types may share one index. Adapters keep them apart by storing the
type name in a discriminator field of each document (``type_field``), by
filtering on it at query time, and by qualifying every index document id with
the type (``native_id``), so equal store ids of different types stay distinct
documents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from indexsync.models.mapping import IndexMapping

DEFAULT_TYPE_FIELD = "doc_type"
ID_SEPARATOR = "#"


class AdapterHealth(BaseModel):
    """Health status of an index adapter."""

    status: str = Field(description="Health status: healthy, degraded, unhealthy")
    latency_ms: int = Field(default=0, description="Latency of last health check in ms")
    last_check: str | None = Field(default=None, description="ISO timestamp of last health check")
    message: str | None = Field(default=None, description="Additional health message")


class RawResults(BaseModel):
    """Raw search results from a backend before materialization."""

    total_hits: int = Field(default=0, description="Total number of matching documents")
    documents: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Raw hits, each with '_id', '_index', '_score' and '_source'",
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="Backend-specific metadata")
    took_ms: int = Field(default=0, description="Backend query execution time in ms")


class IndexAdapter(ABC):
    """Abstract base class for index adapters.

    All adapters must implement:
      - create_mapping(): Install a type mapping into an index
      - index_document(): Create or replace one document
      - delete_document(): Delete one document, raising DocumentNotFoundError
        when it is absent
      - query(): Execute a query scoped to an index (and type)
      - health_check(): Report adapter health status

    Adapters are constructed explicitly and injected into the synchronizer
    and search facade; there is no process-wide client.
    """

    type_field: str = DEFAULT_TYPE_FIELD

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique adapter name (e.g., 'elasticsearch', 'memory')."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the adapter (connections, pools, etc.).

        Called once during application startup.
        """

    @abstractmethod
    async def shutdown(self) -> None:
        """Gracefully shut down the adapter and release its connections."""

    @abstractmethod
    async def create_mapping(self, index: str, doc_type: str, mapping: IndexMapping) -> None:
        """Install ``mapping`` for ``doc_type`` into ``index``, creating the index if needed.

        Raises:
            AdapterError: If the backend rejects the mapping.
        """

    @abstractmethod
    async def index_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str,
        projection: dict[str, Any],
    ) -> dict[str, Any]:
        """Create or replace a document.

        Returns:
            The raw backend response.

        Raises:
            AdapterError: If the write fails.
        """

    @abstractmethod
    async def delete_document(self, index: str, doc_type: str, doc_id: str) -> dict[str, Any]:
        """Delete a document.

        Returns:
            The raw backend response.

        Raises:
            DocumentNotFoundError: If the document is not in the index.
            AdapterError: For any other failure.
        """

    @abstractmethod
    async def query(
        self,
        index: str,
        doc_type: str | None,
        body: str | dict[str, Any],
        *,
        fields: list[str] | None = None,
        boosts: dict[str, float] | None = None,
        **params: Any,
    ) -> RawResults:
        """Execute a query against ``index``.

        Args:
            index: The index to search.
            doc_type: Restrict hits to this type when not None.
            body: A query string, or a backend-native request body.
            fields: Fields a query-string search runs over. When None, the
                boosted fields if any, else the backend's default fields.
            boosts: Per-field weights applied to query-string searches.
            **params: Pagination/sort parameters passed through verbatim.

        Raises:
            QueryError: If the backend rejects the query; the message includes
                the backend diagnostic.
        """

    @abstractmethod
    async def health_check(self) -> AdapterHealth:
        """Check the health of the search backend."""

    async def refresh(self, index: str) -> None:
        """Make recent writes to ``index`` visible to search.

        Backends without a refresh cycle need not override this.
        """
        return None

    def native_id(self, doc_type: str, doc_id: str) -> str:
        """Index document id for store id ``doc_id`` of ``doc_type``."""
        return f"{doc_type}{ID_SEPARATOR}{doc_id}"

    def hit_type(self, hit: dict[str, Any]) -> str | None:
        """Type name of a raw hit, read from its discriminator field."""
        source = hit.get("_source") or {}
        return source.get(self.type_field) or hit.get("_type")

    def hit_id(self, hit: dict[str, Any]) -> str:
        """Store id of a raw hit: its ``_id`` without the type qualifier."""
        native = str(hit.get("_id", ""))
        doc_type = self.hit_type(hit)
        if doc_type is None:
            return native
        prefix = f"{doc_type}{ID_SEPARATOR}"
        return native[len(prefix) :] if native.startswith(prefix) else native
