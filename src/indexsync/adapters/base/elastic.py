"""Shared base for Elasticsearch-compatible adapters.

Elasticsearch and OpenSearch expose the same document, search and cluster
APIs; they differ in client construction and in how a few request arguments
are spelled. This base implements the ``IndexAdapter`` contract once, on top
of an async client created by the subclass's ``initialize()``.

Every document is written under a type-qualified id (``native_id``) and
carries its type in ``type_field``; every query is filtered on that field.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from indexsync.adapters.base.adapter import DEFAULT_TYPE_FIELD, AdapterHealth, IndexAdapter, RawResults
from indexsync.adapters.base.dsl import is_not_found, native_mapping, raw_results, search_body
from indexsync.adapters.base.exceptions import (
    AdapterError,
    ConnectionError,
    DocumentNotFoundError,
    QueryError,
)
from indexsync.models.mapping import IndexMapping

logger = logging.getLogger(__name__)

_STATUS_MAP = {"green": "healthy", "yellow": "degraded", "red": "unhealthy"}


def response_body(response: Any) -> dict[str, Any]:
    """Plain dict of a client response (``ObjectApiResponse`` or dict)."""
    return dict(getattr(response, "body", response))


class ElasticCompatibleAdapter(IndexAdapter):
    """Index adapter over an Elasticsearch-compatible async client.

    Subclasses create ``self._client`` in ``initialize()`` and override the
    hooks below where their client spells a request differently.

    Args:
        hosts: List of node URLs.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        api_key: Optional API key.
        verify_certs: Whether to verify TLS certificates.
        request_timeout: Per-request timeout in seconds.
        refresh_on_write: Refresh the index after each write so it is
            immediately searchable.
        type_field: Name of the type discriminator field.
        **kwargs: Additional keyword arguments forwarded to the client.
    """

    #: Backend name used in log and error messages.
    label = "Elasticsearch"
    default_host = "http://localhost:9200"

    def __init__(
        self,
        hosts: list[str] | None = None,
        username: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        verify_certs: bool = True,
        request_timeout: float = 10.0,
        refresh_on_write: bool = False,
        type_field: str = DEFAULT_TYPE_FIELD,
        **kwargs: Any,
    ) -> None:
        self._hosts = hosts or [self.default_host]
        self._username = username
        self._password = password
        self._api_key = api_key
        self._verify_certs = verify_certs
        self._request_timeout = request_timeout
        self._refresh_on_write = refresh_on_write
        self._extra_kwargs = kwargs
        self.type_field = type_field
        self._client: Any = None

    async def _connect(self, make_client: Callable[[], Any]) -> None:
        """Create the client and verify it can reach the cluster."""
        try:
            self._client = make_client()
            info = response_body(await self._client.info())
            version = info.get("version", {}).get("number", "unknown")
            cluster = info.get("cluster_name", "unknown")
            logger.info("Connected to %s cluster: %s (v%s)", self.label, cluster, version)
        except Exception as e:
            raise ConnectionError(f"Failed to connect to {self.label}: {e}") from e

    async def shutdown(self) -> None:
        """Close the client."""
        if self._client:
            await self._client.close()
            self._client = None

    def _require_client(self) -> Any:
        if not self._client:
            raise ConnectionError(f"{self.label} client not initialized.")
        return self._client

    # ── Request hooks ────────────────────────────────────────────────────

    async def _create_index(self, client: Any, index: str, mappings: dict[str, Any]) -> None:
        await client.indices.create(index=index, mappings=mappings)

    def _document_kwargs(self, document: dict[str, Any]) -> dict[str, Any]:
        return {"document": document}

    def _write_kwargs(self) -> dict[str, Any]:
        return {"refresh": "true"} if self._refresh_on_write else {}

    # ── Mapping ──────────────────────────────────────────────────────────

    async def create_mapping(self, index: str, doc_type: str, mapping: IndexMapping) -> None:
        """Create ``index`` with the mapping, or merge the mapping into it."""
        client = self._require_client()
        body = native_mapping(mapping, self.type_field)
        try:
            if await client.indices.exists(index=index):
                await client.indices.put_mapping(index=index, body=body)
            else:
                await self._create_index(client, index, body)
            logger.info("Installed mapping for type '%s' in index '%s'", doc_type, index)
        except Exception as e:
            raise AdapterError(f"Failed to install mapping for '{index}/{doc_type}': {e}") from e

    # ── Documents ────────────────────────────────────────────────────────

    async def index_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str,
        projection: dict[str, Any],
    ) -> dict[str, Any]:
        client = self._require_client()
        document = {**projection, self.type_field: doc_type}
        try:
            response = await client.index(
                index=index,
                id=self.native_id(doc_type, doc_id),
                **self._document_kwargs(document),
                **self._write_kwargs(),
            )
        except Exception as e:
            raise AdapterError(f"Failed to index {doc_type} '{doc_id}' into '{index}': {e}") from e
        return response_body(response)

    async def delete_document(self, index: str, doc_type: str, doc_id: str) -> dict[str, Any]:
        client = self._require_client()
        try:
            response = await client.delete(index=index, id=self.native_id(doc_type, doc_id), **self._write_kwargs())
        except Exception as e:
            if is_not_found(e):
                raise DocumentNotFoundError(f"{doc_type} '{doc_id}' not found in '{index}'.") from e
            raise AdapterError(f"Failed to delete {doc_type} '{doc_id}' from '{index}': {e}") from e
        return response_body(response)

    async def refresh(self, index: str) -> None:
        client = self._require_client()
        try:
            await client.indices.refresh(index=index)
        except Exception as e:
            raise AdapterError(f"Failed to refresh '{index}': {e}") from e

    # ── Search ───────────────────────────────────────────────────────────

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
        """Execute a query against ``index``, filtered to ``doc_type``."""
        client = self._require_client()
        request = search_body(body, doc_type, self.type_field, fields=fields, boosts=boosts, params=params)

        try:
            start = time.monotonic()
            response = await client.search(index=index, body=request)
            took_ms = int((time.monotonic() - start) * 1000)
        except Exception as e:
            raise QueryError(f"{self.label} query failed: {e}") from e
        return raw_results(response, took_ms)

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> AdapterHealth:
        """Check cluster health."""
        if not self._client:
            return AdapterHealth(status="unhealthy", message="Client not initialized")

        try:
            start = time.monotonic()
            health = response_body(await self._client.cluster.health())
            latency_ms = int((time.monotonic() - start) * 1000)

            return AdapterHealth(
                status=_STATUS_MAP.get(health.get("status", "red"), "unhealthy"),
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Cluster: {health.get('cluster_name')}, Nodes: {health.get('number_of_nodes')}",
            )
        except Exception as e:
            return AdapterHealth(status="unhealthy", message=str(e))
