"""OpenSearch adapter — Index synchronization and search for OpenSearch (v2+).

OpenSearch is an AWS-maintained fork of Elasticsearch with a compatible
query DSL and API surface.  This adapter uses ``opensearch-py`` (async);
document, query and health handling is shared with the Elasticsearch
adapter in ``indexsync.adapters.base.elastic``.

Install the optional dependency::

    pip install indexsync[opensearch]
    # or: pip install opensearch-py
"""

from __future__ import annotations

from typing import Any

from indexsync.adapters.base.elastic import ElasticCompatibleAdapter
from indexsync.adapters.base.exceptions import ConfigurationError


class OpenSearchAdapter(ElasticCompatibleAdapter):
    """Index adapter for OpenSearch (v2+).

    Accepts the ``ElasticCompatibleAdapter`` arguments; ``api_key`` is unused
    by OpenSearch and accepted for configuration symmetry.
    """

    label = "OpenSearch"
    default_host = "https://localhost:9200"

    @property
    def name(self) -> str:
        return "opensearch"

    async def initialize(self) -> None:
        """Create and verify the ``AsyncOpenSearch`` client."""
        try:
            from opensearchpy import AsyncOpenSearch
        except ImportError as e:
            raise ConfigurationError(
                "opensearch-py package is required.  Install with: pip install indexsync[opensearch]"
            ) from e

        client_kwargs: dict[str, Any] = {
            "hosts": self._hosts,
            "verify_certs": self._verify_certs,
            "ssl_show_warn": False,
            "timeout": self._request_timeout,
        }
        if self._username and self._password:
            client_kwargs["http_auth"] = (self._username, self._password)

        client_kwargs.update(self._extra_kwargs)
        await self._connect(lambda: AsyncOpenSearch(**client_kwargs))

    # opensearch-py takes request bodies as ``body`` and query-string
    # parameters through ``params``.

    async def _create_index(self, client: Any, index: str, mappings: dict[str, Any]) -> None:
        await client.indices.create(index=index, body={"mappings": mappings})

    def _document_kwargs(self, document: dict[str, Any]) -> dict[str, Any]:
        return {"body": document}

    def _write_kwargs(self) -> dict[str, Any]:
        return {"params": {"refresh": "true"} if self._refresh_on_write else {}}
