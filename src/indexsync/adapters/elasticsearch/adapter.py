"""Elasticsearch adapter — Index synchronization and search for Elasticsearch (v8+).

Uses the official async client (``elasticsearch[async]``). Document, query
and health handling is shared with OpenSearch in
``indexsync.adapters.base.elastic``.

Install the optional dependency::

    pip install indexsync[elasticsearch]
"""

from __future__ import annotations

from typing import Any

from indexsync.adapters.base.elastic import ElasticCompatibleAdapter
from indexsync.adapters.base.exceptions import ConfigurationError


class ElasticsearchAdapter(ElasticCompatibleAdapter):
    """Index adapter for Elasticsearch (v8+).

    Accepts the ``ElasticCompatibleAdapter`` arguments; ``api_key`` takes
    precedence over basic auth.
    """

    label = "Elasticsearch"
    default_host = "http://localhost:9200"

    @property
    def name(self) -> str:
        return "elasticsearch"

    async def initialize(self) -> None:
        """Create and verify the ``AsyncElasticsearch`` client."""
        try:
            from elasticsearch import AsyncElasticsearch
        except ImportError as e:
            raise ConfigurationError(
                "elasticsearch package is required.  Install with: pip install indexsync[elasticsearch]"
            ) from e

        client_kwargs: dict[str, Any] = {
            "hosts": self._hosts,
            "verify_certs": self._verify_certs,
            "request_timeout": self._request_timeout,
        }
        if self._api_key:
            client_kwargs["api_key"] = self._api_key
        elif self._username and self._password:
            client_kwargs["basic_auth"] = (self._username, self._password)

        client_kwargs.update(self._extra_kwargs)
        await self._connect(lambda: AsyncElasticsearch(**client_kwargs))
