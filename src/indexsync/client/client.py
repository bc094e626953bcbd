"""IndexSync Python SDK — Async and sync clients for the IndexSync REST API.

Usage::

    # Async
    async with AsyncIndexSyncClient("http://localhost:8080") as client:
        results = await client.search("Tweet", "mongo")

    # Sync (wraps async client internally)
    client = IndexSyncClient("http://localhost:8080")
    results = client.search("Tweet", "mongo")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar, cast

import httpx

_T = TypeVar("_T")

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Response types (lightweight dicts — avoids coupling to server models)
# ═══════════════════════════════════════════════════════════════════════════════

SearchResult = dict[str, Any]
"""Search response dict (mirrors ``SearchResults`` JSON)."""

SaveResult = dict[str, Any]
"""Save response dict with ``document`` and ``signal`` keys."""

RemoveResult = dict[str, Any]
"""Remove response dict with ``document`` and ``signal`` keys."""


# ═══════════════════════════════════════════════════════════════════════════════
# Async client
# ═══════════════════════════════════════════════════════════════════════════════


class AsyncIndexSyncClient:
    """Async Python client for the IndexSync API.

    Args:
        base_url: IndexSync server URL, e.g. ``"http://localhost:8080"``.
        timeout: Request timeout in seconds.
        **httpx_kwargs: Additional keyword arguments passed to ``httpx.AsyncClient``.

    Example::

        async with AsyncIndexSyncClient("http://localhost:8080") as client:
            await client.save("Tweet", {"user": "john", "message": "hello"})
            resp = await client.search("Tweet", "hello", hydrate=True)
            for hit in resp["hits"]:
                print(hit["source"]["message"])
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        *,
        timeout: float = 30.0,
        **httpx_kwargs: Any,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            **httpx_kwargs,
        )

    async def __aenter__(self) -> AsyncIndexSyncClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ── Health ──

    async def health(self) -> dict[str, Any]:
        """Check server health.

        Returns:
            Health status dict.
        """
        resp = await self._client.get("/v1/health")
        resp.raise_for_status()
        return cast(dict[str, Any], resp.json())

    async def adapter_health(self) -> dict[str, Any]:
        """Check adapter health.

        Returns:
            Per-adapter health status dict.
        """
        resp = await self._client.get("/v1/health/adapters")
        resp.raise_for_status()
        return cast(dict[str, Any], resp.json())

    # ── Models ──

    async def models(self) -> list[dict[str, Any]]:
        """List registered models with their index, type and mapping."""
        resp = await self._client.get("/v1/models")
        resp.raise_for_status()
        return cast(list[dict[str, Any]], resp.json()["models"])

    # ── Search ──

    async def search(
        self,
        model: str,
        query: str | dict[str, Any],
        *,
        hydrate: bool | None = None,
        size: int | None = None,
        from_: int | None = None,
        sort: Any = None,
        **extra: Any,
    ) -> SearchResult:
        """Search the documents of one model.

        Args:
            model: Registered model name.
            query: Query string or backend-native request body.
            hydrate: Override the model's hydration default.
            size: Maximum number of hits.
            from_: Offset of the first hit.
            sort: Backend-native sort.
            **extra: Additional backend search parameters.

        Returns:
            Search response dict with ``total``, ``hits`` and ``errors``.

        Raises:
            httpx.HTTPStatusError: 400 for a rejected query, 404 for an
                unknown model.
        """
        options: dict[str, Any] = {"extra": extra}
        if hydrate is not None:
            options["hydrate"] = hydrate
        if size is not None:
            options["size"] = size
        if from_ is not None:
            options["from"] = from_
        if sort is not None:
            options["sort"] = sort

        resp = await self._client.post(
            f"/v1/models/{model}/search",
            json={"query": query, "options": options},
        )
        resp.raise_for_status()
        return cast(dict[str, Any], resp.json())

    # ── Documents ──

    async def save(self, model: str, document: dict[str, Any]) -> SaveResult:
        """Save a document and wait until it has been indexed."""
        resp = await self._client.put(f"/v1/models/{model}/documents", json=document)
        resp.raise_for_status()
        return cast(dict[str, Any], resp.json())

    async def remove(self, model: str, document_id: str) -> RemoveResult:
        """Remove a document and wait until the index removal completed or was given up."""
        resp = await self._client.delete(f"/v1/models/{model}/documents/{document_id}")
        resp.raise_for_status()
        return cast(dict[str, Any], resp.json())


# ═══════════════════════════════════════════════════════════════════════════════
# Sync client (wraps AsyncIndexSyncClient)
# ═══════════════════════════════════════════════════════════════════════════════


class IndexSyncClient:
    """Synchronous Python client for the IndexSync API.

    Wraps :class:`AsyncIndexSyncClient` using ``asyncio.run``.

    Args:
        base_url: IndexSync server URL.
        timeout: Request timeout in seconds.
        **httpx_kwargs: Additional keyword arguments passed to ``httpx.AsyncClient``.

    Example::

        client = IndexSyncClient("http://localhost:8080")
        resp = client.search("Tweet", "hello")
        print(resp["total"])
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        *,
        timeout: float = 30.0,
        **httpx_kwargs: Any,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._httpx_kwargs = httpx_kwargs

    def _run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        """Run an async coroutine synchronously."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            # Already inside an event loop (e.g. Jupyter): run in a worker thread
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
                return pool.submit(asyncio.run, coro).result()
        return asyncio.run(coro)

    def _make_client(self) -> AsyncIndexSyncClient:
        return AsyncIndexSyncClient(
            self._base_url,
            timeout=self._timeout,
            **self._httpx_kwargs,
        )

    def health(self) -> dict[str, Any]:
        """Check server health."""

        async def _call() -> dict[str, Any]:
            async with self._make_client() as c:
                return await c.health()

        return self._run(_call())

    def adapter_health(self) -> dict[str, Any]:
        """Check adapter health."""

        async def _call() -> dict[str, Any]:
            async with self._make_client() as c:
                return await c.adapter_health()

        return self._run(_call())

    def models(self) -> list[dict[str, Any]]:
        """List registered models."""

        async def _call() -> list[dict[str, Any]]:
            async with self._make_client() as c:
                return await c.models()

        return self._run(_call())

    def search(
        self,
        model: str,
        query: str | dict[str, Any],
        *,
        hydrate: bool | None = None,
        size: int | None = None,
        from_: int | None = None,
        sort: Any = None,
        **extra: Any,
    ) -> SearchResult:
        """Search the documents of one model."""

        async def _call() -> SearchResult:
            async with self._make_client() as c:
                return await c.search(
                    model,
                    query,
                    hydrate=hydrate,
                    size=size,
                    from_=from_,
                    sort=sort,
                    **extra,
                )

        return self._run(_call())

    def save(self, model: str, document: dict[str, Any]) -> SaveResult:
        """Save a document and wait until it has been indexed."""

        async def _call() -> SaveResult:
            async with self._make_client() as c:
                return await c.save(model, document)

        return self._run(_call())

    def remove(self, model: str, document_id: str) -> RemoveResult:
        """Remove a document and wait for the index removal outcome."""

        async def _call() -> RemoveResult:
            async with self._make_client() as c:
                return await c.remove(model, document_id)

        return self._run(_call())
