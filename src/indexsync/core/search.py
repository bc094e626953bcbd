"""Search Facade — Type-scoped queries with optional hydration.

The facade runs a query through the index adapter, scoped to the index and
type of a registered model, and materializes the hits:

  1. The adapter filters on the type server-side; the facade drops any hit of
     another type as well, so a shared index never leaks foreign documents.
  2. Query-string searches run over the model's own fields only, never the
     type discriminator. Hit ids are store ids.
  3. Without hydration a hit carries the index projection only (the mapped
     fields).
  4. With hydration every hit is replaced by the primary-store record merged
     over its projection. A hit whose record is gone keeps its projection and
     is flagged with a ``HydrationMissError``; the query itself still
     succeeds.

Rejected queries raise ``QueryError``; nothing is repaired or retried.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from indexsync.adapters.base.adapter import IndexAdapter, RawResults
from indexsync.adapters.base.exceptions import AdapterError, QueryError
from indexsync.exceptions import HydrationMissError
from indexsync.models.mapping import TypeBinding
from indexsync.models.query import SearchOptions
from indexsync.models.results import SearchHit, SearchResults
from indexsync.store.base import DocumentStore

logger = logging.getLogger(__name__)


class SearchFacade:
    """Materializes search results for registered models.

    Args:
        adapter: Index adapter used to run queries.
        store: Primary store used to hydrate hits.
    """

    def __init__(self, adapter: IndexAdapter, store: DocumentStore) -> None:
        self.adapter = adapter
        self.store = store

    async def search(
        self,
        binding: TypeBinding,
        query: str | dict[str, Any],
        options: SearchOptions | None = None,
    ) -> SearchResults:
        """Search the documents of ``binding``'s type.

        Args:
            binding: The registered model the search is scoped to.
            query: A query string or a backend-native request body.
            options: Hydration override plus pass-through pagination/sort.

        Returns:
            The result set; per-hit hydration misses are listed in ``errors``.

        Raises:
            QueryError: If the backend rejects or fails the query.
        """
        options = options or SearchOptions()
        hydrate = binding.hydrate if options.hydrate is None else options.hydrate
        start = time.monotonic()

        try:
            raw = await self.adapter.query(
                binding.index,
                binding.type,
                query,
                fields=binding.query_fields(),
                boosts=binding.mapping.boosts or None,
                **options.backend_params(),
            )
        except QueryError as e:
            logger.warning("Query on %s/%s rejected: %s", binding.index, binding.type, e)
            raise
        except AdapterError as e:
            logger.warning("Query on %s/%s failed: %s", binding.index, binding.type, e)
            raise QueryError(f"Search on '{binding.index}/{binding.type}' failed: {e}") from e

        hits, dropped = self._own_hits(binding, raw)
        errors: list[str] = []
        if hydrate and hits:
            errors = await self._hydrate(binding, hits)

        return SearchResults(
            model_name=binding.model_name,
            total=max(raw.total_hits - dropped, len(hits)),
            hits=hits,
            took_ms=int((time.monotonic() - start) * 1000),
            errors=errors,
        )

    def _own_hits(self, binding: TypeBinding, raw: RawResults) -> tuple[list[SearchHit], int]:
        """Hits of ``binding``'s type, and the number of foreign hits dropped."""
        type_field = self.adapter.type_field
        hits: list[SearchHit] = []
        dropped = 0
        for doc in raw.documents:
            hit_type = self.adapter.hit_type(doc)
            if hit_type != binding.type:
                dropped += 1
                continue
            source = {k: v for k, v in (doc.get("_source") or {}).items() if k != type_field}
            hits.append(
                SearchHit(
                    id=self.adapter.hit_id(doc),
                    index=doc.get("_index") or binding.index,
                    type=hit_type,
                    score=doc.get("_score"),
                    source=source,
                )
            )
        if dropped:
            logger.debug("Dropped %d hit(s) not of type '%s' from %s", dropped, binding.type, binding.index)
        return hits, dropped

    async def _hydrate(self, binding: TypeBinding, hits: list[SearchHit]) -> list[str]:
        """Merge store records over the hits in place; returns per-hit errors."""
        errors: list[str] = []
        try:
            records = await self.store.get_many(binding.model_name, [hit.id for hit in hits])
        except Exception as e:
            logger.error("Hydration of %d %s hit(s) failed", len(hits), binding.model_name, exc_info=True)
            message = f"Hydration failed: {e}"
            for hit in hits:
                hit.error = message
            return [message] * len(hits)

        for hit in hits:
            record = records.get(hit.id)
            if record is None:
                miss = HydrationMissError(binding.model_name, hit.id)
                logger.info("%s", miss)
                hit.error = str(miss)
                errors.append(str(miss))
                continue
            hit.source = {**hit.source, **record}
            hit.hydrated = True
        return errors
