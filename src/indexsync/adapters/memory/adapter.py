"""In-memory adapter — A process-local index for tests and local development.

Understands a small, Elasticsearch-shaped subset of the query DSL:
query strings, ``match_all``, ``match_none``, ``match``, ``term``,
``query_string`` and ``bool`` (``must`` / ``should`` / ``filter`` / ``must_not``), plus ``size``,
``from`` and ``sort``. Anything else is rejected with a ``parsing_exception``
diagnostic, like a real backend would.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import re
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from indexsync.adapters.base.adapter import DEFAULT_TYPE_FIELD, AdapterHealth, IndexAdapter, RawResults
from indexsync.adapters.base.dsl import query_string
from indexsync.adapters.base.exceptions import DocumentNotFoundError, QueryError
from indexsync.models.mapping import IndexMapping

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)
_BODY_KEYS = {"query", "size", "from", "sort", "_source"}

Matcher = Callable[[dict[str, Any]], float]


def _tokens(value: Any) -> set[str]:
    if isinstance(value, dict):
        return set().union(*(_tokens(v) for v in value.values())) if value else set()
    if isinstance(value, (list, tuple)):
        return set().union(*(_tokens(v) for v in value)) if value else set()
    if value is None or isinstance(value, bool):
        return set()
    return {t.lower() for t in _TOKEN_RE.findall(str(value))}


class InMemoryIndexAdapter(IndexAdapter):
    """Index adapter backed by plain dictionaries.

    Args:
        type_field: Name of the type discriminator field.
        write_delay: Seconds to wait before applying each index write.
            Lets tests reproduce removals that overtake indexing.
    """

    def __init__(self, type_field: str = DEFAULT_TYPE_FIELD, write_delay: float = 0.0, **_: Any) -> None:
        self.type_field = type_field
        self.write_delay = write_delay
        self.mappings: dict[str, dict[str, IndexMapping]] = {}
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}
        self._versions: dict[tuple[str, str], int] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        logger.info("Using in-memory index backend")

    async def shutdown(self) -> None:
        self.mappings.clear()
        self.documents.clear()
        self._versions.clear()

    # ── Mapping ──────────────────────────────────────────────────────────

    async def create_mapping(self, index: str, doc_type: str, mapping: IndexMapping) -> None:
        self.mappings.setdefault(index, {})[doc_type] = mapping
        self.documents.setdefault(index, {})

    # ── Documents ────────────────────────────────────────────────────────

    async def index_document(
        self,
        index: str,
        doc_type: str,
        doc_id: str,
        projection: dict[str, Any],
    ) -> dict[str, Any]:
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        native = self.native_id(doc_type, doc_id)
        docs = self.documents.setdefault(index, {})
        created = native not in docs
        docs[native] = {**copy.deepcopy(projection), self.type_field: doc_type}
        version = self._versions.get((index, native), 0) + 1
        self._versions[(index, native)] = version
        return {
            "_index": index,
            "_id": native,
            "_version": version,
            "result": "created" if created else "updated",
        }

    async def delete_document(self, index: str, doc_type: str, doc_id: str) -> dict[str, Any]:
        native = self.native_id(doc_type, doc_id)
        docs = self.documents.get(index, {})
        if native not in docs:
            raise DocumentNotFoundError(f"{doc_type} '{doc_id}' not found in '{index}'.")
        del docs[native]
        version = self._versions.get((index, native), 0) + 1
        self._versions[(index, native)] = version
        return {"_index": index, "_id": native, "_version": version, "result": "deleted"}

    def get_source(self, index: str, doc_id: str, doc_type: str | None = None) -> dict[str, Any] | None:
        """Stored source of store id ``doc_id``, or None.

        Without ``doc_type`` the first document of any type with that id is
        returned.
        """
        for native, source in self.documents.get(index, {}).items():
            hit = {"_id": native, "_source": source}
            if self.hit_id(hit) == doc_id and doc_type in (None, source.get(self.type_field)):
                return copy.deepcopy(source)
        return None

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
        start = time.monotonic()
        if index not in self.documents:
            raise QueryError(f"index_not_found_exception: no such index [{index}]")

        if fields is not None:
            fields = [name for name in fields if name != self.type_field]
        request: dict[str, Any] = {"query": body} if isinstance(body, str) else dict(body)
        if isinstance(request.get("query"), str):
            request["query"] = query_string(request["query"], fields, boosts)
        unknown = set(request) - _BODY_KEYS
        if unknown:
            raise QueryError(f"parsing_exception: Unknown key for a request body: {sorted(unknown)}")
        for key, value in params.items():
            request["from" if key == "from_" else key] = value

        matcher = self._compile(request.get("query", {"match_all": {}}), boosts or {})
        scored: list[tuple[float, str, dict[str, Any]]] = []
        for doc_id, source in self.documents[index].items():
            if doc_type is not None and source.get(self.type_field) != doc_type:
                continue
            score = matcher(source)
            if score > 0:
                scored.append((score, doc_id, source))

        scored.sort(key=lambda item: item[0], reverse=True)
        if "sort" in request:
            scored = self._sort(scored, request["sort"])

        offset = int(request.get("from", 0))
        size = int(request.get("size", 10))
        hits = [
            {"_index": index, "_id": doc_id, "_score": score, "_source": copy.deepcopy(source)}
            for score, doc_id, source in scored[offset : offset + size]
        ]
        return RawResults(
            total_hits=len(scored),
            documents=hits,
            took_ms=int((time.monotonic() - start) * 1000),
        )

    def _compile(self, query: Any, boosts: dict[str, float]) -> Matcher:
        """Turn a query clause into a scoring function (0 means no match)."""
        if not isinstance(query, dict) or len(query) != 1:
            raise QueryError(f"parsing_exception: malformed query, expected a single-key object: {query!r}")
        kind, spec = next(iter(query.items()))

        if kind == "match_all":
            return lambda source: 1.0

        if kind == "match_none":
            return lambda source: 0.0

        if kind == "query_string":
            text = spec.get("query") if isinstance(spec, dict) else None
            if not isinstance(text, str):
                raise QueryError("parsing_exception: [query_string] requires 'query'")
            wanted = _tokens(text)
            weights = _field_weights(spec.get("fields"))

            def _query_string(source: dict[str, Any]) -> float:
                # No field list: every field of the source, the type field included.
                fields = weights if weights is not None else {name: boosts.get(name, 1.0) for name in source}
                return sum(weight for name, weight in fields.items() if wanted & _tokens(source.get(name)))

            return _query_string

        if kind in ("match", "term"):
            if not isinstance(spec, dict) or len(spec) != 1:
                raise QueryError(f"parsing_exception: [{kind}] query malformed")
            field, value = next(iter(spec.items()))
            if isinstance(value, dict):
                value = value.get("query", value.get("value"))
            if kind == "term":
                return lambda source: boosts.get(field, 1.0) if source.get(field) == value else 0.0
            wanted = _tokens(value)
            return lambda source: boosts.get(field, 1.0) if wanted & _tokens(source.get(field)) else 0.0

        if kind == "bool":
            if not isinstance(spec, dict):
                raise QueryError("parsing_exception: [bool] query malformed")
            clauses = {
                occur: [self._compile(q, boosts) for q in _as_list(spec.get(occur))]
                for occur in ("must", "should", "filter", "must_not")
            }

            def _bool(source: dict[str, Any]) -> float:
                if any(m(source) <= 0 for m in clauses["must"] + clauses["filter"]):
                    return 0.0
                if any(m(source) > 0 for m in clauses["must_not"]):
                    return 0.0
                score = sum(m(source) for m in clauses["must"])
                should = [m(source) for m in clauses["should"]]
                if clauses["should"] and not clauses["must"] and not any(s > 0 for s in should):
                    return 0.0
                return (score + sum(should)) or 1.0

            return _bool

        raise QueryError(f"parsing_exception: unknown query [{kind}]")

    @staticmethod
    def _sort(
        scored: list[tuple[float, str, dict[str, Any]]],
        sort: Any,
    ) -> list[tuple[float, str, dict[str, Any]]]:
        for clause in reversed(_as_list(sort)):
            if isinstance(clause, str):
                field, order = clause, "asc"
            elif isinstance(clause, dict) and len(clause) == 1:
                field, order = next(iter(clause.items()))
                if isinstance(order, dict):
                    order = order.get("order", "asc")
            else:
                raise QueryError(f"parsing_exception: malformed sort clause {clause!r}")
            if field == "_score":
                continue
            scored = sorted(
                scored,
                key=lambda item: (item[2].get(field) is None, str(item[2].get(field, ""))),
                reverse=order == "desc",
            )
        return scored

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> AdapterHealth:
        docs = sum(len(d) for d in self.documents.values())
        return AdapterHealth(
            status="healthy",
            last_check=datetime.now(UTC).isoformat(),
            message=f"Indices: {len(self.documents)}, Documents: {docs}",
        )


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _field_weights(fields: Any) -> dict[str, float] | None:
    """``["title^2", "abstract"]`` → ``{"title": 2.0, "abstract": 1.0}``; None for default fields."""
    if fields is None:
        return None
    weights: dict[str, float] = {}
    for entry in _as_list(fields):
        name, _, boost = str(entry).partition("^")
        if name == "*":
            return None
        try:
            weights[name] = float(boost) if boost else 1.0
        except ValueError as e:
            raise QueryError(f"parsing_exception: malformed field boost [{entry}]") from e
    return weights
