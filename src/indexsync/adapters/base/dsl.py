"""Query DSL helpers shared by the Elasticsearch-compatible adapters.

Translates generated mappings into native index mappings and scopes request
bodies to a single type through the discriminator field.
"""

from __future__ import annotations

import copy
from typing import Any

from indexsync.adapters.base.adapter import RawResults
from indexsync.models.mapping import IndexMapping

# Generated mapping types → Elasticsearch/OpenSearch field types.
# Overrides that are not listed here are passed through verbatim.
NATIVE_TYPES: dict[str, dict[str, Any]] = {
    "string": {"type": "text"},
    "number": {"type": "double"},
    "integer": {"type": "long"},
    "float": {"type": "float"},
    "boolean": {"type": "boolean"},
    # Stored in _source but not parsed, so any JSON value is accepted.
    "object": {"type": "object", "enabled": False},
}


def native_mapping(mapping: IndexMapping, type_field: str) -> dict[str, Any]:
    """Render ``mapping`` as a native ``mappings`` body.

    Boosts are not a mapping parameter on current backends; they are kept in
    ``_meta`` and applied at query time instead.
    """
    properties: dict[str, Any] = {type_field: {"type": "keyword"}}
    for name, field in mapping.properties.items():
        properties[name] = dict(NATIVE_TYPES.get(field.type, {"type": field.type}))
    body: dict[str, Any] = {"properties": properties}
    if mapping.boosts:
        body["_meta"] = {"boosts": mapping.boosts}
    return body


def type_filter(type_field: str, doc_type: str) -> dict[str, Any]:
    return {"term": {type_field: doc_type}}


def query_string(
    text: str,
    fields: list[str] | None = None,
    boosts: dict[str, float] | None = None,
) -> dict[str, Any]:
    """``query_string`` clause over ``fields``, boosted fields weighted by their boost.

    Without ``fields`` the boosted fields are searched, or the backend's
    default fields when nothing is boosted. An empty ``fields`` list has
    nothing to search and matches no document.
    """
    boosts = boosts or {}
    names = list(boosts) if fields is None else fields
    if fields is not None and not fields:
        return {"match_none": {}}
    clause: dict[str, Any] = {"query": text}
    if names:
        clause["fields"] = [f"{name}^{boosts[name]:g}" if name in boosts else name for name in names]
        # Numeric and boolean fields would otherwise reject free text.
        clause["lenient"] = True
    return {"query_string": clause}


def search_body(
    body: str | dict[str, Any],
    doc_type: str | None,
    type_field: str,
    *,
    fields: list[str] | None = None,
    boosts: dict[str, float] | None = None,
    params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a request body scoped to ``doc_type``.

    A string becomes a ``query_string`` query over ``fields``, boosted fields
    weighted by their boost; ``type_field`` is removed from ``fields`` so a
    type name never matches its own documents. A dict is treated as a
    backend-native request body: its ``query`` (if any) is wrapped in a
    ``bool`` with the type filter, and every other key is sent untouched so
    the backend can reject malformed bodies itself.
    """
    if fields is not None:
        fields = [name for name in fields if name != type_field]
    if isinstance(body, str):
        request: dict[str, Any] = {"query": query_string(body, fields, boosts)}
    else:
        request = copy.deepcopy(body)
        # {"query": "text"} is shorthand for a query-string search.
        if isinstance(request.get("query"), str):
            request["query"] = query_string(request["query"], fields, boosts)

    if doc_type is not None:
        scoped: dict[str, Any] = {"filter": [type_filter(type_field, doc_type)]}
        if "query" in request:
            scoped["must"] = [request["query"]]
        request["query"] = {"bool": scoped}

    for key, value in (params or {}).items():
        request["from" if key == "from_" else key] = value
    return request


def raw_results(response: Any, took_ms: int) -> RawResults:
    """Convert a search response into ``RawResults``."""
    response = dict(getattr(response, "body", response))
    hits = response.get("hits", {})
    total = hits.get("total", 0)
    if isinstance(total, dict):
        total = total.get("value", 0)
    return RawResults(
        total_hits=int(total),
        documents=list(hits.get("hits", [])),
        metadata={"took_backend_ms": response.get("took", 0)},
        took_ms=took_ms,
    )


def is_not_found(exc: Exception) -> bool:
    """Whether a client exception is the backend's 404 for a missing document."""
    return "NotFoundError" in type(exc).__name__ or getattr(exc, "status_code", None) == 404
