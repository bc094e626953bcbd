"""Model endpoints — Registered models, document writes and type-scoped search.

Document writes go through the primary store, exactly like an application
save; the response is sent once the synchronizer has emitted the matching
completion signal, so a client can search for a document as soon as its
``PUT`` returns (given a backend that refreshes on write).
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from indexsync.api.deps import get_engine
from indexsync.core.engine import IndexSyncEngine, SearchableModel
from indexsync.exceptions import QueryError, UnknownModelError
from indexsync.models.query import SearchRequest
from indexsync.models.results import SearchResults
from indexsync.models.signals import IndexedSignal, RemovedSignal

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Response models ──────────────────────────────────────────────────────


class ModelInfo(BaseModel):
    """One registered model and its installed mapping."""

    name: str = Field(description="Registered model name")
    index: str = Field(description="Target index")
    type: str = Field(description="Type name within the index")
    hydrate: bool = Field(description="Hydrate search hits by default")
    primary_key: str = Field(description="Primary-key field of store records")
    mapping: dict[str, Any] = Field(description="Installed mapping ({'properties': ...})")


class ModelListResponse(BaseModel):
    models: list[ModelInfo] = Field(default_factory=list)


class SaveResponse(BaseModel):
    """Stored record plus the signal emitted once it was indexed."""

    document: dict[str, Any] = Field(description="Record as stored in the primary store")
    signal: IndexedSignal = Field(description="Index write outcome")


class RemoveResponse(BaseModel):
    """Removed record plus the signal emitted once the index caught up."""

    document: dict[str, Any] = Field(description="Record removed from the primary store")
    signal: RemovedSignal = Field(description="Index removal outcome")


def _resolve(engine: IndexSyncEngine, model_name: str) -> SearchableModel:
    try:
        return engine.model(model_name)
    except UnknownModelError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get(
    "/models",
    response_model=ModelListResponse,
    summary="List Models",
    description="Registered models with their index, type and installed mapping.",
)
async def list_models(
    engine: IndexSyncEngine = Depends(get_engine),
) -> ModelListResponse:
    return ModelListResponse(
        models=[
            ModelInfo(
                name=name,
                index=model.binding.index,
                type=model.binding.type,
                hydrate=model.binding.hydrate,
                primary_key=model.binding.primary_key,
                mapping=model.binding.mapping.to_dict(),
            )
            for name, model in sorted(engine.models.items())
        ]
    )


@router.post(
    "/models/{model_name}/search",
    response_model=SearchResults,
    summary="Search a Model",
    description=(
        "Search the documents of one model. `query` is a query string or a "
        "backend-native request body; `options.hydrate` overrides the model's "
        "hydration default.\n\n"
        "Hits of other types sharing the index are never returned. Hits whose "
        "record is missing from the primary store are listed in `errors`."
    ),
    responses={
        400: {"description": "The backend rejected the query"},
        404: {"description": "Unknown model"},
    },
)
async def search_model(
    model_name: str,
    request: SearchRequest,
    engine: IndexSyncEngine = Depends(get_engine),
) -> SearchResults:
    model = _resolve(engine, model_name)
    try:
        return await model.search(request.query, request.options)
    except QueryError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.put(
    "/models/{model_name}/documents",
    response_model=SaveResponse,
    summary="Save a Document",
    description=(
        "Insert or replace a document in the primary store and wait until it "
        "has been written to the index. A failed index write is reported in "
        "`signal.error`; the stored record is kept."
    ),
    responses={404: {"description": "Unknown model"}},
)
async def save_document(
    model_name: str,
    document: dict[str, Any],
    engine: IndexSyncEngine = Depends(get_engine),
) -> SaveResponse:
    model = _resolve(engine, model_name)
    pending = await model.save(document)
    signal = await pending
    if not signal.ok:
        logger.warning("Saved %s %s but indexing failed: %s", model_name, signal.document_id, signal.error)
    return SaveResponse(document=pending.document, signal=signal)


@router.delete(
    "/models/{model_name}/documents/{document_id}",
    response_model=RemoveResponse,
    summary="Remove a Document",
    description=(
        "Remove a document from the primary store and wait until the index "
        "removal succeeded or was given up after the configured attempts."
    ),
    responses={404: {"description": "Unknown model or document"}},
)
async def remove_document(
    model_name: str,
    document_id: str,
    engine: IndexSyncEngine = Depends(get_engine),
) -> RemoveResponse:
    model = _resolve(engine, model_name)
    pending = await model.remove(document_id)
    if pending is None:
        raise HTTPException(status_code=404, detail=f"No '{model_name}' document with id '{document_id}'")
    signal = await pending
    return RemoveResponse(document=pending.document, signal=signal)
