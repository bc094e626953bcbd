"""Health check endpoints — System and adapter health monitoring."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from indexsync import __version__
from indexsync.adapters.base.adapter import AdapterHealth
from indexsync.api.deps import get_engine
from indexsync.core.engine import IndexSyncEngine

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Response models ──────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    """System health check response."""

    status: str = Field(description="Health status (e.g. 'healthy')")
    version: str = Field(description="IndexSync server version")
    service: str = Field(description="Service name ('indexsync')")
    adapter: str = Field(description="Name of the index adapter in use")
    models: list[str] = Field(description="Registered model names")
    in_flight: int = Field(description="Synchronization operations still running")


class AdapterHealthResponse(BaseModel):
    """Per-adapter health check response."""

    adapters: dict[str, AdapterHealth] = Field(
        description="Map of adapter name to its health status",
    )


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="System Health Check",
    description=(
        "Returns overall system health, server version, the index adapter in "
        "use and the registered models."
    ),
)
async def health_check(
    engine: IndexSyncEngine = Depends(get_engine),
) -> HealthResponse:
    """Basic health check endpoint with adapter info."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        service="indexsync",
        adapter=engine.adapter.name,
        models=sorted(engine.models),
        in_flight=engine.synchronizer.in_flight,
    )


@router.get(
    "/health/adapters",
    response_model=AdapterHealthResponse,
    summary="Adapter Health Check",
    description=(
        "Run a health check on the index adapter and return its status, "
        "latency and diagnostic message."
    ),
)
async def adapter_health(
    engine: IndexSyncEngine = Depends(get_engine),
) -> AdapterHealthResponse:
    """Check health of the index adapter."""
    return AdapterHealthResponse(adapters=await engine.health_check())
