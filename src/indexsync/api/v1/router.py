"""API v1 Router — Model, document, search and health endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from indexsync.api.v1.endpoints.health import router as health_router
from indexsync.api.v1.endpoints.models import router as models_router

router = APIRouter(tags=["v1"])
router.include_router(models_router)
router.include_router(health_router)
