"""FastAPI application factory and lifecycle management."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from indexsync import __version__
from indexsync.adapters.base.registry import AdapterRegistry, create_adapter
from indexsync.api.deps import set_engine
from indexsync.api.v1.router import router as v1_router
from indexsync.config.settings import Settings
from indexsync.core.engine import IndexSyncEngine
from indexsync.observability.logging import setup_logging
from indexsync.store.base import DocumentStore
from indexsync.store.memory import InMemoryDocumentStore

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "INDEXSYNC_CONFIG"


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.
        store: Primary document store. If None, an in-memory store is used.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        # INDEXSYNC_CONFIG (set by `indexsync serve --config`), else ./indexsync-config.yaml
        yaml_path = Path(os.environ.get(CONFIG_ENV_VAR, "indexsync-config.yaml"))
        if yaml_path.exists():
            logger.info("Loading configuration from %s", yaml_path)
            settings = Settings.from_yaml(yaml_path)
        else:
            settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage application lifecycle (startup/shutdown)."""
        setup_logging(settings.observability)
        logger.info("Starting IndexSync v%s", __version__)

        registry = AdapterRegistry()
        adapter = await create_adapter(settings.backend, registry)
        engine = IndexSyncEngine(adapter, store or InMemoryDocumentStore(), settings)

        # Register models declared in configuration
        await engine.register_configured()

        set_engine(engine)

        # Store settings in app state
        app.state.settings = settings
        app.state.engine = engine
        app.state.adapter_registry = registry

        logger.info(
            "IndexSync is ready to serve requests on port %d (%d models)",
            settings.server.port,
            len(engine.models),
        )
        yield

        # Shutdown
        logger.info("Shutting down IndexSync...")
        await engine.shutdown()
        set_engine(None)
        logger.info("IndexSync shutdown complete")

    app = FastAPI(
        title="IndexSync",
        description=(
            "Keeps a document store and a full-text search index in step, and "
            "serves index-native or hydrated search results per model."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routers
    app.include_router(v1_router, prefix="/v1")

    return app
