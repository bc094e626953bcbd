"""API dependencies — Dependency injection for FastAPI endpoints."""

from __future__ import annotations

from indexsync.core.engine import IndexSyncEngine

# Global engine instance (set during application lifespan)
_engine: IndexSyncEngine | None = None


def set_engine(engine: IndexSyncEngine | None) -> None:
    """Set the global engine instance (called during app lifespan)."""
    global _engine
    _engine = engine


def get_engine() -> IndexSyncEngine:
    """Get the global IndexSync engine instance.

    Returns:
        The initialized IndexSyncEngine.

    Raises:
        RuntimeError: If the engine is not initialized.
    """
    if _engine is None:
        raise RuntimeError("IndexSync engine not initialized. Is the server running?")
    return _engine
