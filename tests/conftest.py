"""Shared test fixtures and configuration."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator
from datetime import datetime
from typing import Any

import pytest
import structlog

from indexsync.adapters.memory.adapter import InMemoryIndexAdapter
from indexsync.config.settings import Settings
from indexsync.core.engine import IndexSyncEngine
from indexsync.store.memory import InMemoryDocumentStore


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo any setup_logging() call made by a test or by application startup."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with no removal delay."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        sync={"remove_max_attempts": 3, "remove_retry_delay": 0.0},
    )


@pytest.fixture
def index_adapter() -> InMemoryIndexAdapter:
    return InMemoryIndexAdapter()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
async def engine(
    index_adapter: InMemoryIndexAdapter,
    store: InMemoryDocumentStore,
    settings: Settings,
) -> AsyncIterator[IndexSyncEngine]:
    await index_adapter.initialize()
    eng = IndexSyncEngine(index_adapter, store, settings)
    yield eng
    await eng.synchronizer.drain()


# ── Schemas ──────────────────────────────────────────────────────────────────


@pytest.fixture
def tweet_schema() -> dict[str, Any]:
    """Tweets index every declared field; the message is boosted."""
    return {
        "user": str,
        "userId": int,
        "post_date": datetime,
        "message": {"type": str, "boost": 2.0},
    }


@pytest.fixture
def talk_schema() -> dict[str, Any]:
    """Talks share the ``tweets`` index and index a subset of their fields."""
    return {
        "speaker": str,
        "year": {"type": int, "indexed": True},
        "title": {"type": str, "indexed": True},
        "abstract": {"type": str, "indexed": True},
        "bio": str,
    }


@pytest.fixture
def person_schema() -> dict[str, Any]:
    return {
        "name": {"type": str, "indexed": True},
        "phone": {"type": str, "indexed": True},
        "address": str,
        "life": {"born": int, "died": int},
    }


@pytest.fixture
async def tweet(engine: IndexSyncEngine, tweet_schema: dict[str, Any]):
    return await engine.register("Tweet", tweet_schema)


@pytest.fixture
async def talk(engine: IndexSyncEngine, talk_schema: dict[str, Any]):
    return await engine.register("Talk", talk_schema, {"index": "tweets", "type": "talk"})


@pytest.fixture
async def person(engine: IndexSyncEngine, person_schema: dict[str, Any]):
    return await engine.register("Person", person_schema, {"hydrate": True})


@pytest.fixture
def service_settings() -> Settings:
    """Settings for the HTTP service, with models declared in configuration."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        sync={"remove_max_attempts": 3, "remove_retry_delay": 0.0},
        models={
            "Tweet": {
                "fields": {"user": "string", "message": {"type": "string", "boost": 2.0}},
            },
            "Person": {
                "fields": {"name": {"type": "string", "indexed": True}, "address": "string"},
                "options": {"hydrate": True},
            },
        },
    )
