"""Integration test fixtures — Real Elasticsearch / OpenSearch backends.

Expects backends to be running locally, e.g.:

    docker run -d -p 9200:9200 -e discovery.type=single-node \
        -e xpack.security.enabled=false elasticsearch:8.13.4
    docker run -d -p 9201:9200 -e discovery.type=single-node \
        -e DISABLE_SECURITY_PLUGIN=true opensearchproject/opensearch:2.13.0

Tests are skipped when a backend is not reachable. Every test starts from
empty ``isync-test-*`` indices.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import httpx
import pytest

from indexsync.adapters.base.adapter import IndexAdapter
from indexsync.config.settings import Settings
from indexsync.core.engine import IndexSyncEngine
from indexsync.store.memory import InMemoryDocumentStore

TEST_INDEX_PREFIX = "isync-test-"
TEST_INDICES = [f"{TEST_INDEX_PREFIX}tweets", f"{TEST_INDEX_PREFIX}people"]

TWEETS: list[dict[str, Any]] = [
    {
        "_id": "tweet-001",
        "user": "jamescarr",
        "userId": 1,
        "post_date": datetime(2013, 4, 1),
        "message": "I like Riak better",
    },
    {
        "_id": "tweet-002",
        "user": "jamescarr",
        "userId": 1,
        "post_date": datetime(2013, 4, 2),
        "message": "Mongoose and Elasticsearch, getting along",
    },
]

TALKS: list[dict[str, Any]] = [
    {
        "_id": "talk-001",
        "speaker": "James Carr",
        "year": 2013,
        "title": "Dude",
        "abstract": "Full text search for document stores",
        "bio": "Riak enthusiast",
    },
]


def _wait_for_service(url: str, timeout: float = 5.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=2)
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(0.5)
    return False


def _drop_test_indices(host: str) -> None:
    httpx.delete(
        f"{host}/{','.join(TEST_INDICES)}",
        params={"ignore_unavailable": "true"},
        timeout=30,
    )


# ── Backends ─────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def elasticsearch_ready() -> str:
    """Ensure Elasticsearch is running."""
    host = "http://localhost:9200"
    if not _wait_for_service(host):
        pytest.skip("Elasticsearch not available at localhost:9200")
    pytest.importorskip("elasticsearch")
    return host


@pytest.fixture(scope="session")
def opensearch_ready() -> str:
    """Ensure OpenSearch is running."""
    host = "http://localhost:9201"
    if not _wait_for_service(host):
        pytest.skip("OpenSearch not available at localhost:9201")
    pytest.importorskip("opensearchpy")
    return host


# ── Engine ───────────────────────────────────────────────────────


@pytest.fixture
def integration_settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        sync={"remove_max_attempts": 3, "remove_retry_delay": 0.2},
    )


async def build_engine(adapter: IndexAdapter, settings: Settings) -> IndexSyncEngine:
    """Engine with ``Tweet`` and ``Talk`` sharing one index, and hydrated ``Person``."""
    await adapter.initialize()
    engine = IndexSyncEngine(adapter, InMemoryDocumentStore(), settings)
    await engine.register(
        "Tweet",
        {"user": str, "userId": int, "post_date": datetime, "message": {"type": str, "boost": 2.0}},
        {"index": f"{TEST_INDEX_PREFIX}tweets"},
    )
    await engine.register(
        "Talk",
        {
            "speaker": str,
            "year": {"type": int, "indexed": True},
            "title": {"type": str, "indexed": True},
            "abstract": {"type": str, "indexed": True},
            "bio": str,
        },
        {"index": f"{TEST_INDEX_PREFIX}tweets", "type": "talk"},
    )
    await engine.register(
        "Person",
        {"name": {"type": str, "indexed": True}, "address": str},
        {"index": f"{TEST_INDEX_PREFIX}people", "hydrate": True},
    )
    return engine


async def seed(engine: IndexSyncEngine) -> None:
    for doc in TWEETS:
        await (await engine.model("Tweet").save(doc))
    for doc in TALKS:
        await (await engine.model("Talk").save(doc))


@pytest.fixture
async def es_engine(elasticsearch_ready: str, integration_settings: Settings) -> AsyncIterator[IndexSyncEngine]:
    from indexsync.adapters.elasticsearch.adapter import ElasticsearchAdapter

    _drop_test_indices(elasticsearch_ready)
    adapter = ElasticsearchAdapter(hosts=[elasticsearch_ready], refresh_on_write=True)
    engine = await build_engine(adapter, integration_settings)
    yield engine
    await engine.shutdown()
    _drop_test_indices(elasticsearch_ready)


@pytest.fixture
async def os_engine(opensearch_ready: str, integration_settings: Settings) -> AsyncIterator[IndexSyncEngine]:
    from indexsync.adapters.opensearch.adapter import OpenSearchAdapter

    _drop_test_indices(opensearch_ready)
    adapter = OpenSearchAdapter(hosts=[opensearch_ready], verify_certs=False, refresh_on_write=True)
    engine = await build_engine(adapter, integration_settings)
    yield engine
    await engine.shutdown()
    _drop_test_indices(opensearch_ready)


@pytest.fixture
async def es_seeded(es_engine: IndexSyncEngine) -> IndexSyncEngine:
    await seed(es_engine)
    return es_engine


@pytest.fixture
async def os_seeded(os_engine: IndexSyncEngine) -> IndexSyncEngine:
    await seed(os_engine)
    return os_engine
