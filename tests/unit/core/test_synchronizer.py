"""Tests for the synchronization engine."""

from __future__ import annotations

import asyncio
import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from indexsync.adapters.base.exceptions import AdapterError, DocumentNotFoundError
from indexsync.adapters.memory.adapter import InMemoryIndexAdapter
from indexsync.config.settings import SyncSettings
from indexsync.core.synchronizer import IndexSynchronizer, serialize_value
from indexsync.models.mapping import FieldMapping, IndexMapping, TypeBinding
from indexsync.models.signals import IndexedSignal, RemovedSignal, SyncSignal
from indexsync.store.memory import InMemoryDocumentStore

# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def binding() -> TypeBinding:
    return TypeBinding(
        model_name="Tweet",
        index="tweets",
        type="tweet",
        mapping=IndexMapping(
            properties={
                "user": FieldMapping(type="string"),
                "message": FieldMapping(type="string", boost=2.0),
                "post_date": FieldMapping(type="object"),
            }
        ),
    )


@pytest.fixture
def mock_adapter() -> MagicMock:
    adapter = MagicMock()
    adapter.index_document = AsyncMock(return_value={"result": "created", "_version": 1})
    adapter.delete_document = AsyncMock(return_value={"result": "deleted"})
    return adapter


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def synchronizer(mock_adapter: MagicMock, sleep: AsyncMock) -> IndexSynchronizer:
    return IndexSynchronizer(
        mock_adapter,
        SyncSettings(remove_max_attempts=3, remove_retry_delay=0.5),
        sleep=sleep,
    )


# ── Projection ───────────────────────────────────────────────────────────────


class TestProjection:
    def test_only_mapped_fields(self, binding: TypeBinding) -> None:
        doc = {"_id": "1", "user": "john", "message": "hi", "secret": "x"}
        assert IndexSynchronizer.project(binding, doc) == {"user": "john", "message": "hi"}

    def test_missing_fields_are_omitted(self, binding: TypeBinding) -> None:
        assert IndexSynchronizer.project(binding, {"_id": "1", "user": "john"}) == {"user": "john"}

    def test_always_indexed_fields_are_added(self, binding: TypeBinding) -> None:
        extended = binding.model_copy(update={"always_indexed": ("tenant", "_id")})
        doc = {"_id": "1", "user": "john", "tenant": "acme"}
        assert IndexSynchronizer.project(extended, doc) == {"user": "john", "tenant": "acme"}

    def test_values_are_serialized(self, binding: TypeBinding) -> None:
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        projection = IndexSynchronizer.project(binding, {"_id": "1", "post_date": when})
        assert projection["post_date"] == "2024-01-02T03:04:05+00:00"

    def test_document_id_is_primary_key_string(self, binding: TypeBinding) -> None:
        oid = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert IndexSynchronizer.document_id(binding, {"_id": oid}) == str(oid)
        assert IndexSynchronizer.document_id(binding, {"_id": 7}) == "7"
        assert IndexSynchronizer.document_id(binding, {}) == ""


class TestSerializeValue:
    def test_scalars_unchanged(self) -> None:
        assert serialize_value("a") == "a"
        assert serialize_value(3) == 3
        assert serialize_value(None) is None

    def test_containers(self) -> None:
        class Color(enum.Enum):
            RED = "red"

        value = {"tags": ("a", "b"), "color": Color.RED, "price": Decimal("1.5"), "ids": {1}}
        assert serialize_value(value) == {"tags": ["a", "b"], "color": "red", "price": 1.5, "ids": [1]}

    def test_opaque_identifier(self) -> None:
        class ObjectId:
            def __str__(self) -> str:
                return "507f1f77bcf86cd799439011"

        assert serialize_value(ObjectId()) == "507f1f77bcf86cd799439011"


# ── Indexing ─────────────────────────────────────────────────────────────────


class TestIndex:
    async def test_index_success(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        signal = await synchronizer.index(binding, {"_id": "1", "user": "john", "bio": "x"})

        mock_adapter.index_document.assert_awaited_once_with("tweets", "tweet", "1", {"user": "john"})
        assert isinstance(signal, IndexedSignal)
        assert signal.ok
        assert signal.document_id == "1"
        assert signal.response == {"result": "created", "_version": 1}

    async def test_index_failure_is_reported_not_raised(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        mock_adapter.index_document.side_effect = AdapterError("mapper_parsing_exception")

        signal = await synchronizer.index(binding, {"_id": "1", "user": "john"})

        assert not signal.ok
        assert signal.error_type == "IndexWriteError"
        assert "mapper_parsing_exception" in (signal.error or "")
        mock_adapter.index_document.assert_awaited_once()

    async def test_timeout_is_reported(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        mock_adapter.index_document.side_effect = TimeoutError("read timed out")
        signal = await synchronizer.index(binding, {"_id": "1"})
        assert signal.error_type == "IndexWriteError"

    async def test_document_without_id(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        signal = await synchronizer.index(binding, {"user": "john"})
        assert signal.error_type == "IndexWriteError"
        mock_adapter.index_document.assert_not_awaited()


# ── Removal ──────────────────────────────────────────────────────────────────


class TestRemove:
    async def test_remove_success_first_attempt(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, sleep: AsyncMock, binding: TypeBinding
    ) -> None:
        signal = await synchronizer.remove(binding, "1")

        assert isinstance(signal, RemovedSignal)
        assert signal.ok
        assert signal.attempts == 1
        mock_adapter.delete_document.assert_awaited_once_with("tweets", "tweet", "1")
        sleep.assert_not_awaited()

    async def test_remove_succeeds_after_retry(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, sleep: AsyncMock, binding: TypeBinding
    ) -> None:
        mock_adapter.delete_document.side_effect = [
            DocumentNotFoundError("not found"),
            {"result": "deleted"},
        ]

        signal = await synchronizer.remove(binding, "1")

        assert signal.ok
        assert signal.attempts == 2
        sleep.assert_awaited_once_with(0.5)

    async def test_remove_gives_up_after_three_attempts(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, sleep: AsyncMock, binding: TypeBinding
    ) -> None:
        mock_adapter.delete_document.side_effect = DocumentNotFoundError("not found")

        signal = await synchronizer.remove(binding, "1")

        assert mock_adapter.delete_document.await_count == 3
        assert sleep.await_count == 2
        assert signal.attempts == 3
        assert signal.error_type == "RemovalGivenUpError"
        assert "after 3 attempts" in (signal.error or "")

    async def test_any_failure_is_retried(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        mock_adapter.delete_document.side_effect = [AdapterError("connection reset"), {"result": "deleted"}]
        signal = await synchronizer.remove(binding, "1")
        assert signal.ok
        assert signal.attempts == 2

    async def test_attempt_cap_is_configurable(self, mock_adapter: MagicMock, binding: TypeBinding) -> None:
        sync = IndexSynchronizer(
            mock_adapter,
            SyncSettings(remove_max_attempts=1, remove_retry_delay=0.0),
            sleep=AsyncMock(),
        )
        mock_adapter.delete_document.side_effect = DocumentNotFoundError("not found")
        signal = await sync.remove(binding, "1")
        assert signal.attempts == 1
        assert signal.error_type == "RemovalGivenUpError"

    async def test_real_delay_between_attempts(self, mock_adapter: MagicMock, binding: TypeBinding) -> None:
        sync = IndexSynchronizer(mock_adapter, SyncSettings(remove_retry_delay=0.01))
        mock_adapter.delete_document.side_effect = DocumentNotFoundError("not found")

        loop = asyncio.get_running_loop()
        start = loop.time()
        signal = await sync.remove(binding, "1")

        assert signal.attempts == 3
        assert loop.time() - start >= 0.015


# ── Signals and hooks ────────────────────────────────────────────────────────


class TestSignals:
    async def test_listeners_receive_every_signal(
        self, synchronizer: IndexSynchronizer, binding: TypeBinding
    ) -> None:
        received: list[SyncSignal] = []
        synchronizer.subscribe(received.append)

        await synchronizer.index(binding, {"_id": "1"})
        await synchronizer.remove(binding, "1")

        assert [s.event for s in received] == ["indexed", "removed"]

    async def test_async_listener(self, synchronizer: IndexSynchronizer, binding: TypeBinding) -> None:
        received: list[str] = []

        async def listener(signal: SyncSignal) -> None:
            received.append(signal.document_id)

        synchronizer.subscribe(listener)
        await synchronizer.index(binding, {"_id": "1"})
        assert received == ["1"]

    async def test_failing_listener_does_not_break_others(
        self, synchronizer: IndexSynchronizer, binding: TypeBinding
    ) -> None:
        received: list[SyncSignal] = []

        def broken(signal: SyncSignal) -> None:
            raise RuntimeError("listener bug")

        synchronizer.subscribe(broken)
        synchronizer.subscribe(received.append)

        signal = await synchronizer.index(binding, {"_id": "1"})

        assert signal.ok
        assert len(received) == 1

    async def test_unsubscribe(self, synchronizer: IndexSynchronizer, binding: TypeBinding) -> None:
        received: list[SyncSignal] = []
        unsubscribe = synchronizer.subscribe(received.append)
        unsubscribe()
        unsubscribe()
        await synchronizer.index(binding, {"_id": "1"})
        assert received == []

    async def test_expect_resolves_with_matching_signal(
        self, synchronizer: IndexSynchronizer, binding: TypeBinding
    ) -> None:
        waiter = synchronizer.expect("indexed", "Tweet", "1")
        other = synchronizer.expect("indexed", "Tweet", "2")

        await synchronizer.index(binding, {"_id": "1"})

        assert waiter.done()
        assert (await waiter).document_id == "1"
        assert not other.done()
        other.cancel()


class TestStoreHooks:
    async def test_save_hook_schedules_indexing(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        store = InMemoryDocumentStore()
        synchronizer.attach(store, binding)

        saved = await store.save("Tweet", {"user": "john"})
        assert synchronizer.in_flight == 1

        await synchronizer.drain()

        mock_adapter.index_document.assert_awaited_once_with("tweets", "tweet", saved["_id"], {"user": "john"})
        assert synchronizer.in_flight == 0

    async def test_handle_save_returns_task(self, synchronizer: IndexSynchronizer, binding: TypeBinding) -> None:
        task = synchronizer.handle_save(binding, {"_id": "1"})
        signal = await task
        assert signal.event == "indexed"

    async def test_remove_hook_schedules_removal(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        store = InMemoryDocumentStore()
        synchronizer.attach(store, binding)
        saved = await store.save("Tweet", {"user": "john"})
        await synchronizer.drain()

        await store.remove("Tweet", saved["_id"])
        await synchronizer.drain()

        mock_adapter.delete_document.assert_awaited_once_with("tweets", "tweet", saved["_id"])

    async def test_hooks_only_fire_for_bound_model(
        self, synchronizer: IndexSynchronizer, mock_adapter: MagicMock, binding: TypeBinding
    ) -> None:
        store = InMemoryDocumentStore()
        synchronizer.attach(store, binding)
        await store.save("Talk", {"title": "x"})
        await synchronizer.drain()
        mock_adapter.index_document.assert_not_awaited()


# ── Races against a real (in-memory) index ───────────────────────────────────


class TestRemovalRace:
    async def test_removal_overtaking_indexing_is_retried(self, binding: TypeBinding) -> None:
        adapter = InMemoryIndexAdapter(write_delay=0.05)
        await adapter.create_mapping("tweets", "tweet", binding.mapping)
        sync = IndexSynchronizer(adapter, SyncSettings(remove_retry_delay=0.05))

        indexing = sync.handle_save(binding, {"_id": "abba", "user": "jamescarr", "message": "ABBA"})
        removing = sync.handle_remove(binding, {"_id": "abba"})

        indexed, removed = await asyncio.gather(indexing, removing)

        assert indexed.ok
        assert removed.ok
        assert removed.attempts >= 2
        assert adapter.get_source("tweets", "abba") is None

    async def test_removal_of_never_indexed_document_gives_up(self, binding: TypeBinding) -> None:
        adapter = InMemoryIndexAdapter()
        await adapter.create_mapping("tweets", "tweet", binding.mapping)
        sync = IndexSynchronizer(adapter, SyncSettings(remove_retry_delay=0.0))
        signals: list[SyncSignal] = []
        sync.subscribe(signals.append)

        removed = await sync.handle_remove(binding, {"_id": "ghost"})

        assert removed.error_type == "RemovalGivenUpError"
        assert removed.attempts == 3
        assert signals == [removed]


def _doc(**fields: Any) -> dict[str, Any]:
    return {"_id": "1", **fields}


async def test_exactly_one_signal_per_operation(synchronizer: IndexSynchronizer, binding: TypeBinding) -> None:
    signals: list[SyncSignal] = []
    synchronizer.subscribe(signals.append)

    for i in range(3):
        synchronizer.handle_save(binding, _doc(user=f"u{i}"))
    synchronizer.handle_remove(binding, _doc())
    await synchronizer.drain()

    assert sorted(s.event for s in signals) == ["indexed", "indexed", "indexed", "removed"]
