"""Tests for the in-memory primary store and its hooks."""

from __future__ import annotations

from typing import Any

import pytest

from indexsync.store.memory import InMemoryDocumentStore


@pytest.fixture
def mem_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


class TestRecords:
    async def test_save_assigns_primary_key(self, mem_store: InMemoryDocumentStore) -> None:
        record = await mem_store.save("Tweet", {"user": "john"})
        assert record["_id"]
        assert await mem_store.get("Tweet", record["_id"]) == record

    async def test_save_replaces(self, mem_store: InMemoryDocumentStore) -> None:
        await mem_store.save("Tweet", {"_id": "1", "user": "john"})
        await mem_store.save("Tweet", {"_id": "1", "user": "jane"})
        assert mem_store.count("Tweet") == 1
        assert (await mem_store.get("Tweet", "1"))["user"] == "jane"  # type: ignore[index]

    async def test_records_are_copied(self, mem_store: InMemoryDocumentStore) -> None:
        document: dict[str, Any] = {"_id": "1", "tags": ["a"]}
        await mem_store.save("Tweet", document)
        document["tags"].append("b")

        fetched = await mem_store.get("Tweet", "1")
        assert fetched == {"_id": "1", "tags": ["a"]}
        fetched["tags"].append("c")  # type: ignore[index]
        assert (await mem_store.get("Tweet", "1"))["tags"] == ["a"]  # type: ignore[index]

    async def test_per_model_primary_key(self, mem_store: InMemoryDocumentStore) -> None:
        mem_store.set_primary_key("Product", "sku")
        record = await mem_store.save("Product", {"sku": 42, "name": "Box"})

        assert mem_store.primary_key_for("Product") == "sku"
        assert mem_store.primary_key_for("Tweet") == "_id"
        assert await mem_store.get("Product", "42") == record

    async def test_remove(self, mem_store: InMemoryDocumentStore) -> None:
        await mem_store.save("Tweet", {"_id": "1"})
        assert await mem_store.remove("Tweet", "1") == {"_id": "1"}
        assert await mem_store.get("Tweet", "1") is None
        assert await mem_store.remove("Tweet", "1") is None

    async def test_get_many_skips_missing(self, mem_store: InMemoryDocumentStore) -> None:
        await mem_store.save("Tweet", {"_id": "1"})
        await mem_store.save("Tweet", {"_id": "2"})
        found = await mem_store.get_many("Tweet", ["2", "3", "1"])
        assert list(found) == ["2", "1"]


class TestHooks:
    async def test_hooks_fire_after_operations(self, mem_store: InMemoryDocumentStore) -> None:
        events: list[tuple[str, str, dict[str, Any]]] = []
        mem_store.add_hook("Tweet", "post_save", lambda model, rec: events.append(("save", model, rec)))
        mem_store.add_hook("Tweet", "post_remove", lambda model, rec: events.append(("remove", model, rec)))

        await mem_store.save("Tweet", {"_id": "1"})
        await mem_store.remove("Tweet", "1")
        await mem_store.remove("Tweet", "1")
        await mem_store.save("Talk", {"_id": "2"})

        assert events == [("save", "Tweet", {"_id": "1"}), ("remove", "Tweet", {"_id": "1"})]

    async def test_failing_hook_does_not_fail_store(self, mem_store: InMemoryDocumentStore) -> None:
        def _boom(model: str, record: dict[str, Any]) -> None:
            raise RuntimeError("boom")

        seen: list[str] = []
        mem_store.add_hook("Tweet", "post_save", _boom)
        mem_store.add_hook("Tweet", "post_save", lambda model, rec: seen.append(rec["_id"]))

        await mem_store.save("Tweet", {"_id": "1"})

        assert seen == ["1"]
        assert mem_store.count("Tweet") == 1

    async def test_remove_hooks(self, mem_store: InMemoryDocumentStore) -> None:
        seen: list[str] = []
        mem_store.add_hook("Tweet", "post_save", lambda model, rec: seen.append(rec["_id"]))
        mem_store.remove_hooks("Tweet")
        await mem_store.save("Tweet", {"_id": "1"})
        assert seen == []

    def test_unknown_event(self, mem_store: InMemoryDocumentStore) -> None:
        with pytest.raises(ValueError, match="Unknown store event"):
            mem_store.add_hook("Tweet", "pre_save", lambda model, rec: None)  # type: ignore[arg-type]
