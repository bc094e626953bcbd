"""Primary document store interface.

IndexSync does not persist documents itself. A store only has to:
  1. Fetch records by primary key (used for hydration)
  2. Save and remove records
  3. Call registered lifecycle hooks after each save and remove

Hooks are plain callables ``hook(model_name, record)`` invoked after the store
operation completes. They must not block; the synchronizer schedules its own
work and returns immediately.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Any, Literal

from indexsync.models.schema import DEFAULT_PRIMARY_KEY

logger = logging.getLogger(__name__)

HookEvent = Literal["post_save", "post_remove"]
Hook = Callable[[str, dict[str, Any]], Any]


class DocumentStore(ABC):
    """Abstract primary store with post-save / post-remove hooks."""

    def __init__(self, primary_key: str = DEFAULT_PRIMARY_KEY) -> None:
        self.default_primary_key = primary_key
        self._primary_keys: dict[str, str] = {}
        self._hooks: dict[tuple[str, HookEvent], list[Hook]] = defaultdict(list)

    # ── Hooks ────────────────────────────────────────────────────────────

    def add_hook(self, model_name: str, event: HookEvent, hook: Hook) -> None:
        """Call ``hook(model_name, record)`` after every ``event`` on ``model_name``."""
        if event not in ("post_save", "post_remove"):
            raise ValueError(f"Unknown store event: {event}")
        self._hooks[(model_name, event)].append(hook)

    def remove_hooks(self, model_name: str) -> None:
        """Drop every hook registered for ``model_name``."""
        for event in ("post_save", "post_remove"):
            self._hooks.pop((model_name, event), None)

    def fire(self, model_name: str, event: HookEvent, record: dict[str, Any]) -> None:
        """Run the hooks of ``event``; a failing hook is logged and does not affect the store."""
        for hook in list(self._hooks.get((model_name, event), ())):
            try:
                hook(model_name, record)
            except Exception:
                logger.error("Store hook %s for %s failed", event, model_name, exc_info=True)

    # ── Keys ─────────────────────────────────────────────────────────────

    def set_primary_key(self, model_name: str, primary_key: str) -> None:
        self._primary_keys[model_name] = primary_key

    def primary_key_for(self, model_name: str) -> str:
        return self._primary_keys.get(model_name, self.default_primary_key)

    # ── Records ──────────────────────────────────────────────────────────

    @abstractmethod
    async def get(self, model_name: str, document_id: str) -> dict[str, Any] | None:
        """Fetch one record by primary key, or None if it does not exist."""

    async def get_many(self, model_name: str, document_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        """Fetch several records; missing ids are absent from the result."""
        found: dict[str, dict[str, Any]] = {}
        for document_id in document_ids:
            record = await self.get(model_name, document_id)
            if record is not None:
                found[document_id] = record
        return found

    @abstractmethod
    async def save(self, model_name: str, document: dict[str, Any]) -> dict[str, Any]:
        """Insert or replace a record, assigning a primary key if missing.

        Fires ``post_save`` hooks with the saved record and returns it.
        """

    @abstractmethod
    async def remove(self, model_name: str, document_id: str) -> dict[str, Any] | None:
        """Delete a record.

        Fires ``post_remove`` hooks with the removed record and returns it,
        or returns None (and fires nothing) if there was no such record.
        """
