"""Synchronization Engine — Pushes primary-store changes into the index.

Per document the engine drives two independent state machines:

    Unindexed → Indexing → Indexed
    Indexed → Removing → Removed
                       ↘ RetryScheduled → Removing (≤ max attempts) → RemovalGivenUp

Store hooks call ``handle_save`` / ``handle_remove``, which schedule the work
on the running event loop and return immediately with the task. Each save
emits exactly one ``IndexedSignal`` and each remove exactly one
``RemovedSignal``; failures travel inside the signal and are never raised to
the store.

Index writes are not retried. Removals are: a removal can overtake the
indexing of the same document (the backend then answers "not found"), so any
failed delete is retried after a fixed delay until the attempt cap is hit.
Operations on the same document id are neither coalesced nor ordered.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import decimal
import inspect
import logging
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from indexsync.adapters.base.adapter import IndexAdapter
from indexsync.adapters.base.exceptions import DocumentNotFoundError
from indexsync.config.settings import SyncSettings
from indexsync.exceptions import IndexDeleteTransientError, IndexWriteError, RemovalGivenUpError
from indexsync.models.mapping import TypeBinding
from indexsync.models.signals import IndexedSignal, RemovedSignal, SyncAttempt, SyncSignal
from indexsync.store.base import DocumentStore

logger = logging.getLogger(__name__)

Listener = Callable[[SyncSignal], Awaitable[None] | None]


def serialize_value(value: Any) -> Any:
    """Convert a store value to an index-native scalar or structure."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, decimal.Decimal):
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Enum):
        return serialize_value(value.value)
    if isinstance(value, BaseModel):
        return serialize_value(value.model_dump())
    if isinstance(value, dict):
        return {str(k): serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [serialize_value(v) for v in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    # Opaque identifiers (e.g. bson.ObjectId) and anything else.
    return str(value)


class IndexSynchronizer:
    """Keeps the index in step with primary-store lifecycle events.

    Args:
        adapter: The index adapter every write goes through.
        settings: Removal retry policy.
        sleep: Coroutine used to wait between removal attempts.
    """

    def __init__(
        self,
        adapter: IndexAdapter,
        settings: SyncSettings | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.adapter = adapter
        self.settings = settings or SyncSettings()
        self._sleep = sleep
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._waiters: dict[tuple[str, str, str], list[asyncio.Future[Any]]] = defaultdict(list)

    # ── Store wiring ─────────────────────────────────────────────────────

    def attach(self, store: DocumentStore, binding: TypeBinding) -> None:
        """Subscribe to the store's post-save and post-remove hooks for ``binding``."""
        store.set_primary_key(binding.model_name, binding.primary_key)
        store.add_hook(binding.model_name, "post_save", lambda _model, record: self.handle_save(binding, record))
        store.add_hook(binding.model_name, "post_remove", lambda _model, record: self.handle_remove(binding, record))
        logger.info("Synchronizing model '%s' into %s/%s", binding.model_name, binding.index, binding.type)

    def handle_save(self, binding: TypeBinding, record: dict[str, Any]) -> asyncio.Task[IndexedSignal]:
        """Post-save hook: schedule the index write and return its task."""
        return self._spawn(self.index(binding, record))

    def handle_remove(self, binding: TypeBinding, record: dict[str, Any]) -> asyncio.Task[RemovedSignal]:
        """Post-remove hook: schedule the removal (with retries) and return its task."""
        return self._spawn(self.remove(binding, self.document_id(binding, record)))

    def _spawn(self, coro: Any) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until every scheduled sync operation has emitted its signal."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ── Signals ──────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(signal)`` for every signal; returns an unsubscribe function.

        Listeners may be plain functions or coroutine functions. A failing
        listener is logged and does not affect other listeners.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def expect(self, event: str, model_name: str, document_id: str) -> asyncio.Future[Any]:
        """Future resolved with the next ``event`` signal for this document.

        ``event`` is ``"indexed"`` or ``"removed"``. Cancel the future if the
        operation that would emit the signal never happens.
        """
        key = (event, model_name, document_id)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._waiters[key].append(future)
        future.add_done_callback(lambda f: self._discard_waiter(key, f))
        return future

    def _discard_waiter(self, key: tuple[str, str, str], future: asyncio.Future[Any]) -> None:
        waiters = self._waiters.get(key)
        if waiters and future in waiters:
            waiters.remove(future)
        if not waiters:
            self._waiters.pop(key, None)

    async def _emit(self, signal: SyncSignal) -> None:
        key = (signal.event, signal.model_name, signal.document_id)
        for future in list(self._waiters.get(key, ())):
            if not future.done():
                future.set_result(signal)
                break

        for listener in list(self._listeners):
            try:
                result = listener(signal)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error("Signal listener failed for %s", signal.event, exc_info=True)

    # ── Projection ───────────────────────────────────────────────────────

    @staticmethod
    def document_id(binding: TypeBinding, document: dict[str, Any]) -> str:
        value = document.get(binding.primary_key)
        return "" if value is None else str(serialize_value(value))

    @staticmethod
    def project(binding: TypeBinding, document: dict[str, Any]) -> dict[str, Any]:
        """Searchable projection: mapped and always-indexed fields present in ``document``."""
        return {
            name: serialize_value(document[name])
            for name in binding.projected_fields()
            if name in document
        }

    # ── Operations ───────────────────────────────────────────────────────

    async def index(self, binding: TypeBinding, document: dict[str, Any]) -> IndexedSignal:
        """Write the projection of ``document`` to the index.

        Never raises; a failed write is reported as an ``IndexWriteError`` in
        the returned (and emitted) signal.
        """
        doc_id = self.document_id(binding, document)
        base = {"document_id": doc_id, "model_name": binding.model_name, "index": binding.index, "type": binding.type}

        try:
            if not doc_id:
                raise IndexWriteError(f"Document has no '{binding.primary_key}' value")
            projection = self.project(binding, document)
            response = await self.adapter.index_document(binding.index, binding.type, doc_id, projection)
            signal = IndexedSignal(**base, response=response)
            logger.debug("Indexed %s %s into %s", binding.model_name, doc_id, binding.index)
        except Exception as e:
            error = e if isinstance(e, IndexWriteError) else IndexWriteError(str(e))
            logger.warning("Indexing %s %s failed: %s", binding.model_name, doc_id or "<no id>", error)
            signal = IndexedSignal(**base, error=str(error), error_type=type(error).__name__)

        await self._emit(signal)
        return signal

    async def remove(self, binding: TypeBinding, document_id: str) -> RemovedSignal:
        """Delete ``document_id`` from the index, retrying failed attempts.

        Any failure, "not found" included, is retried after
        ``remove_retry_delay`` seconds. After ``remove_max_attempts`` failed
        attempts the removal is given up and the signal carries a
        ``RemovalGivenUpError``. Never raises.
        """
        attempt = SyncAttempt(
            document_id=document_id,
            index=binding.index,
            type=binding.type,
            max_attempts=self.settings.remove_max_attempts,
        )
        base = {
            "document_id": document_id,
            "model_name": binding.model_name,
            "index": binding.index,
            "type": binding.type,
        }

        while True:
            attempt.attempt += 1
            try:
                await self.adapter.delete_document(binding.index, binding.type, document_id)
            except Exception as e:
                failure = IndexDeleteTransientError(str(e), not_found=isinstance(e, DocumentNotFoundError))
                attempt.last_error = str(failure)
                if attempt.exhausted:
                    error = RemovalGivenUpError(document_id, attempt.attempt, attempt.last_error)
                    logger.warning("%s", error)
                    signal = RemovedSignal(
                        **base,
                        error=str(error),
                        error_type=type(error).__name__,
                        attempts=attempt.attempt,
                    )
                    break
                logger.info(
                    "Removal %d/%d of %s %s failed (%s), retrying in %.2fs",
                    attempt.attempt,
                    attempt.max_attempts,
                    binding.model_name,
                    document_id,
                    "not found" if failure.not_found else failure,
                    self.settings.remove_retry_delay,
                )
                await self._sleep(self.settings.remove_retry_delay)
                continue

            signal = RemovedSignal(**base, attempts=attempt.attempt)
            logger.debug("Removed %s %s after %d attempt(s)", binding.model_name, document_id, attempt.attempt)
            break

        await self._emit(signal)
        return signal
