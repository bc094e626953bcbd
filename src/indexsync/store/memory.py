"""In-memory document store — Reference primary store for tests and local use."""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any

from indexsync.store.base import DocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Keeps records in dictionaries keyed by model name and primary key.

    Records are deep-copied on the way in and out, so callers never share
    state with the store.
    """

    def __init__(self, primary_key: str = "_id") -> None:
        super().__init__(primary_key)
        self._records: dict[str, dict[str, dict[str, Any]]] = {}

    async def get(self, model_name: str, document_id: str) -> dict[str, Any] | None:
        record = self._records.get(model_name, {}).get(str(document_id))
        return copy.deepcopy(record) if record is not None else None

    async def save(self, model_name: str, document: dict[str, Any]) -> dict[str, Any]:
        key = self.primary_key_for(model_name)
        record = copy.deepcopy(dict(document))
        if record.get(key) is None:
            record[key] = uuid.uuid4().hex
        document_id = str(record[key])

        self._records.setdefault(model_name, {})[document_id] = record
        logger.debug("Saved %s %s", model_name, document_id)
        self.fire(model_name, "post_save", copy.deepcopy(record))
        return copy.deepcopy(record)

    async def remove(self, model_name: str, document_id: str) -> dict[str, Any] | None:
        record = self._records.get(model_name, {}).pop(str(document_id), None)
        if record is None:
            return None
        logger.debug("Removed %s %s", model_name, document_id)
        self.fire(model_name, "post_remove", copy.deepcopy(record))
        return copy.deepcopy(record)

    def count(self, model_name: str) -> int:
        return len(self._records.get(model_name, {}))
