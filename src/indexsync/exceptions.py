"""IndexSync error taxonomy.

Each error has a defined reporting channel:

- ``MappingGenerationError`` — returned/raised by the mapping generator,
  fatal to model registration.
- ``IndexWriteError`` — carried by the ``IndexedSignal`` of a failed save.
- ``IndexDeleteTransientError`` — a single failed removal attempt; retried.
- ``RemovalGivenUpError`` — carried by the ``RemovedSignal`` once the retry
  budget is exhausted.
- ``QueryError`` — raised by the search facade, no result set is produced.
- ``HydrationMissError`` — recorded on a single search hit.
"""

from __future__ import annotations

from indexsync.adapters.base.exceptions import QueryError


class IndexSyncError(Exception):
    """Base exception for IndexSync."""


class MappingGenerationError(IndexSyncError):
    """Raised when a schema description cannot be turned into an index mapping."""


class ModelRegistrationError(IndexSyncError):
    """Raised when a model cannot be registered with the engine."""


class UnknownModelError(IndexSyncError):
    """Raised when an operation targets a model that was never registered."""


class IndexWriteError(IndexSyncError):
    """The index rejected or failed a create/update write."""


class IndexDeleteTransientError(IndexSyncError):
    """A single removal attempt failed (not found or backend error)."""

    def __init__(self, message: str, *, not_found: bool = False) -> None:
        super().__init__(message)
        self.not_found = not_found


class RemovalGivenUpError(IndexSyncError):
    """Removal failed on every attempt of the retry budget."""

    def __init__(self, document_id: str, attempts: int, last_error: str | None = None) -> None:
        message = f"Gave up removing document '{document_id}' after {attempts} attempts"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.document_id = document_id
        self.attempts = attempts
        self.last_error = last_error


class HydrationMissError(IndexSyncError):
    """A search hit has no corresponding record in the primary store."""

    def __init__(self, model_name: str, document_id: str) -> None:
        super().__init__(f"No '{model_name}' record with id '{document_id}' in the primary store")
        self.model_name = model_name
        self.document_id = document_id


__all__ = [
    "HydrationMissError",
    "IndexDeleteTransientError",
    "IndexSyncError",
    "IndexWriteError",
    "MappingGenerationError",
    "ModelRegistrationError",
    "QueryError",
    "RemovalGivenUpError",
    "UnknownModelError",
]
