"""Synchronization signal models.

Every save produces exactly one ``IndexedSignal`` and every remove exactly one
``RemovedSignal`` (after success or after the retry budget is exhausted).
Failures are carried in the signal, never raised to the store.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class SyncAttempt(BaseModel):
    """Retry bookkeeping for one removal; owned by the removing coroutine."""

    document_id: str = Field(description="Index document id")
    index: str = Field(description="Target index")
    type: str = Field(description="Target type")
    attempt: int = Field(default=0, ge=0, description="Attempts made so far")
    max_attempts: int = Field(default=3, ge=1, description="Attempt cap")
    last_error: str | None = Field(default=None, description="Error of the latest failed attempt")

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts


class SyncSignal(BaseModel):
    """Fields shared by both completion signals."""

    event: str = Field(description="Signal kind: 'indexed' or 'removed'")
    document_id: str = Field(description="Index document id")
    model_name: str = Field(description="Registered model name")
    index: str = Field(description="Target index")
    type: str = Field(description="Target type")
    error: str | None = Field(default=None, description="Error message, None on success")
    error_type: str | None = Field(default=None, description="Error class name, None on success")

    @property
    def ok(self) -> bool:
        return self.error is None


class IndexedSignal(SyncSignal):
    """Emitted once per save, when the index write completes or fails."""

    event: Literal["indexed"] = "indexed"
    response: dict[str, Any] | None = Field(default=None, description="Raw backend response")


class RemovedSignal(SyncSignal):
    """Emitted once per remove, after success or give-up."""

    event: Literal["removed"] = "removed"
    attempts: int = Field(default=1, ge=0, description="Removal attempts made")
