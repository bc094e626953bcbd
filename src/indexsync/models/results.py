"""Search result models — Index-native or hydrated hits."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SearchHit(BaseModel):
    """One search hit.

    ``source`` holds the index projection (mapped fields only) or, when
    ``hydrated`` is true, the full primary-store record merged over it.
    ``error`` is set when hydration was requested but the record is gone.
    """

    id: str = Field(description="Document id")
    index: str = Field(default="", description="Index the hit came from")
    type: str = Field(default="", description="Type of the hit")
    score: float | None = Field(default=None, description="Relevance score")
    source: dict[str, Any] = Field(default_factory=dict, description="Projection or hydrated record")
    hydrated: bool = Field(default=False, description="Whether source is the primary-store record")
    error: str | None = Field(default=None, description="Per-hit hydration error")

    def __getitem__(self, key: str) -> Any:
        return self.source[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.source.get(key, default)


class SearchResults(BaseModel):
    """Result set of one search call."""

    model_name: str = Field(description="Model the search was scoped to")
    total: int = Field(default=0, description="Number of matching documents of the bound type")
    hits: list[SearchHit] = Field(default_factory=list, description="Ordered hits")
    took_ms: int = Field(default=0, description="Search time in ms, hydration included")
    errors: list[str] = Field(default_factory=list, description="Per-hit hydration errors")

    @property
    def partial(self) -> bool:
        """True when at least one hit could not be hydrated."""
        return bool(self.errors)
