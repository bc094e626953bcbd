"""Query option and search request models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchOptions(BaseModel):
    """Options controlling one search call.

    ``size``, ``from_``, ``sort`` and ``extra`` are passed to the backend
    verbatim; only ``hydrate`` is interpreted by IndexSync.
    """

    model_config = ConfigDict(populate_by_name=True)

    hydrate: bool | None = Field(default=None, description="Hydrate hits (None = model default)")
    size: int | None = Field(default=None, ge=0, description="Maximum number of hits")
    from_: int | None = Field(default=None, ge=0, alias="from", description="Offset of the first hit")
    sort: list[Any] | dict[str, Any] | str | None = Field(default=None, description="Backend-native sort")
    extra: dict[str, Any] = Field(default_factory=dict, description="Additional backend search parameters")

    def backend_params(self) -> dict[str, Any]:
        """Pagination and sort parameters, without unset values."""
        params: dict[str, Any] = {}
        if self.size is not None:
            params["size"] = self.size
        if self.from_ is not None:
            params["from_"] = self.from_
        if self.sort is not None:
            params["sort"] = self.sort
        params.update(self.extra)
        return params


class SearchRequest(BaseModel):
    """Search request body accepted by the HTTP API."""

    query: str | dict[str, Any] = Field(description="Query string or backend-native request body")
    options: SearchOptions = Field(default_factory=SearchOptions, description="Search options")
