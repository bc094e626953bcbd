"""Index mapping models — Generated field mappings and per-model index bindings."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldMapping(BaseModel):
    """How the search service stores one field."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(description="Index field type (e.g. 'string', 'number', 'object')")
    boost: float | None = Field(default=None, description="Relevance weight")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class IndexMapping(BaseModel):
    """Ordered field-name → ``FieldMapping`` for one type.

    The store's primary key is never a property; it travels as the index
    document id.
    """

    model_config = ConfigDict(frozen=True)

    properties: dict[str, FieldMapping] = Field(default_factory=dict, description="Mapped fields in schema order")

    def __contains__(self, name: object) -> bool:
        return name in self.properties

    @property
    def field_names(self) -> list[str]:
        return list(self.properties)

    @property
    def boosts(self) -> dict[str, float]:
        """Boost per field, for fields that declare one."""
        return {name: fm.boost for name, fm in self.properties.items() if fm.boost is not None}

    def to_dict(self) -> dict[str, Any]:
        """Render as ``{"properties": {name: {"type": ..., "boost": ...}}}``."""
        return {"properties": {name: fm.to_dict() for name, fm in self.properties.items()}}


class TypeBinding(BaseModel):
    """Everything the sync and search paths need to know about a registered model."""

    model_config = ConfigDict(frozen=True)

    model_name: str = Field(description="Registered model name (e.g. 'Tweet')")
    index: str = Field(description="Target index name")
    type: str = Field(description="Type name within the index")
    hydrate: bool = Field(default=False, description="Hydrate search hits by default")
    primary_key: str = Field(default="_id", description="Primary-key field of store records")
    mapping: IndexMapping = Field(default_factory=IndexMapping, description="Installed index mapping")
    always_indexed: tuple[str, ...] = Field(default=(), description="Fields always sent to the index")

    def projected_fields(self) -> list[str]:
        """Mapping fields followed by always-indexed extras, without duplicates."""
        names = self.mapping.field_names
        return names + [name for name in self.always_indexed if name not in self.mapping and name != self.primary_key]

    def query_fields(self) -> list[str]:
        """Projected fields a query-string search runs over; unparsed ``object`` fields are left out."""
        return [
            name
            for name in self.projected_fields()
            if name not in self.mapping or self.mapping.properties[name].type != "object"
        ]
