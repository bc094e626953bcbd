"""Schema description models — Field attributes and per-model options.

A schema is declared once, at registration, as a loose mapping of field name
to either a bare type or an attribute dict::

    {
        "user": str,
        "post_date": datetime,
        "title": {"type": "string", "indexed": True, "boost": 2.0},
        "oid": {"type": "identifier"},
    }

``SchemaDescription.from_dict`` normalizes this into explicit, ordered
``FieldAttributes`` records.
"""

from __future__ import annotations

import datetime as dt
import decimal
import uuid
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from indexsync.exceptions import MappingGenerationError

DEFAULT_PRIMARY_KEY = "_id"


class FieldType(StrEnum):
    """Declared primitive type of a schema field."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    IDENTIFIER = "identifier"
    OBJECT = "object"
    ARRAY = "array"


# Python types accepted as a declared field type.
_PY_TYPES: dict[type, FieldType] = {
    str: FieldType.STRING,
    int: FieldType.INTEGER,
    float: FieldType.FLOAT,
    decimal.Decimal: FieldType.NUMBER,
    bool: FieldType.BOOLEAN,
    dt.datetime: FieldType.DATE,
    dt.date: FieldType.DATE,
    uuid.UUID: FieldType.IDENTIFIER,
    dict: FieldType.OBJECT,
    list: FieldType.ARRAY,
}

# Spellings accepted for declared types, besides the enum values.
_TYPE_ALIASES: dict[str, FieldType] = {
    "str": FieldType.STRING,
    "text": FieldType.STRING,
    "int": FieldType.INTEGER,
    "long": FieldType.INTEGER,
    "double": FieldType.FLOAT,
    "decimal": FieldType.NUMBER,
    "bool": FieldType.BOOLEAN,
    "datetime": FieldType.DATE,
    "id": FieldType.IDENTIFIER,
    "objectid": FieldType.IDENTIFIER,
    "uuid": FieldType.IDENTIFIER,
    "dict": FieldType.OBJECT,
    "mixed": FieldType.OBJECT,
    "list": FieldType.ARRAY,
}


class FieldAttributes(BaseModel):
    """Attributes of one schema field.

    ``type`` is ``None`` when the field declares no type (or one that is not
    recognized); such fields map to the generic ``object`` index type.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    type: FieldType | None = Field(default=None, description="Declared primitive type")
    indexed: bool | None = Field(default=None, alias="es_indexed", description="Index this field")
    type_override: str | None = Field(default=None, alias="es_type", description="Forced index field type")
    boost: float | None = Field(default=None, alias="es_boost", gt=0, description="Relevance weight")
    primary_key: bool = Field(default=False, description="Field is the store's primary key")

    @classmethod
    def parse(cls, name: str, raw: Any) -> FieldAttributes:
        """Build attributes from a bare type or an attribute dict.

        Raises:
            MappingGenerationError: If the attributes cannot be read.
        """
        if isinstance(raw, FieldAttributes):
            return raw
        if raw is None or isinstance(raw, (type, str)):
            return cls(type=_resolve_type(raw))
        if not isinstance(raw, dict):
            raise MappingGenerationError(
                f"Field '{name}': unreadable attributes of type {type(raw).__name__}"
            )

        data = dict(raw)
        declared = data.pop("type", None)
        if declared is not None and not isinstance(declared, (type, str)):
            raise MappingGenerationError(f"Field '{name}': unreadable type declaration {declared!r}")
        try:
            return cls.model_validate({"type": _resolve_type(declared), **data})
        except ValidationError as e:
            raise MappingGenerationError(f"Field '{name}': invalid attributes: {e}") from e


def _resolve_type(declared: type | str | None) -> FieldType | None:
    if declared is None:
        return None
    if isinstance(declared, type):
        # bool precedes int in its MRO.
        for klass in declared.__mro__:
            if klass in _PY_TYPES:
                return _PY_TYPES[klass]
        return None
    key = declared.strip().lower()
    try:
        return FieldType(key)
    except ValueError:
        return _TYPE_ALIASES.get(key)


class SchemaDescription(BaseModel):
    """Ordered field-name → attributes mapping for one document type."""

    model_config = ConfigDict(frozen=True)

    fields: dict[str, FieldAttributes] = Field(default_factory=dict, description="Fields in declaration order")
    primary_key: str = Field(default=DEFAULT_PRIMARY_KEY, description="Name of the store's primary-key field")

    @classmethod
    def from_dict(cls, raw: Any, primary_key: str | None = None) -> SchemaDescription:
        """Normalize a loose schema mapping.

        A field flagged with ``primary_key: true`` becomes the primary key
        unless one is passed explicitly.

        Raises:
            MappingGenerationError: If the schema or any field is unreadable.
        """
        if isinstance(raw, SchemaDescription):
            return raw
        if not isinstance(raw, dict):
            raise MappingGenerationError(
                f"Schema description must be a mapping of field names, got {type(raw).__name__}"
            )

        fields: dict[str, FieldAttributes] = {}
        for name, attrs in raw.items():
            if not isinstance(name, str) or not name:
                raise MappingGenerationError(f"Invalid field name: {name!r}")
            fields[name] = FieldAttributes.parse(name, attrs)

        if primary_key is None:
            flagged = [name for name, attrs in fields.items() if attrs.primary_key]
            if len(flagged) > 1:
                raise MappingGenerationError(f"Multiple primary-key fields declared: {flagged}")
            primary_key = flagged[0] if flagged else DEFAULT_PRIMARY_KEY

        return cls(fields=fields, primary_key=primary_key)

    @property
    def declares_indexed(self) -> bool:
        """True once any field declares the ``indexed`` attribute."""
        return any(attrs.indexed is not None for attrs in self.fields.values())

    def is_included(self, name: str) -> bool:
        """Whether ``name`` takes part in the index under the schema's indexing mode."""
        if name == self.primary_key or name not in self.fields:
            return False
        if not self.declares_indexed:
            return True
        return self.fields[name].indexed is True


class ModelOptions(BaseModel):
    """Plugin-level configuration attached to a whole schema."""

    model_config = ConfigDict(frozen=True)

    index: str | None = Field(default=None, description="Target index (default: pluralized model name)")
    type: str | None = Field(default=None, description="Type name within the index (default: model name)")
    hydrate: bool = Field(default=False, description="Hydrate search hits from the primary store by default")
    always_indexed: list[str] = Field(
        default_factory=list,
        description="Fields always sent to the index, regardless of mapping membership",
    )
