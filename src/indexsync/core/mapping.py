"""Mapping Generator — Derives an index mapping from a schema description.

The generator is a pure function of the schema: no I/O, no state. It decides
which fields take part in the index and which index type each one gets:

  1. If no field declares ``indexed``, every declared field is mapped;
     otherwise only fields with ``indexed=True``.
  2. The primary key is never mapped; it travels as the document id.
  3. ``type_override`` wins over the declared type. Otherwise the declared
     type goes through a fixed table; dates, structures and anything
     unrecognized fall back to ``object``. Identifiers map to ``string``.
  4. ``boost`` is copied unchanged.
"""

from __future__ import annotations

import logging
from typing import Any

from indexsync.exceptions import MappingGenerationError
from indexsync.models.mapping import FieldMapping, IndexMapping
from indexsync.models.schema import FieldAttributes, FieldType, SchemaDescription

logger = logging.getLogger(__name__)

FALLBACK_TYPE = "object"

TYPE_TABLE: dict[FieldType, str] = {
    FieldType.STRING: "string",
    FieldType.NUMBER: "number",
    FieldType.INTEGER: "integer",
    FieldType.FLOAT: "float",
    FieldType.BOOLEAN: "boolean",
    FieldType.DATE: FALLBACK_TYPE,
    FieldType.IDENTIFIER: "string",
    FieldType.OBJECT: FALLBACK_TYPE,
    FieldType.ARRAY: FALLBACK_TYPE,
}


class MappingGenerator:
    """Turns a ``SchemaDescription`` (or a loose schema dict) into an ``IndexMapping``."""

    def generate(self, schema: SchemaDescription | dict[str, Any]) -> IndexMapping:
        """Generate the mapping.

        Raises:
            MappingGenerationError: If the schema description is malformed.
                No other exception escapes.
        """
        try:
            description = SchemaDescription.from_dict(schema)
            properties: dict[str, FieldMapping] = {}
            for name, attrs in description.fields.items():
                if not description.is_included(name):
                    continue
                properties[name] = self._field_mapping(attrs)
            return IndexMapping(properties=properties)
        except MappingGenerationError:
            raise
        except Exception as e:
            raise MappingGenerationError(f"Unreadable schema description: {e}") from e

    async def generate_mapping(
        self,
        schema: SchemaDescription | dict[str, Any],
    ) -> tuple[IndexMapping | None, MappingGenerationError | None]:
        """Generate the mapping, reporting failures through the result.

        Performs no I/O; async only so it can be awaited alongside the
        adapter calls of model registration.

        Returns:
            ``(mapping, None)`` on success, ``(None, error)`` otherwise.
        """
        try:
            return self.generate(schema), None
        except MappingGenerationError as e:
            logger.warning("Mapping generation failed: %s", e)
            return None, e

    @staticmethod
    def _field_mapping(attrs: FieldAttributes) -> FieldMapping:
        if attrs.type_override:
            index_type = attrs.type_override
        elif attrs.type is None:
            index_type = FALLBACK_TYPE
        else:
            index_type = TYPE_TABLE.get(attrs.type, FALLBACK_TYPE)
        return FieldMapping(type=index_type, boost=attrs.boost)
