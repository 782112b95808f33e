"""Schema derivation from reflectable record types."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from core_errors import UnsupportedTypeError
from obs.scopes import SCOPE_SCHEMA, AttributeName
from obs.tracing import stage_span
from schema_spec.accessors import (
    METADATA_ACCESSOR_NAMES,
    TypeShape,
    discover_accessors,
    record_type_name,
)
from schema_spec.canonical_types import map_type_tag
from schema_spec.field_spec import FieldSpec
from schema_spec.record_schema import RecordSchema

logger = logging.getLogger(__name__)


def schema_from_shape(shape: TypeShape) -> RecordSchema:
    """Build a record schema from a discovered type shape.

    Returns
    -------
    RecordSchema
        Schema with one field per accessor, in shape order.

    Raises
    ------
    UnsupportedTypeError
        Raised when any accessor type has no canonical mapping.
    """
    fields: list[FieldSpec] = []
    for entry in shape.accessors:
        try:
            dtype, nullable = map_type_tag(entry.tag)
        except UnsupportedTypeError as exc:
            msg = f"Cannot derive schema for {shape.type_name}: accessor {entry.name!r}: {exc}"
            raise UnsupportedTypeError(msg, tag=entry.tag, accessor=entry.name) from exc
        fields.append(FieldSpec(name=entry.name, dtype=dtype, nullable=nullable))
    return RecordSchema(fields=tuple(fields))


def derive_type_shape(
    record_type: type,
    *,
    metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
) -> TypeShape:
    """Return the transportable accessor shape of a record type.

    Returns
    -------
    TypeShape
        Ordered accessor names and type tags.
    """
    return discover_accessors(record_type, metadata_accessors=metadata_accessors)


def derive_schema(
    record_type: type,
    *,
    metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
) -> RecordSchema:
    """Derive an ordered record schema from a record type.

    Derivation is all-or-nothing: any accessor whose type has no canonical
    mapping aborts it. Repeated calls on the same type return equal schemas.

    Parameters
    ----------
    record_type
        Class whose accessors define the schema.
    metadata_accessors
        Reserved accessor names excluded from the schema.

    Returns
    -------
    RecordSchema
        Derived schema.
    """
    type_name = record_type_name(record_type)
    with stage_span(
        "schema.derive",
        stage="derive_schema",
        scope_name=SCOPE_SCHEMA,
        attributes={AttributeName.TYPE_NAME: type_name},
    ) as span:
        shape = discover_accessors(record_type, metadata_accessors=metadata_accessors)
        schema = schema_from_shape(shape)
        span.set_attribute(AttributeName.FIELD_COUNT, len(schema))
    logger.debug("Derived schema for %s: %s", type_name, ", ".join(schema.names))
    return schema


__all__ = ["derive_schema", "derive_type_shape", "schema_from_shape"]
