"""Record schema models, the type mapping table, and schema derivation."""

from __future__ import annotations

from schema_spec.accessors import (
    METADATA_ACCESSOR_NAMES,
    ShapeEntry,
    TypeShape,
    check_shape_drift,
    discover_accessors,
    record_type_name,
    resolve_record_type,
)
from schema_spec.canonical_types import (
    TYPE_MAPPING,
    CanonicalType,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    TypeTag,
    canonical_python_kind,
    canonical_to_arrow,
    map_type_tag,
    type_tag_for_annotation,
)
from schema_spec.derivation import derive_schema, derive_type_shape, schema_from_shape
from schema_spec.field_spec import FieldSpec
from schema_spec.record_schema import SCHEMA_META_TYPE_NAME, RecordSchema

__all__ = [
    "METADATA_ACCESSOR_NAMES",
    "SCHEMA_META_TYPE_NAME",
    "TYPE_MAPPING",
    "CanonicalType",
    "FieldSpec",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "RecordSchema",
    "ShapeEntry",
    "TypeShape",
    "TypeTag",
    "canonical_python_kind",
    "canonical_to_arrow",
    "check_shape_drift",
    "derive_schema",
    "derive_type_shape",
    "discover_accessors",
    "map_type_tag",
    "record_type_name",
    "resolve_record_type",
    "schema_from_shape",
    "type_tag_for_annotation",
]
