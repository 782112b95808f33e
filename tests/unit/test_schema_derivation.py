"""Tests for accessor discovery and schema derivation."""

from __future__ import annotations

import pytest

from core_errors import (
    DuplicateAccessorError,
    ErrorKind,
    ReflectionResolutionError,
    UnsupportedTypeError,
)
from schema_spec import (
    SCHEMA_META_TYPE_NAME,
    CanonicalType,
    FieldSpec,
    RecordSchema,
    TypeShape,
    check_shape_drift,
    derive_schema,
    derive_type_shape,
    record_type_name,
    resolve_record_type,
)
from serde_msgspec import dumps_msgpack, loads_msgpack
from tests.test_helpers.records import (
    Account,
    Clashing,
    Empty,
    Measurement,
    Person,
    SavingsAccount,
    Tagged,
    Unannotated,
)


def test_derive_schema_person() -> None:
    """Ensure a plain record derives ordered fields with canonical types."""
    schema = derive_schema(Person)
    assert schema == RecordSchema(
        fields=(
            FieldSpec(name="name", dtype=CanonicalType.STRING, nullable=True),
            FieldSpec(name="age", dtype=CanonicalType.INTEGER, nullable=False),
        )
    )


def test_derive_schema_is_idempotent() -> None:
    """Ensure repeated derivation yields equal schemas."""
    assert derive_schema(Measurement) == derive_schema(Measurement)
    assert derive_type_shape(Measurement) == derive_type_shape(Measurement)


def test_derive_schema_width_and_boxed_tags() -> None:
    """Ensure width-specific and boxed tags map to the expected fields."""
    schema = derive_schema(Measurement)
    assert [(field.name, field.dtype, field.nullable) for field in schema] == [
        ("label", CanonicalType.STRING, True),
        ("tiny", CanonicalType.BYTE, False),
        ("small", CanonicalType.SHORT, False),
        ("big", CanonicalType.LONG, False),
        ("ratio", CanonicalType.FLOAT, False),
        ("score", CanonicalType.DOUBLE, False),
        ("active", CanonicalType.BOOLEAN, False),
        ("maybe_count", CanonicalType.INTEGER, True),
        ("maybe_flag", CanonicalType.BOOLEAN, True),
    ]


def test_derive_schema_rejects_unsupported_accessor() -> None:
    """Ensure derivation aborts naming the accessor whose type is unsupported."""
    with pytest.raises(UnsupportedTypeError) as excinfo:
        derive_schema(Tagged)
    assert excinfo.value.accessor == "tags"
    assert excinfo.value.kind is ErrorKind.TYPE


def test_properties_follow_data_attributes() -> None:
    """Ensure properties are discovered after data attributes, skipping private and ClassVar names."""
    assert derive_schema(Account).names == ("owner", "balance", "overdrawn", "owner_initial")
    assert derive_schema(Account).field("owner_initial").nullable
    assert not derive_schema(Account).field("overdrawn").nullable


def test_subclass_discovery_is_base_first() -> None:
    """Ensure inherited accessors precede accessors declared on a subclass."""
    assert derive_schema(SavingsAccount).names == (
        "owner",
        "balance",
        "rate",
        "overdrawn",
        "owner_initial",
        "interest",
    )


def test_duplicate_accessor_names_raise() -> None:
    """Ensure a name exposed as attribute and property is rejected."""
    with pytest.raises(DuplicateAccessorError) as excinfo:
        derive_schema(Clashing)
    assert excinfo.value.name == "total"


def test_unannotated_property_is_unsupported() -> None:
    """Ensure a property without a return annotation cannot be typed."""
    with pytest.raises(UnsupportedTypeError) as excinfo:
        derive_schema(Unannotated)
    assert excinfo.value.accessor == "size"


def test_reserved_metadata_accessors_are_excluded() -> None:
    """Ensure caller-supplied reserved names never become fields."""
    schema = derive_schema(Person, metadata_accessors={"__class__", "age"})
    assert schema.names == ("name",)


def test_record_without_accessors_has_empty_schema() -> None:
    """Ensure a record type with no accessors derives an empty schema."""
    schema = derive_schema(Empty)
    assert len(schema) == 0
    assert schema.to_arrow_schema().names == []


def test_record_schema_rejects_duplicate_fields() -> None:
    """Ensure schemas cannot hold two fields with one name."""
    field = FieldSpec(name="x", dtype=CanonicalType.LONG)
    with pytest.raises(DuplicateAccessorError):
        RecordSchema(fields=(field, field))


def test_to_arrow_schema_carries_metadata() -> None:
    """Ensure the Arrow schema keeps field order, nullability and metadata."""
    arrow_schema = derive_schema(Person).to_arrow_schema(
        metadata={SCHEMA_META_TYPE_NAME: b"tests:Person"}
    )
    assert arrow_schema.names == ["name", "age"]
    assert arrow_schema.field("name").nullable
    assert not arrow_schema.field("age").nullable
    assert arrow_schema.metadata == {SCHEMA_META_TYPE_NAME: b"tests:Person"}


def test_type_name_round_trips_through_resolution() -> None:
    """Ensure the import name of a record type resolves back to the class."""
    assert resolve_record_type(record_type_name(Person)) is Person


def test_resolve_rejects_local_classes() -> None:
    """Ensure classes defined inside functions cannot be resolved by name."""

    class Local:
        value: int

    with pytest.raises(ReflectionResolutionError) as excinfo:
        resolve_record_type(record_type_name(Local))
    assert excinfo.value.kind is ErrorKind.REFLECTION


@pytest.mark.parametrize(
    "type_name",
    ["no_separator", "missing_module_xyz:Thing", "tests.test_helpers.records:Missing"],
)
def test_resolve_rejects_unknown_names(type_name: str) -> None:
    """Ensure malformed or unknown names raise ReflectionResolutionError."""
    with pytest.raises(ReflectionResolutionError):
        resolve_record_type(type_name)


def test_type_shape_transport_is_lossless() -> None:
    """Ensure the type shape survives MessagePack transport unchanged."""
    shape = derive_type_shape(SavingsAccount)
    decoded = loads_msgpack(dumps_msgpack(shape), target_type=TypeShape)
    assert decoded == shape
    assert check_shape_drift(decoded, shape) == []


def test_check_shape_drift_reports_differences() -> None:
    """Ensure drift between shapes is described per accessor."""
    problems = check_shape_drift(derive_type_shape(Account), derive_type_shape(SavingsAccount))
    assert any("type name" in problem for problem in problems)
    assert any("accessor count" in problem for problem in problems)
