"""Canonical scalar types and the type mapping table.

Scalar annotations are normalized into a :class:`TypeTag` before lookup. A tag
is either *bare* (``int``) or *boxed* (``int | None``); bare tags map to
non-nullable fields and boxed tags to nullable ones, except ``str`` which is
nullable in both families.

Python's ``int`` and ``float`` carry no width, so the width-specific tags
``Int8`` through ``Float64`` are provided as ``typing.NewType`` aliases for
records that need narrower or wider columns than the defaults.
"""

from __future__ import annotations

import types
from enum import StrEnum
from typing import Annotated, NewType, Union, get_args, get_origin

import pyarrow as pa

from core_errors import UnsupportedTypeError
from serde_msgspec import StructBaseStrict

Int8 = NewType("Int8", int)
Int16 = NewType("Int16", int)
Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)
Float32 = NewType("Float32", float)
Float64 = NewType("Float64", float)


class CanonicalType(StrEnum):
    """Closed set of column types produced by schema derivation."""

    STRING = "string"
    BYTE = "byte"
    SHORT = "short"
    INTEGER = "integer"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"


class TypeTag(StructBaseStrict, frozen=True):
    """Transportable name of a scalar annotation."""

    scalar: str
    boxed: bool = False

    def describe(self) -> str:
        """Return the annotation spelling of the tag.

        Returns
        -------
        str
            ``"int"`` or ``"int | None"`` style description.
        """
        return f"{self.scalar} | None" if self.boxed else self.scalar


_SCALAR_NAMES: dict[object, str] = {
    str: "str",
    int: "int",
    float: "float",
    bool: "bool",
    Int8: "Int8",
    Int16: "Int16",
    Int32: "Int32",
    Int64: "Int64",
    Float32: "Float32",
    Float64: "Float64",
}

_CANONICAL_BY_SCALAR: dict[str, CanonicalType] = {
    "str": CanonicalType.STRING,
    "Int8": CanonicalType.BYTE,
    "Int16": CanonicalType.SHORT,
    "int": CanonicalType.INTEGER,
    "Int32": CanonicalType.INTEGER,
    "Int64": CanonicalType.LONG,
    "Float32": CanonicalType.FLOAT,
    "float": CanonicalType.DOUBLE,
    "Float64": CanonicalType.DOUBLE,
    "bool": CanonicalType.BOOLEAN,
}

TYPE_MAPPING: dict[TypeTag, tuple[CanonicalType, bool]] = {
    **{
        TypeTag(scalar=scalar): (canonical, canonical is CanonicalType.STRING)
        for scalar, canonical in _CANONICAL_BY_SCALAR.items()
    },
    **{
        TypeTag(scalar=scalar, boxed=True): (canonical, True)
        for scalar, canonical in _CANONICAL_BY_SCALAR.items()
    },
}

_ARROW_TYPES: dict[CanonicalType, pa.DataType] = {
    CanonicalType.STRING: pa.string(),
    CanonicalType.BYTE: pa.int8(),
    CanonicalType.SHORT: pa.int16(),
    CanonicalType.INTEGER: pa.int32(),
    CanonicalType.LONG: pa.int64(),
    CanonicalType.FLOAT: pa.float32(),
    CanonicalType.DOUBLE: pa.float64(),
    CanonicalType.BOOLEAN: pa.bool_(),
}

_PYTHON_KINDS: dict[CanonicalType, type] = {
    CanonicalType.STRING: str,
    CanonicalType.BYTE: int,
    CanonicalType.SHORT: int,
    CanonicalType.INTEGER: int,
    CanonicalType.LONG: int,
    CanonicalType.FLOAT: float,
    CanonicalType.DOUBLE: float,
    CanonicalType.BOOLEAN: bool,
}


def _scalar_name(annotation: object) -> str:
    known = _SCALAR_NAMES.get(annotation)
    if known is not None:
        return known
    module = getattr(annotation, "__module__", None)
    qualname = getattr(annotation, "__qualname__", None) or getattr(annotation, "__name__", None)
    if module and qualname:
        return f"{module}.{qualname}"
    return repr(annotation)


def type_tag_for_annotation(annotation: object) -> TypeTag:
    """Normalize an accessor annotation into a type tag.

    ``X | None`` and ``Optional[X]`` produce a boxed tag; ``Annotated`` wrappers
    are stripped. Annotations outside the table still produce a tag so that the
    failure surfaces from :func:`map_type_tag`.

    Returns
    -------
    TypeTag
        Tag describing the annotation.
    """
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        boxed = len(members) != len(get_args(annotation))
        if len(members) == 1:
            return TypeTag(scalar=_scalar_name(members[0]), boxed=boxed)
        return TypeTag(scalar=" | ".join(_scalar_name(arg) for arg in members), boxed=boxed)
    return TypeTag(scalar=_scalar_name(annotation))


def map_type_tag(tag: TypeTag) -> tuple[CanonicalType, bool]:
    """Resolve a type tag into its canonical type and nullability.

    Returns
    -------
    tuple[CanonicalType, bool]
        Canonical type and whether the field is nullable.

    Raises
    ------
    UnsupportedTypeError
        Raised when the tag has no entry in the mapping table.
    """
    resolved = TYPE_MAPPING.get(tag)
    if resolved is None:
        msg = f"Unsupported accessor type: {tag.describe()}."
        raise UnsupportedTypeError(msg, tag=tag)
    return resolved


def canonical_to_arrow(dtype: CanonicalType) -> pa.DataType:
    """Return the Arrow type backing a canonical type.

    Returns
    -------
    pyarrow.DataType
        Arrow data type for the canonical type.
    """
    return _ARROW_TYPES[dtype]


def canonical_python_kind(dtype: CanonicalType) -> type:
    """Return the Python runtime kind of values for a canonical type.

    Returns
    -------
    type
        Builtin type that values of the canonical type are instances of.
    """
    return _PYTHON_KINDS[dtype]


__all__ = [
    "TYPE_MAPPING",
    "CanonicalType",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "TypeTag",
    "canonical_python_kind",
    "canonical_to_arrow",
    "map_type_tag",
    "type_tag_for_annotation",
]
