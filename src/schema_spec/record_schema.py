"""Ordered, immutable record schemas."""

from __future__ import annotations

from collections.abc import Iterator, Mapping

import pyarrow as pa

from core_errors import DuplicateAccessorError
from schema_spec.field_spec import FieldSpec
from serde_msgspec import StructBaseStrict

SCHEMA_META_TYPE_NAME = b"recordbridge.type_name"


class RecordSchema(StructBaseStrict, frozen=True):
    """Ordered sequence of field specs derived from a record type.

    Two schemas are equal when their fields are equal element-wise, in order.
    """

    fields: tuple[FieldSpec, ...] = ()

    def __post_init__(self) -> None:
        """Reject duplicate field names.

        Raises
        ------
        DuplicateAccessorError
            Raised when two fields share a name.
        """
        seen: set[str] = set()
        for field in self.fields:
            if field.name in seen:
                msg = f"Duplicate field name {field.name!r} in record schema."
                raise DuplicateAccessorError(msg, name=field.name)
            seen.add(field.name)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)

    @property
    def names(self) -> tuple[str, ...]:
        """Return field names in schema order."""
        return tuple(field.name for field in self.fields)

    def field(self, name: str) -> FieldSpec:
        """Return the field with the given name.

        Returns
        -------
        FieldSpec
            Matching field specification.

        Raises
        ------
        KeyError
            Raised when no field has the name.
        """
        for field in self.fields:
            if field.name == name:
                return field
        msg = f"Unknown field {name!r}."
        raise KeyError(msg)

    def to_arrow_schema(self, *, metadata: Mapping[bytes, bytes] | None = None) -> pa.Schema:
        """Build a pyarrow.Schema from the record schema.

        Returns
        -------
        pyarrow.Schema
            Arrow schema with one field per spec, in order.
        """
        return pa.schema(
            [field.to_arrow_field() for field in self.fields],
            metadata=dict(metadata) if metadata else None,
        )


__all__ = ["SCHEMA_META_TYPE_NAME", "RecordSchema"]
