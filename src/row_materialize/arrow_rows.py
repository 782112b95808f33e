"""Conversion of materialized rows into Arrow record batches."""

from __future__ import annotations

from collections.abc import Sequence

import pyarrow as pa

from core_errors import RowContractError
from core_types import Row
from schema_spec.canonical_types import CanonicalType, canonical_python_kind
from schema_spec.field_spec import FieldSpec
from schema_spec.record_schema import RecordSchema

_FLOATING = frozenset({CanonicalType.FLOAT, CanonicalType.DOUBLE})


def _check_row_lengths(rows: Sequence[Row], width: int) -> None:
    for index, row in enumerate(rows):
        if len(row) != width:
            msg = f"Row {index} has {len(row)} values; schema has {width} fields."
            raise RowContractError(msg)


def _value_fits(value: object, dtype: CanonicalType) -> bool:
    if isinstance(value, bool):
        return dtype is CanonicalType.BOOLEAN
    if dtype in _FLOATING and isinstance(value, int):
        return True
    return isinstance(value, canonical_python_kind(dtype))


def _check_value_kinds(values: Sequence[object], field: FieldSpec) -> None:
    for index, value in enumerate(values):
        if value is not None and not _value_fits(value, field.dtype):
            msg = (
                f"Row {index} holds {type(value).__name__} {value!r} in field {field.name!r} "
                f"of type {field.dtype}."
            )
            raise RowContractError(msg, field=field.name)


def rows_to_record_batch(
    rows: Sequence[Row],
    schema: RecordSchema,
    *,
    arrow_schema: pa.Schema | None = None,
) -> pa.RecordBatch:
    """Build a record batch from rows that conform to a schema.

    Parameters
    ----------
    rows
        Materialized rows.
    schema
        Schema the rows were materialized against.
    arrow_schema
        Pre-built Arrow schema for ``schema``; built when omitted.

    Returns
    -------
    pyarrow.RecordBatch
        Column-oriented batch with one column per field.

    Raises
    ------
    RowContractError
        Raised when a row has the wrong width, a non-nullable slot holds
        ``None``, or a value's kind does not match its column type.
        Integers are accepted in floating columns; booleans only in boolean
        columns.
    """
    target = arrow_schema if arrow_schema is not None else schema.to_arrow_schema()
    _check_row_lengths(rows, len(schema))
    columns: list[pa.Array] = []
    for position, field in enumerate(schema.fields):
        values = [row[position] for row in rows]
        if not field.nullable and any(value is None for value in values):
            msg = f"Field {field.name!r} is not nullable but a row holds no value for it."
            raise RowContractError(msg, field=field.name)
        _check_value_kinds(values, field)
        arrow_field = target.field(position)
        try:
            columns.append(pa.array(values, type=arrow_field.type))
        except (pa.ArrowInvalid, pa.ArrowTypeError, OverflowError, TypeError) as exc:
            msg = f"Values of field {field.name!r} do not convert to {arrow_field.type}: {exc}"
            raise RowContractError(msg, field=field.name) from exc
    return pa.RecordBatch.from_arrays(columns, schema=target)


def rows_to_table(
    partitions: Sequence[Sequence[Row]],
    schema: RecordSchema,
    *,
    arrow_schema: pa.Schema | None = None,
) -> pa.Table:
    """Build a table from per-partition rows.

    Returns
    -------
    pyarrow.Table
        Table with one batch per partition.
    """
    target = arrow_schema if arrow_schema is not None else schema.to_arrow_schema()
    batches = [rows_to_record_batch(rows, schema, arrow_schema=target) for rows in partitions]
    return pa.Table.from_batches(batches, schema=target)


__all__ = ["rows_to_record_batch", "rows_to_table"]
