"""Schema inference and row building for JSON object records.

Each input line is one JSON object. Inferred fields are sorted by name.
Fields that are null in every sampled record become strings, and fields whose
sampled values have no common Arrow type are widened to strings holding the
JSON text of each value.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Mapping, Sequence
from typing import cast

import msgspec
import pyarrow as pa
import pyarrow.types as patypes

from core_errors import RecordInferenceError
from core_types import JsonDict
from obs.scopes import SCOPE_INFERENCE, AttributeName
from obs.tracing import stage_span
from record_inference.options import JsonInferenceOptions
from serde_msgspec import dumps_json

logger = logging.getLogger(__name__)


def decode_json_records(lines: Iterable[str | bytes]) -> list[JsonDict]:
    """Decode JSON object lines, skipping blank lines.

    Returns
    -------
    list[JsonDict]
        Decoded objects in input order.

    Raises
    ------
    RecordInferenceError
        Raised when a line is not valid JSON or not an object.
    """
    records: list[JsonDict] = []
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            value = msgspec.json.decode(line)
        except msgspec.DecodeError as exc:
            msg = f"Invalid JSON on line {line_number}: {exc}"
            raise RecordInferenceError(msg) from exc
        if not isinstance(value, dict):
            msg = f"Line {line_number} is not a JSON object."
            raise RecordInferenceError(msg)
        records.append(cast("JsonDict", value))
    return records


def sample_records(
    records: Sequence[Mapping[str, object]],
    *,
    sampling_ratio: float,
    seed: int,
) -> list[Mapping[str, object]]:
    """Return a repeatable sample of records, never empty for non-empty input.

    Returns
    -------
    list[Mapping[str, object]]
        Sampled records in input order.
    """
    if sampling_ratio >= 1.0:
        return list(records)
    rng = random.Random(seed)
    sample = [record for record in records if rng.random() < sampling_ratio]
    if not sample and records:
        sample = [records[0]]
    return sample


def _infer_column_type(values: Sequence[object]) -> pa.DataType:
    present = [value for value in values if value is not None]
    if not present:
        return pa.string()
    try:
        dtype = pa.array(present).type
    except (pa.ArrowInvalid, pa.ArrowTypeError):
        return pa.string()
    if patypes.is_null(dtype):
        return pa.string()
    return dtype


def infer_json_schema(
    records: Sequence[Mapping[str, object]],
    *,
    sampling_ratio: float = 1.0,
    seed: int = 0,
) -> pa.Schema:
    """Infer an Arrow schema from sampled JSON records.

    Returns
    -------
    pyarrow.Schema
        Nullable fields sorted by name.
    """
    sample = sample_records(records, sampling_ratio=sampling_ratio, seed=seed)
    names = sorted({key for record in sample for key in record})
    return pa.schema(
        [
            pa.field(name, _infer_column_type([record.get(name) for record in sample]))
            for name in names
        ]
    )


def _as_text(value: object) -> object:
    if value is None or isinstance(value, str):
        return value
    return dumps_json(value).decode("utf-8")


def json_records_to_table(records: Sequence[Mapping[str, object]], schema: pa.Schema) -> pa.Table:
    """Build a table holding every record under the given schema.

    Keys absent from the schema are dropped; missing keys become nulls.

    Returns
    -------
    pyarrow.Table
        Table conforming to ``schema``.

    Raises
    ------
    RecordInferenceError
        Raised when a value does not fit its column type.
    """
    columns: list[pa.Array] = []
    for field in schema:
        values = [record.get(field.name) for record in records]
        if patypes.is_string(field.type):
            values = [_as_text(value) for value in values]
        try:
            columns.append(pa.array(values, type=field.type))
        except (pa.ArrowInvalid, pa.ArrowTypeError, OverflowError) as exc:
            msg = f"JSON field {field.name!r} holds values that do not fit {field.type}: {exc}"
            raise RecordInferenceError(msg) from exc
    return pa.Table.from_arrays(columns, schema=schema)


def infer_json_records(
    lines: Iterable[str | bytes],
    options: JsonInferenceOptions | None = None,
) -> tuple[pa.Schema, pa.Table]:
    """Infer a schema for JSON object lines and build their rows.

    Parameters
    ----------
    lines
        One JSON object per item.
    options
        Sampling ratio and optional explicit schema.

    Returns
    -------
    tuple[pyarrow.Schema, pyarrow.Table]
        Schema and the rows of every record.
    """
    resolved = options or JsonInferenceOptions()
    with stage_span(
        "inference.json",
        stage="infer_json_records",
        scope_name=SCOPE_INFERENCE,
    ) as span:
        records = decode_json_records(lines)
        schema = resolved.schema
        if schema is None:
            schema = infer_json_schema(
                records,
                sampling_ratio=resolved.sampling_ratio,
                seed=resolved.seed,
            )
        table = json_records_to_table(records, schema)
        span.set_attribute(AttributeName.ROW_COUNT, table.num_rows)
    logger.debug("Inferred %d JSON fields over %d records", len(schema), table.num_rows)
    return schema, table


__all__ = [
    "decode_json_records",
    "infer_json_records",
    "infer_json_schema",
    "json_records_to_table",
    "sample_records",
]
