"""Inference collaborators for JSON and delimited-text records."""

from __future__ import annotations

from record_inference.csv_records import infer_csv_records, infer_csv_text
from record_inference.json_records import (
    decode_json_records,
    infer_json_records,
    infer_json_schema,
    json_records_to_table,
)
from record_inference.options import CsvInferenceOptions, JsonInferenceOptions

__all__ = [
    "CsvInferenceOptions",
    "JsonInferenceOptions",
    "decode_json_records",
    "infer_csv_records",
    "infer_csv_text",
    "infer_json_records",
    "infer_json_schema",
    "json_records_to_table",
]
