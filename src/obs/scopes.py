"""Canonical OpenTelemetry instrumentation scopes for recordbridge."""

from __future__ import annotations

from enum import StrEnum


class ScopeName(StrEnum):
    """Canonical instrumentation scope names."""

    SCHEMA = "recordbridge.schema"
    MATERIALIZE = "recordbridge.materialize"
    STORAGE = "recordbridge.storage"
    INFERENCE = "recordbridge.inference"
    SESSION = "recordbridge.session"


class AttributeName(StrEnum):
    """Canonical attribute names."""

    STAGE = "recordbridge.stage"
    STATUS = "status"
    DURATION_S = "duration_s"
    TYPE_NAME = "record.type_name"
    PARTITION = "partition.index"
    PARTITION_COUNT = "partition.count"
    ROW_COUNT = "row_count"
    FIELD_COUNT = "field_count"
    TABLE_NAME = "table.name"
    LOCATION = "store.location"


SCOPE_SCHEMA = ScopeName.SCHEMA
SCOPE_MATERIALIZE = ScopeName.MATERIALIZE
SCOPE_STORAGE = ScopeName.STORAGE
SCOPE_INFERENCE = ScopeName.INFERENCE
SCOPE_SESSION = ScopeName.SESSION

__all__ = [
    "SCOPE_INFERENCE",
    "SCOPE_MATERIALIZE",
    "SCOPE_SCHEMA",
    "SCOPE_SESSION",
    "SCOPE_STORAGE",
    "AttributeName",
    "ScopeName",
]
