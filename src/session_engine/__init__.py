"""Record sessions, table catalog and session configuration."""

from __future__ import annotations

from session_engine.catalog import Partitions, RegisteredTable, TableCatalog, normalize_partitions
from session_engine.config import (
    CONFIG_FILENAME,
    RecordSessionConfig,
    decode_session_config,
    load_session_config,
)
from session_engine.context import RecordSession
from session_engine.frame import SchemaFrame

__all__ = [
    "CONFIG_FILENAME",
    "Partitions",
    "RecordSession",
    "RecordSessionConfig",
    "RegisteredTable",
    "SchemaFrame",
    "TableCatalog",
    "decode_session_config",
    "load_session_config",
    "normalize_partitions",
]
