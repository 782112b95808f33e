"""Persistent Parquet stores for derived record schemas."""

from __future__ import annotations

from storage.parquet_store import (
    METADATA_FILENAME,
    ParquetStoreOptions,
    StoreHandle,
    append_to_store,
    create_empty_store,
    open_store,
    store_handle,
)

__all__ = [
    "METADATA_FILENAME",
    "ParquetStoreOptions",
    "StoreHandle",
    "append_to_store",
    "create_empty_store",
    "open_store",
    "store_handle",
]
