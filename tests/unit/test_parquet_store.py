"""Tests for Parquet store creation, opening and appends."""

from __future__ import annotations

from pathlib import Path

import pyarrow as pa
import pytest

from core_errors import (
    ErrorKind,
    StoreAlreadyExistsError,
    StoreNotFoundError,
    StoreSchemaMismatchError,
)
from storage import (
    METADATA_FILENAME,
    ParquetStoreOptions,
    append_to_store,
    create_empty_store,
    open_store,
    store_handle,
)

SCHEMA = pa.schema(
    [
        pa.field("name", pa.string(), nullable=True),
        pa.field("age", pa.int32(), nullable=False),
    ]
)


def test_create_empty_store_writes_metadata(tmp_path: Path) -> None:
    """Ensure a new store holds only schema metadata and no rows."""
    location = tmp_path / "people"
    handle = create_empty_store(location, SCHEMA)
    assert (location / METADATA_FILENAME).exists()
    assert handle.part_paths() == []
    schema, table = open_store(location)
    assert schema.equals(SCHEMA)
    assert table.num_rows == 0


def test_create_twice_without_allow_existing_fails(tmp_path: Path) -> None:
    """Ensure an occupied location is rejected when reuse is disallowed."""
    location = tmp_path / "people"
    create_empty_store(location, SCHEMA, allow_existing=False)
    with pytest.raises(StoreAlreadyExistsError) as excinfo:
        create_empty_store(location, SCHEMA, allow_existing=False)
    assert excinfo.value.kind is ErrorKind.STORAGE
    assert excinfo.value.location == str(location)


def test_create_twice_with_allow_existing_reuses(tmp_path: Path) -> None:
    """Ensure an existing store with the same schema is reused."""
    location = tmp_path / "people"
    create_empty_store(location, SCHEMA)
    handle = create_empty_store(location, SCHEMA, allow_existing=True)
    assert handle.schema.equals(SCHEMA)


def test_create_existing_with_other_schema_fails(tmp_path: Path) -> None:
    """Ensure reuse never silently changes a store's schema."""
    location = tmp_path / "people"
    create_empty_store(location, SCHEMA)
    other = pa.schema([pa.field("name", pa.string())])
    with pytest.raises(StoreSchemaMismatchError):
        create_empty_store(location, other)


def test_store_options_are_recorded(tmp_path: Path) -> None:
    """Ensure write options persist with the store metadata."""
    options = ParquetStoreOptions(compression="snappy", use_dictionary=False)
    create_empty_store(tmp_path / "people", SCHEMA, options=options)
    handle = store_handle(tmp_path / "people")
    assert handle.options == options
    assert handle.schema.equals(SCHEMA)


def test_append_and_open_round_trip(tmp_path: Path) -> None:
    """Ensure appended parts are read back in append order."""
    handle = create_empty_store(tmp_path / "people", SCHEMA)
    first = pa.table({"age": pa.array([30], pa.int64()), "name": ["Ann"]})
    second = pa.table({"name": ["Bo", None], "age": pa.array([41, 7], pa.int64())})
    first_path = append_to_store(handle, first)
    second_path = append_to_store(handle, second)
    assert Path(first_path).name == "part-00000.parquet"
    assert Path(second_path).name == "part-00001.parquet"
    schema, table = open_store(tmp_path / "people")
    assert schema.equals(SCHEMA)
    assert table.column("name").to_pylist() == ["Ann", "Bo", None]
    assert table.column("age").to_pylist() == [30, 41, 7]


def test_append_missing_columns_fails(tmp_path: Path) -> None:
    """Ensure appends must supply every store column."""
    handle = create_empty_store(tmp_path / "people", SCHEMA)
    with pytest.raises(StoreSchemaMismatchError, match="missing columns"):
        append_to_store(handle, pa.table({"name": ["Ann"]}))


def test_open_missing_store_fails(tmp_path: Path) -> None:
    """Ensure opening a location without metadata raises StoreNotFoundError."""
    with pytest.raises(StoreNotFoundError):
        open_store(tmp_path / "nothing")
