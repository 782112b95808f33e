"""Parquet-backed persistent record stores.

A store is a directory holding a ``_common_metadata`` file with the store
schema plus any number of ``part-NNNNN.parquet`` data files. An empty store
has metadata but no parts. The options a store was created with are kept in
the metadata and reused by later appends.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import pyarrow as pa
import pyarrow.dataset as ds
import pyarrow.parquet as pq

from core_errors import StoreAlreadyExistsError, StoreNotFoundError, StoreSchemaMismatchError
from core_types import PathLike, ensure_path
from obs.scopes import SCOPE_STORAGE, AttributeName
from obs.tracing import stage_span
from serde_msgspec import StructBaseStrict, dumps_json, loads_json

logger = logging.getLogger(__name__)

METADATA_FILENAME = "_common_metadata"
STORE_OPTIONS_META = b"recordbridge.store_options"
_PART_RE = re.compile(r"^part-(\d+)\.parquet$")


class ParquetStoreOptions(StructBaseStrict, frozen=True):
    """
    Write and read options for Parquet stores.

    Notes
    -----
      - compression="zstd" is usually a good trade-off for speed/size.
      - use_dictionary=True helps with string-y categorical columns.
      - write_statistics=True helps pushdown + debugging.
    """

    compression: str = "zstd"
    use_dictionary: bool = True
    write_statistics: bool = True
    data_page_size: int | None = None
    use_threads: bool = True


@dataclass(frozen=True)
class StoreHandle:
    """Location, schema and options of an existing store."""

    location: Path
    schema: pa.Schema
    options: ParquetStoreOptions = field(default_factory=ParquetStoreOptions)

    @property
    def metadata_path(self) -> Path:
        """Return the path of the store's schema metadata file."""
        return self.location / METADATA_FILENAME

    def part_paths(self) -> list[Path]:
        """Return data file paths in append order.

        Returns
        -------
        list[Path]
            Part files sorted by sequence number.
        """
        parts: list[tuple[int, Path]] = []
        for path in self.location.iterdir():
            index = _part_index(path)
            if index is not None:
                parts.append((index, path))
        return [path for _, path in sorted(parts)]


def _part_index(path: Path) -> int | None:
    match = _PART_RE.match(path.name)
    if match is None:
        return None
    return int(match.group(1))


def _ensure_dir(path: Path) -> None:
    path.mkdir(exist_ok=True, parents=True)


def _schema_with_options(schema: pa.Schema, options: ParquetStoreOptions) -> pa.Schema:
    metadata = dict(schema.metadata or {})
    metadata[STORE_OPTIONS_META] = dumps_json(options)
    return schema.with_metadata(metadata)


def _split_options(schema: pa.Schema) -> tuple[pa.Schema, ParquetStoreOptions]:
    metadata = dict(schema.metadata or {})
    payload = metadata.pop(STORE_OPTIONS_META, None)
    options = (
        loads_json(payload, target_type=ParquetStoreOptions)
        if payload is not None
        else ParquetStoreOptions()
    )
    return schema.with_metadata(metadata) if metadata else schema.remove_metadata(), options


def create_empty_store(
    location: PathLike,
    schema: pa.Schema,
    *,
    allow_existing: bool = True,
    options: ParquetStoreOptions | None = None,
) -> StoreHandle:
    """Create an empty Parquet store with the given schema.

    Parameters
    ----------
    location
        Directory for the store.
    schema
        Schema of every row written to the store.
    allow_existing
        When ``False`` an occupied location is an error. When ``True`` an
        existing store with the same schema is reused.
    options
        Write options recorded with the store.

    Returns
    -------
    StoreHandle
        Handle for the store.

    Raises
    ------
    StoreAlreadyExistsError
        Raised when the location exists and ``allow_existing`` is ``False``.
    StoreSchemaMismatchError
        Raised when an existing store was created with a different schema.
    """
    resolved = options or ParquetStoreOptions()
    target = ensure_path(location)
    with stage_span(
        "storage.create_empty",
        stage="create_empty_store",
        scope_name=SCOPE_STORAGE,
        attributes={AttributeName.LOCATION: str(target)},
    ):
        if target.exists() and not allow_existing:
            msg = f"Store location {target} already exists."
            raise StoreAlreadyExistsError(msg, location=str(target))
        if (target / METADATA_FILENAME).exists():
            existing = store_handle(target)
            if not existing.schema.equals(schema, check_metadata=False):
                msg = f"Store at {target} has schema {existing.schema}, expected {schema}."
                raise StoreSchemaMismatchError(msg, location=str(target))
            logger.info("Reusing existing store at %s", target)
            return existing
        _ensure_dir(target)
        pq.write_metadata(_schema_with_options(schema, resolved), str(target / METADATA_FILENAME))
    logger.info("Created empty store at %s with %d fields", target, len(schema))
    return StoreHandle(location=target, schema=schema, options=resolved)


def store_handle(location: PathLike) -> StoreHandle:
    """Return a handle for an existing store.

    Returns
    -------
    StoreHandle
        Handle carrying the stored schema and options.

    Raises
    ------
    StoreNotFoundError
        Raised when the location has no store metadata.
    """
    target = ensure_path(location)
    metadata_path = target / METADATA_FILENAME
    if not metadata_path.exists():
        msg = f"No store metadata found at {target}."
        raise StoreNotFoundError(msg, location=str(target))
    schema, options = _split_options(pq.read_schema(str(metadata_path)))
    return StoreHandle(location=target, schema=schema, options=options)


def open_store(
    location: PathLike,
    *,
    options: ParquetStoreOptions | None = None,
) -> tuple[pa.Schema, pa.Table]:
    """Read a store's schema and all of its rows.

    Parameters
    ----------
    location
        Store directory.
    options
        Read options; defaults to the options recorded with the store.

    Returns
    -------
    tuple[pyarrow.Schema, pyarrow.Table]
        Store schema and the rows of every part, in append order.
    """
    handle = store_handle(location)
    resolved = options or handle.options
    parts = handle.part_paths()
    if not parts:
        return handle.schema, handle.schema.empty_table()
    dataset = ds.dataset([str(path) for path in parts], format="parquet", schema=handle.schema)
    return handle.schema, dataset.to_table(use_threads=resolved.use_threads)


def append_to_store(
    handle: StoreHandle,
    table: pa.Table,
    *,
    options: ParquetStoreOptions | None = None,
) -> str:
    """Append rows to a store as a new part file.

    Columns are selected and cast by name to the store schema.

    Returns
    -------
    str
        Path of the written part file.

    Raises
    ------
    StoreSchemaMismatchError
        Raised when the table lacks store columns or cannot be cast.
    """
    resolved = options or handle.options
    missing = [name for name in handle.schema.names if name not in table.column_names]
    if missing:
        msg = f"Cannot append to {handle.location}: missing columns {missing}."
        raise StoreSchemaMismatchError(msg, location=str(handle.location))
    try:
        aligned = table.select(handle.schema.names).cast(handle.schema)
    except (pa.ArrowInvalid, pa.ArrowTypeError, pa.ArrowNotImplementedError) as exc:
        msg = f"Cannot append to {handle.location}: {exc}"
        raise StoreSchemaMismatchError(msg, location=str(handle.location)) from exc
    existing = handle.part_paths()
    next_index = (_part_index(existing[-1]) or 0) + 1 if existing else 0
    target = handle.location / f"part-{next_index:05d}.parquet"
    with stage_span(
        "storage.append",
        stage="append_to_store",
        scope_name=SCOPE_STORAGE,
        attributes={
            AttributeName.LOCATION: str(handle.location),
            AttributeName.ROW_COUNT: aligned.num_rows,
        },
    ):
        pq.write_table(
            aligned,
            str(target),
            compression=resolved.compression,
            use_dictionary=resolved.use_dictionary,
            write_statistics=resolved.write_statistics,
            data_page_size=resolved.data_page_size,
        )
    logger.info("Appended %d rows to %s", aligned.num_rows, target)
    return str(target)


__all__ = [
    "METADATA_FILENAME",
    "STORE_OPTIONS_META",
    "ParquetStoreOptions",
    "StoreHandle",
    "append_to_store",
    "create_empty_store",
    "open_store",
    "store_handle",
]
