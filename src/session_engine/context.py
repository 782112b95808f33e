"""Record session: the entry point tying derivation, materialization and the catalog together."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from types import TracebackType
from typing import Self

import pyarrow as pa
from datafusion import SessionConfig as DataFusionSessionConfig
from datafusion import SessionContext

from core_errors import CatalogError
from core_types import PathLike, ensure_path
from obs.logging import configure_logging
from obs.scopes import SCOPE_SESSION, AttributeName
from obs.tracing import stage_span
from record_inference.csv_records import infer_csv_records, infer_csv_text
from record_inference.json_records import infer_json_records
from record_inference.options import CsvInferenceOptions, JsonInferenceOptions
from row_materialize.arrow_rows import rows_to_record_batch
from row_materialize.parallel import PartitionedRecords, materialize_partitions, partition_records
from schema_spec.accessors import METADATA_ACCESSOR_NAMES, record_type_name
from schema_spec.derivation import derive_schema, derive_type_shape, schema_from_shape
from schema_spec.record_schema import SCHEMA_META_TYPE_NAME, RecordSchema
from session_engine.catalog import RegisteredTable, TableCatalog, normalize_partitions
from session_engine.config import RecordSessionConfig
from session_engine.frame import SchemaFrame
from storage.parquet_store import (
    ParquetStoreOptions,
    StoreHandle,
    append_to_store,
    create_empty_store,
    open_store,
    store_handle,
)

logger = logging.getLogger(__name__)


def _build_context(config: RecordSessionConfig) -> SessionContext:
    if config.target_partitions is None:
        return SessionContext()
    return SessionContext(DataFusionSessionConfig().with_target_partitions(config.target_partitions))


class RecordSession:
    """Session owning a DataFusion context and its table catalog.

    Parameters
    ----------
    config
        Session configuration; defaults are used when omitted.
    ctx
        Existing DataFusion context to wrap.
    metadata_accessors
        Reserved accessor names excluded from reflective schemas.
    """

    def __init__(
        self,
        config: RecordSessionConfig | None = None,
        *,
        ctx: SessionContext | None = None,
        metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
    ) -> None:
        self.config = config or RecordSessionConfig()
        if self.config.log_level is not None:
            configure_logging(self.config.log_level)
        self.ctx = ctx or _build_context(self.config)
        self.catalog = TableCatalog(self.ctx)
        self.metadata_accessors = frozenset(metadata_accessors)
        self._closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        """Return whether the session has been closed."""
        return self._closed

    def close(self) -> None:
        """Drop every table binding held by the session."""
        if self._closed:
            return
        self.catalog.clear()
        self._closed = True
        logger.debug("Closed record session")

    def sql(self, query: str) -> SchemaFrame:
        """Plan a SQL query against the registered tables.

        Returns
        -------
        SchemaFrame
            Lazily planned result.
        """
        return SchemaFrame(self, self.ctx.sql(query))

    def derive_schema(self, record_type: type) -> RecordSchema:
        """Derive the record schema of a type.

        Returns
        -------
        RecordSchema
            Ordered schema of the type's accessors.
        """
        return derive_schema(record_type, metadata_accessors=self.metadata_accessors)

    def apply_schema(
        self,
        records: Iterable[object] | PartitionedRecords,
        record_type: type,
        *,
        num_partitions: int | None = None,
    ) -> SchemaFrame:
        """Convert reflective records into a queryable frame.

        The schema and accessor shape are derived once here. Each partition
        then re-resolves ``record_type`` by name, checks its shape against the
        derived one and extracts rows independently.

        Parameters
        ----------
        records
            Record instances, or records already split into partitions.
        record_type
            Class whose accessors define the columns.
        num_partitions
            Partition count for flat input; defaults to the configured value.

        Returns
        -------
        SchemaFrame
            Frame whose columns follow the accessor order of ``record_type``.
        """
        shape = derive_type_shape(record_type, metadata_accessors=self.metadata_accessors)
        record_schema = schema_from_shape(shape)
        partitions = (
            records
            if isinstance(records, PartitionedRecords)
            else partition_records(records, num_partitions or self.config.default_partitions)
        )
        arrow_schema = self._arrow_schema(record_schema, shape.type_name)
        with stage_span(
            "session.apply_schema",
            stage="apply_schema",
            scope_name=SCOPE_SESSION,
            attributes={
                AttributeName.TYPE_NAME: shape.type_name,
                AttributeName.PARTITION_COUNT: len(partitions),
                AttributeName.ROW_COUNT: partitions.record_count,
            },
        ):
            rows = materialize_partitions(
                shape.type_name,
                partitions,
                shape=shape,
                executor=self.config.executor,
                max_workers=self.config.max_workers,
                metadata_accessors=self.metadata_accessors,
            )
            batches = [
                (rows_to_record_batch(partition, record_schema, arrow_schema=arrow_schema),)
                for partition in rows
            ]
        return self._frame(arrow_schema, batches, record_schema=record_schema)

    def create_parquet_store(
        self,
        record_type: type,
        location: PathLike,
        *,
        allow_existing: bool = True,
        options: ParquetStoreOptions | None = None,
    ) -> SchemaFrame:
        """Create an empty Parquet store shaped by a record type.

        Parameters
        ----------
        record_type
            Class whose derived schema the store will hold.
        location
            Store directory.
        allow_existing
            When ``False`` an occupied location raises
            ``StoreAlreadyExistsError``.
        options
            Write options; defaults to the configured Parquet options.

        Returns
        -------
        SchemaFrame
            Frame over the store's current rows, bound to the store.
        """
        record_schema = self.derive_schema(record_type)
        arrow_schema = self._arrow_schema(record_schema, record_type_name(record_type))
        handle = create_empty_store(
            location,
            arrow_schema,
            allow_existing=allow_existing,
            options=options or self.config.parquet,
        )
        return self._store_frame(handle, record_schema=record_schema)

    def parquet_store(self, location: PathLike) -> SchemaFrame:
        """Open an existing Parquet store.

        Returns
        -------
        SchemaFrame
            Frame over every row of the store, bound to the store.
        """
        return self._store_frame(store_handle(location))

    def json_records(
        self,
        lines: Iterable[str | bytes],
        *,
        schema: pa.Schema | None = None,
        sampling_ratio: float | None = None,
    ) -> SchemaFrame:
        """Build a frame from JSON object lines.

        Returns
        -------
        SchemaFrame
            Frame over the decoded records.
        """
        options = JsonInferenceOptions(
            sampling_ratio=(
                sampling_ratio if sampling_ratio is not None else self.config.json_sampling_ratio
            ),
            schema=schema,
        )
        inferred, table = infer_json_records(lines, options)
        return self._frame(inferred, [table.to_batches()])

    def json_file(
        self,
        path: PathLike,
        *,
        schema: pa.Schema | None = None,
        sampling_ratio: float | None = None,
    ) -> SchemaFrame:
        """Build a frame from a file of JSON object lines.

        Returns
        -------
        SchemaFrame
            Frame over the decoded records.
        """
        text = ensure_path(path).read_text(encoding="utf-8")
        return self.json_records(text.splitlines(), schema=schema, sampling_ratio=sampling_ratio)

    def csv_records(
        self,
        lines: Iterable[str],
        *,
        schema: pa.Schema | None = None,
        header: bool = False,
        delimiter: str | None = None,
        quote: str | None = None,
    ) -> SchemaFrame:
        """Build a frame from delimited lines.

        Returns
        -------
        SchemaFrame
            Frame over the parsed rows.
        """
        options = self._csv_options(schema=schema, header=header, delimiter=delimiter, quote=quote)
        inferred, table = infer_csv_records(lines, options)
        return self._frame(inferred, [table.to_batches()])

    def csv_file(
        self,
        path: PathLike,
        *,
        schema: pa.Schema | None = None,
        header: bool = False,
        delimiter: str | None = None,
        quote: str | None = None,
    ) -> SchemaFrame:
        """Build a frame from a delimited text file.

        Returns
        -------
        SchemaFrame
            Frame over the parsed rows.
        """
        options = self._csv_options(schema=schema, header=header, delimiter=delimiter, quote=quote)
        inferred, table = infer_csv_text(ensure_path(path).read_bytes(), options)
        return self._frame(inferred, [table.to_batches()])

    def register_table(self, frame: SchemaFrame, name: str) -> RegisteredTable:
        """Bind a name to a frame's schema and rows.

        Returns
        -------
        RegisteredTable
            The new binding; any prior binding of ``name`` is replaced.
        """
        return self.catalog.register(
            name,
            frame.schema,
            frame.collect_partitions(),
            store=frame.store,
        )

    def table(self, name: str) -> SchemaFrame:
        """Return a frame over a registered table.

        Returns
        -------
        SchemaFrame
            Frame over the table's bound rows.
        """
        entry = self.catalog.lookup(name)
        return SchemaFrame(
            self,
            self.ctx.table(name),
            schema=entry.schema,
            partitions=entry.partitions,
            store=entry.store,
        )

    def table_names(self) -> list[str]:
        """Return the registered table names.

        Returns
        -------
        list[str]
            Sorted table names.
        """
        return self.catalog.names()

    def drop_table(self, name: str) -> bool:
        """Remove a table binding.

        Returns
        -------
        bool
            ``True`` when a binding was removed.
        """
        return self.catalog.drop(name)

    def insert_into(self, table_name: str, frame: SchemaFrame) -> str:
        """Append a frame's rows to a store-backed table and refresh it.

        Returns
        -------
        str
            Path of the written part file.

        Raises
        ------
        CatalogError
            Raised when the table is not backed by a store.
        """
        entry = self.catalog.lookup(table_name)
        if entry.store is None:
            msg = f"Table {table_name!r} is not backed by a store."
            raise CatalogError(msg, table_name=table_name)
        path = append_to_store(entry.store, frame.to_arrow())
        _, table = open_store(entry.store.location)
        self.catalog.register(table_name, entry.schema, [table.to_batches()], store=entry.store)
        return path

    def _csv_options(
        self,
        *,
        schema: pa.Schema | None,
        header: bool,
        delimiter: str | None,
        quote: str | None,
    ) -> CsvInferenceOptions:
        return CsvInferenceOptions(
            delimiter=delimiter or self.config.csv_delimiter,
            quote=quote or self.config.csv_quote,
            schema=schema,
            header=header,
        )

    @staticmethod
    def _arrow_schema(record_schema: RecordSchema, type_name: str) -> pa.Schema:
        return record_schema.to_arrow_schema(
            metadata={SCHEMA_META_TYPE_NAME: type_name.encode("utf-8")},
        )

    def _store_frame(
        self,
        handle: StoreHandle,
        *,
        record_schema: RecordSchema | None = None,
    ) -> SchemaFrame:
        _, table = open_store(handle.location)
        return self._frame(
            handle.schema,
            [table.to_batches()],
            record_schema=record_schema,
            store=handle,
        )

    def _frame(
        self,
        schema: pa.Schema,
        partitions: Sequence[Sequence[pa.RecordBatch]],
        *,
        record_schema: RecordSchema | None = None,
        store: StoreHandle | None = None,
    ) -> SchemaFrame:
        normalized = normalize_partitions(schema, partitions)
        dataframe = self.ctx.create_dataframe([list(partition) for partition in normalized])
        return SchemaFrame(
            self,
            dataframe,
            schema=schema,
            record_schema=record_schema,
            partitions=normalized,
            store=store,
        )


__all__ = ["RecordSession"]
