"""Schema-carrying handles over DataFusion DataFrames."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pyarrow as pa
from datafusion.dataframe import DataFrame

from schema_spec.record_schema import RecordSchema
from session_engine.catalog import Partitions, RegisteredTable, normalize_partitions
from storage.parquet_store import StoreHandle

if TYPE_CHECKING:
    from session_engine.context import RecordSession


class SchemaFrame:
    """A lazily planned result together with the schema that produced it.

    Frames built from reflective records or stores also keep their
    materialized partitions, so registering them does not re-run a plan.
    """

    def __init__(
        self,
        session: RecordSession,
        dataframe: DataFrame,
        *,
        schema: pa.Schema | None = None,
        record_schema: RecordSchema | None = None,
        partitions: Partitions | None = None,
        store: StoreHandle | None = None,
    ) -> None:
        self.session = session
        self.dataframe = dataframe
        self._schema = schema
        self.record_schema = record_schema
        self._partitions = partitions
        self.store = store

    def __repr__(self) -> str:
        return f"SchemaFrame(columns={self.schema.names!r})"

    @property
    def schema(self) -> pa.Schema:
        """Return the Arrow schema of the frame."""
        if self._schema is None:
            self._schema = self.dataframe.schema()
        return self._schema

    def collect_partitions(self) -> Partitions:
        """Return the frame's rows as record batch partitions.

        Returns
        -------
        Partitions
            Materialized partitions, executing the plan when needed.
        """
        if self._partitions is None:
            batches = self.dataframe.collect()
            self._partitions = normalize_partitions(self.schema, [(batch,) for batch in batches])
        return self._partitions

    def to_arrow(self) -> pa.Table:
        """Return the frame's rows as an Arrow table.

        Returns
        -------
        pyarrow.Table
            Rows in partition order.
        """
        if self._partitions is not None:
            batches = [batch for partition in self._partitions for batch in partition]
            return pa.Table.from_batches(batches, schema=self.schema)
        return self.dataframe.to_arrow_table()

    def rows(self) -> list[tuple[object, ...]]:
        """Return the frame's rows as tuples in column order.

        Returns
        -------
        list[tuple[object, ...]]
            One tuple per row.
        """
        table = self.to_arrow()
        columns = [column.to_pylist() for column in table.columns]
        return list(zip(*columns, strict=True)) if columns else [() for _ in range(table.num_rows)]

    def count(self) -> int:
        """Return the number of rows in the frame.

        Returns
        -------
        int
            Row count.
        """
        return self.to_arrow().num_rows if self._partitions is not None else self.dataframe.count()

    def register_as_table(self, name: str) -> RegisteredTable:
        """Register the frame in its session's catalog.

        Returns
        -------
        RegisteredTable
            The new binding.
        """
        return self.session.register_table(self, name)

    def insert_into(self, table_name: str) -> str:
        """Append the frame's rows to a store-backed table.

        Returns
        -------
        str
            Path of the written part file.
        """
        return self.session.insert_into(table_name, self)


__all__ = ["SchemaFrame"]
