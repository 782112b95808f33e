"""Session-scoped table catalog."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass

import pyarrow as pa
from datafusion import SessionContext

from core_errors import CatalogError
from obs.scopes import SCOPE_SESSION, AttributeName
from obs.tracing import stage_span
from storage.parquet_store import StoreHandle

logger = logging.getLogger(__name__)

type Partitions = tuple[tuple[pa.RecordBatch, ...], ...]


@dataclass(frozen=True)
class RegisteredTable:
    """Schema and rows bound to a table name."""

    name: str
    schema: pa.Schema
    partitions: Partitions
    store: StoreHandle | None = None

    @property
    def num_rows(self) -> int:
        """Return the number of rows across all partitions."""
        return sum(batch.num_rows for partition in self.partitions for batch in partition)

    def to_table(self) -> pa.Table:
        """Return the bound rows as a single table.

        Returns
        -------
        pyarrow.Table
            Rows of every partition, in partition order.
        """
        batches = [batch for partition in self.partitions for batch in partition]
        return pa.Table.from_batches(batches, schema=self.schema)


def normalize_partitions(
    schema: pa.Schema,
    partitions: Sequence[Sequence[pa.RecordBatch]],
) -> Partitions:
    """Return partitions where every partition holds at least one batch.

    Returns
    -------
    Partitions
        Non-empty partitions; a single empty batch stands in for no rows.
    """
    empty = pa.RecordBatch.from_pylist([], schema=schema)
    normalized = tuple(tuple(partition) if partition else (empty,) for partition in partitions)
    return normalized or ((empty,),)


class TableCatalog:
    """Name-to-table bindings for one session.

    Every mutation holds the catalog lock for both the binding update and the
    matching DataFusion registration, so concurrent registrations of one name
    resolve to whichever ran last.
    """

    def __init__(self, ctx: SessionContext) -> None:
        self._ctx = ctx
        self._lock = threading.Lock()
        self._tables: dict[str, RegisteredTable] = {}

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tables

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)

    def names(self) -> list[str]:
        """Return registered table names in sorted order.

        Returns
        -------
        list[str]
            Table names.
        """
        with self._lock:
            return sorted(self._tables)

    def register(
        self,
        name: str,
        schema: pa.Schema,
        partitions: Sequence[Sequence[pa.RecordBatch]],
        *,
        store: StoreHandle | None = None,
    ) -> RegisteredTable:
        """Bind a name to a schema and its rows, replacing any prior binding.

        Returns
        -------
        RegisteredTable
            The new binding.
        """
        entry = RegisteredTable(
            name=name,
            schema=schema,
            partitions=normalize_partitions(schema, partitions),
            store=store,
        )
        with (
            stage_span(
                "catalog.register",
                stage="register_table",
                scope_name=SCOPE_SESSION,
                attributes={AttributeName.TABLE_NAME: name},
            ),
            self._lock,
        ):
            replaced = name in self._tables
            if replaced:
                self._ctx.deregister_table(name)
            self._ctx.register_record_batches(name, [list(p) for p in entry.partitions])
            self._tables[name] = entry
        logger.info(
            "%s table %r with %d rows",
            "Replaced" if replaced else "Registered",
            name,
            entry.num_rows,
        )
        return entry

    def lookup(self, name: str) -> RegisteredTable:
        """Return the binding for a name.

        Returns
        -------
        RegisteredTable
            Current binding.

        Raises
        ------
        CatalogError
            Raised when the name is not registered.
        """
        with self._lock:
            entry = self._tables.get(name)
        if entry is None:
            msg = f"Table {name!r} is not registered."
            raise CatalogError(msg, table_name=name)
        return entry

    def drop(self, name: str) -> bool:
        """Remove a binding.

        Returns
        -------
        bool
            ``True`` when a binding was removed.
        """
        with self._lock:
            if self._tables.pop(name, None) is None:
                return False
            self._ctx.deregister_table(name)
        logger.info("Dropped table %r", name)
        return True

    def clear(self) -> None:
        """Remove every binding."""
        with self._lock:
            for name in list(self._tables):
                self._ctx.deregister_table(name)
            self._tables.clear()


__all__ = ["Partitions", "RegisteredTable", "TableCatalog", "normalize_partitions"]
