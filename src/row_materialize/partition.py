"""Per-partition row materialization.

Live class metadata is never shipped to the unit that processes a partition.
Each partition resolves its record type by import name, rediscovers the
accessors, and compiles its own :class:`RowAdapter`. A transported
:class:`TypeShape`, when supplied, is only used to detect drift between the
two discoveries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from core_errors import ShapeDriftError
from core_types import Row
from obs.scopes import SCOPE_MATERIALIZE, AttributeName
from obs.tracing import stage_span
from row_materialize.adapters import RowAdapter
from schema_spec.accessors import (
    METADATA_ACCESSOR_NAMES,
    TypeShape,
    check_shape_drift,
    discover_accessors,
    resolve_record_type,
)

logger = logging.getLogger(__name__)


class PartitionMaterializer:
    """Materialize the records of one partition into rows.

    The accessor cache lives on the instance; create one materializer per
    partition.
    """

    def __init__(
        self,
        type_name: str,
        *,
        expected_shape: TypeShape | None = None,
        metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
    ) -> None:
        self.type_name = type_name
        self.expected_shape = expected_shape
        self._metadata_accessors = frozenset(metadata_accessors)
        self._adapter: RowAdapter | None = None

    @property
    def resolved(self) -> bool:
        """Return whether the record type has been resolved for this partition."""
        return self._adapter is not None

    def adapter(self) -> RowAdapter:
        """Return the partition-local row adapter, resolving it on first use.

        Returns
        -------
        RowAdapter
            Compiled extractor for the record type.

        Raises
        ------
        ShapeDriftError
            Raised when local discovery disagrees with the expected shape.
        """
        if self._adapter is not None:
            return self._adapter
        record_type = resolve_record_type(self.type_name)
        shape = discover_accessors(record_type, metadata_accessors=self._metadata_accessors)
        if self.expected_shape is not None:
            problems = check_shape_drift(shape, self.expected_shape)
            if problems:
                msg = f"Accessors of {self.type_name} drifted from the derived schema: " + "; ".join(
                    problems
                )
                raise ShapeDriftError(msg, type_name=self.type_name)
        self._adapter = RowAdapter(shape.names)
        logger.debug("Resolved %s with %d accessors", self.type_name, len(shape.names))
        return self._adapter

    def iter_rows(self, records: Iterable[object]) -> Iterator[Row]:
        """Yield one row per record, in input order.

        Yields
        ------
        Row
            Values of every accessor for a record.
        """
        for index, record in enumerate(records):
            yield self.adapter().extract(record, record_index=index)


def materialize_partition(
    type_name: str,
    records: Iterable[object],
    *,
    expected_shape: TypeShape | None = None,
    partition_index: int = 0,
    metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
) -> list[Row]:
    """Materialize a single partition of records into rows.

    Parameters
    ----------
    type_name
        Import name of the record type, as returned by ``record_type_name``.
    records
        Records of the partition, processed sequentially in order.
    expected_shape
        Shape computed where the schema was derived; used as a drift check.
    partition_index
        Index of the partition, for diagnostics.
    metadata_accessors
        Reserved accessor names excluded from discovery.

    Returns
    -------
    list[Row]
        Rows in record order.
    """
    materializer = PartitionMaterializer(
        type_name,
        expected_shape=expected_shape,
        metadata_accessors=metadata_accessors,
    )
    with stage_span(
        "materialize.partition",
        stage="materialize_partition",
        scope_name=SCOPE_MATERIALIZE,
        attributes={
            AttributeName.TYPE_NAME: type_name,
            AttributeName.PARTITION: partition_index,
        },
    ) as span:
        rows = list(materializer.iter_rows(records))
        span.set_attribute(AttributeName.ROW_COUNT, len(rows))
    return rows


__all__ = ["PartitionMaterializer", "materialize_partition"]
