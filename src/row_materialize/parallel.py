"""Parallel partition materialization helpers."""

from __future__ import annotations

import logging
import multiprocessing
import os
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass

from core_types import ExecutorKind, Row
from row_materialize.partition import materialize_partition
from schema_spec.accessors import METADATA_ACCESSOR_NAMES, TypeShape
from serde_msgspec import dumps_msgpack, loads_msgpack

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionedRecords:
    """Records split into independently processed partitions."""

    partitions: tuple[tuple[object, ...], ...]

    def __len__(self) -> int:
        return len(self.partitions)

    def __iter__(self) -> Iterator[tuple[object, ...]]:
        return iter(self.partitions)

    @property
    def record_count(self) -> int:
        """Return the number of records across all partitions."""
        return sum(len(partition) for partition in self.partitions)

    @classmethod
    def from_partitions(cls, partitions: Iterable[Iterable[object]]) -> PartitionedRecords:
        """Build partitioned records from pre-split partitions.

        Returns
        -------
        PartitionedRecords
            Partitions frozen into tuples.
        """
        return cls(partitions=tuple(tuple(partition) for partition in partitions))


def partition_records(records: Iterable[object], num_partitions: int = 1) -> PartitionedRecords:
    """Split records into contiguous, order-preserving partitions.

    Partition sizes differ by at most one record; the earlier partitions take
    the remainder.

    Returns
    -------
    PartitionedRecords
        Partitioned records; never more partitions than records, at least one.

    Raises
    ------
    ValueError
        Raised when ``num_partitions`` is not positive.
    """
    if num_partitions <= 0:
        msg = f"num_partitions must be positive, got {num_partitions}."
        raise ValueError(msg)
    items = tuple(records)
    count = max(1, min(num_partitions, len(items)))
    base, extra = divmod(len(items), count)
    partitions: list[tuple[object, ...]] = []
    start = 0
    for index in range(count):
        size = base + (1 if index < extra else 0)
        partitions.append(items[start : start + size])
        start += size
    return PartitionedRecords(partitions=tuple(partitions))


@dataclass(frozen=True)
class PartitionTask:
    """Self-contained unit of work for one partition.

    Only picklable values travel with the task: the type's import name, the
    MessagePack-encoded shape, and the records themselves.
    """

    partition_index: int
    type_name: str
    shape_payload: bytes | None
    records: tuple[object, ...]
    metadata_accessors: frozenset[str] = METADATA_ACCESSOR_NAMES


def run_partition_task(task: PartitionTask) -> list[Row]:
    """Materialize a partition task on the current execution unit.

    Returns
    -------
    list[Row]
        Rows for the task's records, in order.
    """
    expected = (
        loads_msgpack(task.shape_payload, target_type=TypeShape)
        if task.shape_payload is not None
        else None
    )
    return materialize_partition(
        task.type_name,
        task.records,
        expected_shape=expected,
        partition_index=task.partition_index,
        metadata_accessors=task.metadata_accessors,
    )


def supports_fork() -> bool:
    """Return True when the multiprocessing runtime supports fork.

    Returns
    -------
    bool
        ``True`` when the fork start method is available.
    """
    return "fork" in multiprocessing.get_all_start_methods()


def resolve_max_workers(max_workers: int | None) -> int:
    """Resolve max_workers using runtime defaults when unset.

    Returns
    -------
    int
        Effective worker count.
    """
    if max_workers is not None:
        return max(1, max_workers)
    return max(1, os.cpu_count() or 1)


def _executor(kind: ExecutorKind, max_workers: int | None) -> Executor:
    workers = resolve_max_workers(max_workers)
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=workers)
    if supports_fork():
        return ProcessPoolExecutor(max_workers=workers, mp_context=multiprocessing.get_context("fork"))
    return ProcessPoolExecutor(max_workers=workers)


def build_partition_tasks(
    type_name: str,
    partitions: PartitionedRecords,
    *,
    shape: TypeShape | None = None,
    metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
) -> list[PartitionTask]:
    """Build one task per partition.

    Returns
    -------
    list[PartitionTask]
        Tasks in partition order.
    """
    payload = dumps_msgpack(shape) if shape is not None else None
    reserved = frozenset(metadata_accessors)
    return [
        PartitionTask(
            partition_index=index,
            type_name=type_name,
            shape_payload=payload,
            records=records,
            metadata_accessors=reserved,
        )
        for index, records in enumerate(partitions)
    ]


def materialize_partitions(
    type_name: str,
    partitions: PartitionedRecords | Sequence[Iterable[object]],
    *,
    shape: TypeShape | None = None,
    executor: ExecutorKind = "serial",
    max_workers: int | None = None,
    metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
) -> list[list[Row]]:
    """Materialize every partition independently.

    Parameters
    ----------
    type_name
        Import name of the record type.
    partitions
        Partitioned records.
    shape
        Centrally derived type shape, shipped to each task as a drift check.
    executor
        ``"serial"`` runs tasks in the calling thread, ``"thread"`` in a
        thread pool and ``"process"`` in a process pool (fork when available).
    max_workers
        Worker count for pooled executors.
    metadata_accessors
        Reserved accessor names excluded from discovery.

    Returns
    -------
    list[list[Row]]
        Rows per partition, in partition order.
    """
    resolved = (
        partitions
        if isinstance(partitions, PartitionedRecords)
        else PartitionedRecords.from_partitions(partitions)
    )
    tasks = build_partition_tasks(
        type_name,
        resolved,
        shape=shape,
        metadata_accessors=metadata_accessors,
    )
    logger.debug(
        "Materializing %d partitions of %s with %s executor", len(tasks), type_name, executor
    )
    if executor == "serial" or len(tasks) <= 1:
        return [run_partition_task(task) for task in tasks]
    with _executor(executor, max_workers) as pool:
        return list(pool.map(run_partition_task, tasks))


__all__ = [
    "PartitionTask",
    "PartitionedRecords",
    "build_partition_tasks",
    "materialize_partitions",
    "partition_records",
    "resolve_max_workers",
    "run_partition_task",
    "supports_fork",
]
