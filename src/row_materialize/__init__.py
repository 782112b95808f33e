"""Row materialization for reflective record partitions."""

from __future__ import annotations

from row_materialize.adapters import RowAdapter
from row_materialize.arrow_rows import rows_to_record_batch, rows_to_table
from row_materialize.parallel import (
    PartitionedRecords,
    PartitionTask,
    build_partition_tasks,
    materialize_partitions,
    partition_records,
    run_partition_task,
)
from row_materialize.partition import PartitionMaterializer, materialize_partition

__all__ = [
    "PartitionMaterializer",
    "PartitionTask",
    "PartitionedRecords",
    "RowAdapter",
    "build_partition_tasks",
    "materialize_partition",
    "materialize_partitions",
    "partition_records",
    "rows_to_record_batch",
    "rows_to_table",
    "run_partition_task",
]
