"""Tests for per-partition row materialization."""

from __future__ import annotations

import pickle

import pytest

from core_errors import AccessorInvocationError, ErrorKind, ReflectionResolutionError, ShapeDriftError
from row_materialize import (
    PartitionedRecords,
    PartitionMaterializer,
    RowAdapter,
    build_partition_tasks,
    materialize_partition,
    materialize_partitions,
    partition_records,
    run_partition_task,
)
from row_materialize.parallel import supports_fork
from schema_spec import derive_type_shape, record_type_name
from tests.test_helpers.records import Account, Fragile, Person, SavingsAccount

PERSON = record_type_name(Person)


def _people(count: int) -> list[Person]:
    return [Person(name=f"p{index}", age=index) for index in range(count)]


def test_materialize_partition_preserves_order() -> None:
    """Ensure rows follow record order and accessor order."""
    rows = materialize_partition(PERSON, [Person("Ann", 30), Person("Bo", 41)])
    assert rows == [("Ann", 30), ("Bo", 41)]


def test_materialize_partition_is_deterministic() -> None:
    """Ensure the same partition yields identical rows on every run."""
    records = _people(25)
    assert materialize_partition(PERSON, records) == materialize_partition(PERSON, records)


def test_empty_partition_never_resolves_type() -> None:
    """Ensure an empty partition yields no rows without resolving the type."""
    materializer = PartitionMaterializer("missing_module_xyz:Nothing")
    assert list(materializer.iter_rows([])) == []
    assert not materializer.resolved
    assert materialize_partition("missing_module_xyz:Nothing", []) == []


def test_unresolvable_type_fails_partition() -> None:
    """Ensure a non-empty partition with an unknown type name fails."""
    with pytest.raises(ReflectionResolutionError):
        materialize_partition("missing_module_xyz:Nothing", [Person("Ann", 30)])


def test_local_record_type_fails_partition() -> None:
    """Ensure locally defined record types cannot be materialized by name."""

    class Local:
        value: int

        def __init__(self, value: int) -> None:
            self.value = value

    with pytest.raises(ReflectionResolutionError):
        materialize_partition(record_type_name(Local), [Local(1)])


def test_shape_drift_is_detected() -> None:
    """Ensure a transported shape that disagrees with local discovery fails."""
    with pytest.raises(ShapeDriftError) as excinfo:
        materialize_partition(
            record_type_name(Account),
            [Account("a", 1.0)],
            expected_shape=derive_type_shape(SavingsAccount),
        )
    assert excinfo.value.kind is ErrorKind.REFLECTION
    assert isinstance(excinfo.value, ReflectionResolutionError)


def test_matching_shape_passes() -> None:
    """Ensure computed properties are extracted after data attributes."""
    rows = materialize_partition(
        record_type_name(SavingsAccount),
        [SavingsAccount("sam", -2.0, 0.5)],
        expected_shape=derive_type_shape(SavingsAccount),
    )
    assert rows == [("sam", -2.0, 0.5, True, "s", -1.0)]


def test_accessor_failure_names_accessor_and_record() -> None:
    """Ensure a raising accessor is reported with its name and record position."""
    records = [Fragile(1), Fragile(2), Fragile(-1)]
    with pytest.raises(AccessorInvocationError) as excinfo:
        materialize_partition(record_type_name(Fragile), records)
    assert excinfo.value.accessor == "checked"
    assert excinfo.value.record_index == 2
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_row_adapter_single_accessor_returns_tuple() -> None:
    """Ensure single-accessor adapters still emit one-element rows."""
    assert RowAdapter(("age",)).extract(Person("Ann", 30)) == (30,)
    assert RowAdapter(()).extract(Person("Ann", 30)) == ()


def test_partition_records_is_contiguous() -> None:
    """Ensure partitioning keeps input order and balances sizes."""
    partitions = partition_records(range(7), 3)
    assert partitions.partitions == ((0, 1, 2), (3, 4), (5, 6))
    assert partitions.record_count == 7


def test_partition_records_edge_cases() -> None:
    """Ensure empty input yields one empty partition and bad counts are rejected."""
    assert partition_records([], 4).partitions == ((),)
    assert len(partition_records(range(2), 8)) == 2
    with pytest.raises(ValueError, match="positive"):
        partition_records(range(2), 0)


@pytest.mark.parametrize("executor", ["serial", "thread"])
def test_materialize_partitions_follows_partition_order(executor: str) -> None:
    """Ensure pooled and serial execution produce identical ordered output."""
    records = _people(10)
    partitions = partition_records(records, 4)
    result = materialize_partitions(
        PERSON,
        partitions,
        shape=derive_type_shape(Person),
        executor=executor,  # type: ignore[arg-type]
        max_workers=2,
    )
    assert [row for rows in result for row in rows] == [(p.name, p.age) for p in records]
    assert [len(rows) for rows in result] == [len(part) for part in partitions]


def test_materialize_partitions_accepts_nested_sequences() -> None:
    """Ensure pre-split partitions are accepted without wrapping."""
    result = materialize_partitions(PERSON, [[Person("a", 1)], [], [Person("b", 2)]])
    assert result == [[("a", 1)], [], [("b", 2)]]
    assert PartitionedRecords.from_partitions([[1], [2, 3]]).record_count == 3


def test_partition_tasks_are_picklable() -> None:
    """Ensure tasks carry only transportable values."""
    tasks = build_partition_tasks(
        PERSON,
        partition_records(_people(4), 2),
        shape=derive_type_shape(Person),
    )
    restored = [pickle.loads(pickle.dumps(task)) for task in tasks]
    assert [run_partition_task(task) for task in restored] == [
        [("p0", 0), ("p1", 1)],
        [("p2", 2), ("p3", 3)],
    ]


@pytest.mark.skipif(not supports_fork(), reason="fork start method unavailable")
def test_process_executor_resolves_type_by_name() -> None:
    """Ensure worker processes re-resolve the record type and return ordered rows."""
    records = _people(6)
    result = materialize_partitions(
        PERSON,
        partition_records(records, 3),
        shape=derive_type_shape(Person),
        executor="process",
        max_workers=2,
    )
    assert result == [[("p0", 0), ("p1", 1)], [("p2", 2), ("p3", 3)], [("p4", 4), ("p5", 5)]]
