"""Compiled per-type row extractors."""

from __future__ import annotations

from collections.abc import Callable
from operator import attrgetter
from typing import cast

from core_errors import AccessorInvocationError
from core_types import Row


class RowAdapter:
    """Extract an ordered row from a record with a single compiled getter.

    The getter is an :func:`operator.attrgetter` over all accessor names, so
    one record costs one C-level call. When that call raises, the accessors
    are replayed one at a time to name the failing one.
    """

    __slots__ = ("_getter", "names")

    def __init__(self, names: tuple[str, ...]) -> None:
        self.names = names
        self._getter: Callable[[object], object] | None = attrgetter(*names) if names else None

    def __len__(self) -> int:
        return len(self.names)

    def extract(self, record: object, *, record_index: int = 0) -> Row:
        """Invoke every accessor on the record, in order.

        Returns
        -------
        Row
            One value per accessor.

        Raises
        ------
        AccessorInvocationError
            Raised when an accessor raises for this record.
        """
        if self._getter is None:
            return ()
        try:
            values = self._getter(record)
        except Exception as exc:
            failing = self._failing_accessor(record)
            msg = f"Accessor {failing!r} failed on record {record_index}: {exc!r}"
            raise AccessorInvocationError(msg, accessor=failing, record_index=record_index) from exc
        if len(self.names) == 1:
            return (values,)
        return cast("Row", values)

    def _failing_accessor(self, record: object) -> str:
        for name in self.names:
            try:
                getattr(record, name)
            except Exception:  # noqa: BLE001
                return name
        return self.names[-1]


__all__ = ["RowAdapter"]
