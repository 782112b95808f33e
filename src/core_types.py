"""Shared type aliases and small typing helpers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Annotated, Literal

from msgspec import Meta

type PathLike = str | Path
type ExecutorKind = Literal["serial", "thread", "process"]

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | Mapping[str, JsonValue] | Sequence[JsonValue]
type JsonDict = dict[str, JsonValue]

type Row = tuple[object, ...]

PositiveInt = Annotated[int, Meta(gt=0)]
UnitInterval = Annotated[float, Meta(gt=0.0, le=1.0)]
SingleChar = Annotated[str, Meta(min_length=1, max_length=1)]


def ensure_path(p: PathLike) -> Path:
    """Return a normalized ``Path`` for the provided value.

    Parameters
    ----------
    p:
        String or ``Path`` input to normalize.

    Returns
    -------
    pathlib.Path
        Normalized path instance.
    """
    return p if isinstance(p, Path) else Path(p)


__all__ = [
    "ExecutorKind",
    "JsonDict",
    "JsonPrimitive",
    "JsonValue",
    "PathLike",
    "PositiveInt",
    "Row",
    "SingleChar",
    "UnitInterval",
    "ensure_path",
]
