"""Record types shared by the unit tests.

Record types must live at module level so partitions can re-resolve them by
import name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from schema_spec import Float32, Int8, Int16, Int64


@dataclass
class Person:
    """Plain record with one nullable and one non-nullable accessor."""

    name: str
    age: int


@dataclass
class Measurement:
    """Record covering every width-specific and boxed tag."""

    label: str | None
    tiny: Int8
    small: Int16
    big: Int64
    ratio: Float32
    score: float
    active: bool
    maybe_count: int | None
    maybe_flag: bool | None


@dataclass
class Tagged:
    """Record with an accessor type outside the mapping table."""

    name: str
    tags: list[str]


class Account:
    """Record exposing data attributes followed by computed properties."""

    registry: ClassVar[str] = "accounts"

    owner: str
    balance: float

    def __init__(self, owner: str, balance: float) -> None:
        self.owner = owner
        self.balance = balance
        self._audit = "hidden"

    @property
    def overdrawn(self) -> bool:
        return self.balance < 0

    @property
    def owner_initial(self) -> str | None:
        return self.owner[:1] or None


class SavingsAccount(Account):
    """Subclass adding one attribute and one property."""

    rate: float

    def __init__(self, owner: str, balance: float, rate: float) -> None:
        super().__init__(owner, balance)
        self.rate = rate

    @property
    def interest(self) -> float:
        return self.balance * self.rate


class Clashing:
    """Record exposing the same name as attribute and property."""

    total: int

    @property
    def total(self) -> int:  # noqa: F811
        return 1


class Unannotated:
    """Record whose property has no return annotation."""

    name: str

    @property
    def size(self):  # noqa: ANN201
        return 1


@dataclass
class Fragile:
    """Record whose second accessor raises for negative values."""

    value: int

    @property
    def checked(self) -> int:
        if self.value < 0:
            msg = "negative value"
            raise ValueError(msg)
        return self.value


@dataclass
class Empty:
    """Record with no accessors."""


__all__ = [
    "Account",
    "Clashing",
    "Empty",
    "Fragile",
    "Measurement",
    "Person",
    "SavingsAccount",
    "Tagged",
    "Unannotated",
]
