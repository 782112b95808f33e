"""Accessor discovery and record type resolution.

Accessors are discovered in a fixed order:

1. Annotated data attributes, as resolved by :func:`typing.get_type_hints`.
   Base classes come first and each class contributes its annotations in
   declaration order; a redeclared attribute keeps its original position.
   ``ClassVar`` annotations are not accessors.
2. Properties with a return annotation, walking the MRO from the base class
   down and each class body in definition order; an overriding property keeps
   its original position.

Private names and reserved metadata accessor names are skipped. Python keeps
class namespaces and annotations in insertion order, so the order is stable
for a given class definition.
"""

from __future__ import annotations

import importlib
import logging
import typing
from collections.abc import Iterable
from typing import ClassVar, get_origin

from core_errors import DuplicateAccessorError, ReflectionResolutionError, UnsupportedTypeError
from schema_spec.canonical_types import TypeTag, type_tag_for_annotation
from serde_msgspec import StructBaseStrict

logger = logging.getLogger(__name__)

METADATA_ACCESSOR_NAMES: frozenset[str] = frozenset({"__class__"})

_LOCALS_MARKER = "<locals>"


class ShapeEntry(StructBaseStrict, frozen=True):
    """Single accessor entry in a type shape."""

    name: str
    tag: TypeTag


class TypeShape(StructBaseStrict, frozen=True):
    """Transportable, ordered list of a record type's accessors."""

    type_name: str
    accessors: tuple[ShapeEntry, ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        """Return accessor names in discovery order."""
        return tuple(entry.name for entry in self.accessors)


def record_type_name(record_type: type) -> str:
    """Return the import name used to re-resolve a record type.

    Returns
    -------
    str
        ``"<module>:<qualname>"`` identifier for the type.
    """
    return f"{record_type.__module__}:{record_type.__qualname__}"


def resolve_record_type(type_name: str) -> type:
    """Resolve a record type from its import name on the local execution unit.

    Returns
    -------
    type
        Resolved class.

    Raises
    ------
    ReflectionResolutionError
        Raised when the module cannot be imported or the name is not a class.
    """
    module_name, sep, qualname = type_name.partition(":")
    if not sep or not module_name or not qualname:
        msg = f"Malformed record type name {type_name!r}; expected '<module>:<qualname>'."
        raise ReflectionResolutionError(msg, type_name=type_name)
    if _LOCALS_MARKER in qualname:
        msg = f"Record type {type_name!r} is defined inside a function and cannot be resolved by name."
        raise ReflectionResolutionError(msg, type_name=type_name)
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Cannot import module {module_name!r} for record type {type_name!r}."
        raise ReflectionResolutionError(msg, type_name=type_name) from exc
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            msg = f"Record type {type_name!r} not found: missing attribute {part!r}."
            raise ReflectionResolutionError(msg, type_name=type_name) from exc
    if not isinstance(target, type):
        msg = f"Record type name {type_name!r} resolved to a non-class object."
        raise ReflectionResolutionError(msg, type_name=type_name)
    return target


def _is_hidden(name: str, reserved: frozenset[str]) -> bool:
    return name.startswith("_") or name in reserved


def _data_attribute_tags(record_type: type, reserved: frozenset[str]) -> dict[str, TypeTag]:
    try:
        hints = typing.get_type_hints(record_type)
    except NameError as exc:
        msg = f"Cannot resolve annotations of {record_type.__qualname__}: {exc}."
        raise UnsupportedTypeError(msg) from exc
    tags: dict[str, TypeTag] = {}
    for name, annotation in hints.items():
        if _is_hidden(name, reserved) or get_origin(annotation) is ClassVar or annotation is ClassVar:
            continue
        tags[name] = type_tag_for_annotation(annotation)
    return tags


def _property_tags(record_type: type, reserved: frozenset[str]) -> dict[str, TypeTag]:
    tags: dict[str, TypeTag] = {}
    for klass in reversed(record_type.__mro__):
        for name, member in vars(klass).items():
            if not isinstance(member, property) or _is_hidden(name, reserved):
                continue
            if member.fget is None:
                continue
            try:
                returns = typing.get_type_hints(member.fget).get("return")
            except NameError as exc:
                msg = f"Cannot resolve return annotation of {record_type.__qualname__}.{name}: {exc}."
                raise UnsupportedTypeError(msg, accessor=name) from exc
            if returns is None:
                msg = f"Property {record_type.__qualname__}.{name} has no return annotation."
                raise UnsupportedTypeError(msg, accessor=name)
            tags[name] = type_tag_for_annotation(returns)
    return tags


def discover_accessors(
    record_type: type,
    *,
    metadata_accessors: Iterable[str] = METADATA_ACCESSOR_NAMES,
) -> TypeShape:
    """Discover the exposed accessors of a record type.

    Parameters
    ----------
    record_type
        Class to introspect.
    metadata_accessors
        Reserved names of accessors that describe the type rather than the
        record; they are never part of the shape.

    Returns
    -------
    TypeShape
        Accessors in discovery order with their type tags.

    Raises
    ------
    DuplicateAccessorError
        Raised when a name is exposed both as a data attribute and a property.
    """
    reserved = frozenset(metadata_accessors)
    data_tags = _data_attribute_tags(record_type, reserved)
    property_tags = _property_tags(record_type, reserved)
    for name in property_tags:
        if name in data_tags:
            msg = (
                f"Accessor {name!r} of {record_type.__qualname__} is exposed both as an "
                "attribute and a property."
            )
            raise DuplicateAccessorError(msg, name=name)
    entries = tuple(
        ShapeEntry(name=name, tag=tag) for name, tag in (*data_tags.items(), *property_tags.items())
    )
    shape = TypeShape(type_name=record_type_name(record_type), accessors=entries)
    logger.debug("Discovered %d accessors on %s", len(entries), shape.type_name)
    return shape


def check_shape_drift(local: TypeShape, expected: TypeShape) -> list[str]:
    """Describe differences between a locally discovered shape and an expected one.

    Returns
    -------
    list[str]
        Human-readable differences; empty when the shapes agree.
    """
    problems: list[str] = []
    if local.type_name != expected.type_name:
        problems.append(f"type name {local.type_name!r} != {expected.type_name!r}")
    if len(local.accessors) != len(expected.accessors):
        problems.append(
            f"accessor count {len(local.accessors)} != {len(expected.accessors)}"
        )
    for index, (found, wanted) in enumerate(zip(local.accessors, expected.accessors, strict=False)):
        if found != wanted:
            problems.append(
                f"accessor {index}: {found.name}: {found.tag.describe()} != "
                f"{wanted.name}: {wanted.tag.describe()}"
            )
    return problems


__all__ = [
    "METADATA_ACCESSOR_NAMES",
    "ShapeEntry",
    "TypeShape",
    "check_shape_drift",
    "discover_accessors",
    "record_type_name",
    "resolve_record_type",
]
