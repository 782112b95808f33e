"""Unified error types for record bridge surfaces."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Categorize bridge errors by subsystem."""

    GENERIC = "generic"
    TYPE = "type"
    SCHEMA = "schema"
    REFLECTION = "reflection"
    ACCESSOR = "accessor"
    ROW = "row"
    STORAGE = "storage"
    INFERENCE = "inference"
    CATALOG = "catalog"
    CONFIG = "config"


class RecordBridgeError(Exception):
    """Base exception for record bridge failures."""

    def __init__(self, message: str, *, kind: ErrorKind = ErrorKind.GENERIC) -> None:
        super().__init__(message)
        self.kind = kind


class UnsupportedTypeError(RecordBridgeError):
    """Raised when a scalar type tag has no canonical mapping."""

    def __init__(self, message: str, *, tag: object = None, accessor: str | None = None) -> None:
        super().__init__(message, kind=ErrorKind.TYPE)
        self.tag = tag
        self.accessor = accessor


class DuplicateAccessorError(RecordBridgeError):
    """Raised when two accessors of a type share a name."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message, kind=ErrorKind.SCHEMA)
        self.name = name


class ReflectionResolutionError(RecordBridgeError):
    """Raised when a record type cannot be resolved on the local execution unit."""

    def __init__(self, message: str, *, type_name: str) -> None:
        super().__init__(message, kind=ErrorKind.REFLECTION)
        self.type_name = type_name


class ShapeDriftError(ReflectionResolutionError):
    """Raised when locally discovered accessors differ from the transported shape."""


class AccessorInvocationError(RecordBridgeError):
    """Raised when invoking an accessor on a record fails."""

    def __init__(self, message: str, *, accessor: str, record_index: int) -> None:
        super().__init__(message, kind=ErrorKind.ACCESSOR)
        self.accessor = accessor
        self.record_index = record_index


class RowContractError(RecordBridgeError):
    """Raised when a materialized row does not conform to its schema."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message, kind=ErrorKind.ROW)
        self.field = field


class StoreError(RecordBridgeError):
    """Base exception for persistent store failures."""

    def __init__(self, message: str, *, location: str) -> None:
        super().__init__(message, kind=ErrorKind.STORAGE)
        self.location = location


class StoreAlreadyExistsError(StoreError):
    """Raised when a store location is occupied and reuse is not allowed."""


class StoreSchemaMismatchError(StoreError):
    """Raised when an existing store was created with a different schema."""


class StoreNotFoundError(StoreError):
    """Raised when a location holds no store metadata."""


class RecordInferenceError(RecordBridgeError):
    """Raised when semi-structured input cannot be turned into rows."""

    def __init__(self, message: str) -> None:
        super().__init__(message, kind=ErrorKind.INFERENCE)


class CatalogError(RecordBridgeError):
    """Raised for unknown or non-writable catalog tables."""

    def __init__(self, message: str, *, table_name: str) -> None:
        super().__init__(message, kind=ErrorKind.CATALOG)
        self.table_name = table_name


class ConfigError(RecordBridgeError):
    """Raised when configuration fails validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, kind=ErrorKind.CONFIG)


__all__ = [
    "AccessorInvocationError",
    "CatalogError",
    "ConfigError",
    "DuplicateAccessorError",
    "ErrorKind",
    "RecordBridgeError",
    "RecordInferenceError",
    "ReflectionResolutionError",
    "RowContractError",
    "ShapeDriftError",
    "StoreAlreadyExistsError",
    "StoreError",
    "StoreNotFoundError",
    "StoreSchemaMismatchError",
    "UnsupportedTypeError",
]
