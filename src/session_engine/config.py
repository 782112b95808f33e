"""Session configuration models and loading.

Configuration is read from an explicit TOML file, or else from
``recordbridge.toml`` or the ``[tool.recordbridge]`` table of
``pyproject.toml``, whichever is found first walking up from the working
directory. ``recordbridge.toml`` wins over ``pyproject.toml``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Literal, cast

import msgspec

from core_errors import ConfigError
from core_types import JsonValue, PathLike, PositiveInt, SingleChar, UnitInterval, ensure_path
from serde_msgspec import StructBaseStrict, validation_error_payload
from storage.parquet_store import ParquetStoreOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "recordbridge.toml"
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEY = "recordbridge"


class RecordSessionConfig(StructBaseStrict, frozen=True):
    """Configuration values for a record session."""

    target_partitions: PositiveInt | None = None
    default_partitions: PositiveInt = 1
    executor: Literal["serial", "thread", "process"] = "serial"
    max_workers: PositiveInt | None = None
    log_level: str | None = None
    json_sampling_ratio: UnitInterval = 1.0
    csv_delimiter: SingleChar = ","
    csv_quote: SingleChar = '"'
    parquet: ParquetStoreOptions = msgspec.field(default_factory=ParquetStoreOptions)


def _find_in_parents(filename: str, start: Path | None = None) -> Path | None:
    path = start or Path.cwd()
    while True:
        candidate = path / filename
        if candidate.exists():
            return candidate
        if path.parent == path:
            return None
        path = path.parent


def _read_toml(path: Path) -> dict[str, JsonValue]:
    try:
        payload = msgspec.toml.decode(path.read_text(encoding="utf-8"), type=object, strict=True)
    except msgspec.DecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(payload, dict):
        msg = f"Expected TOML mapping in {path}, got {type(payload).__name__}."
        raise ConfigError(msg)
    return cast("dict[str, JsonValue]", payload)


def _extract_tool_config(raw: Mapping[str, JsonValue]) -> Mapping[str, JsonValue] | None:
    tool = raw.get("tool")
    if not isinstance(tool, Mapping):
        return None
    section = tool.get(PYPROJECT_TOOL_KEY)
    if not isinstance(section, Mapping):
        return None
    return cast("Mapping[str, JsonValue]", section)


def decode_session_config(raw: Mapping[str, JsonValue], *, location: str) -> RecordSessionConfig:
    """Validate a raw mapping into a session config.

    Returns
    -------
    RecordSessionConfig
        Validated configuration.

    Raises
    ------
    ConfigError
        Raised when validation fails.
    """
    try:
        return msgspec.convert(dict(raw), type=RecordSessionConfig, strict=True)
    except msgspec.ValidationError as exc:
        details = validation_error_payload(exc)
        msg = f"Config validation failed for {location}: {details}"
        raise ConfigError(msg) from exc


def _load_file(path: Path) -> RecordSessionConfig:
    raw = _read_toml(path)
    if path.name == PYPROJECT_FILENAME:
        nested = _extract_tool_config(raw)
        location = f"{path}:tool.{PYPROJECT_TOOL_KEY}"
        return decode_session_config(nested or {}, location=location)
    return decode_session_config(raw, location=str(path))


def load_session_config(
    config_file: PathLike | None = None,
    *,
    start: PathLike | None = None,
) -> RecordSessionConfig:
    """Load the effective session configuration.

    Parameters
    ----------
    config_file
        Optional explicit config file path.
    start
        Directory to start the parent search from; defaults to the cwd.

    Returns
    -------
    RecordSessionConfig
        Loaded configuration, or defaults when no file is found.

    Raises
    ------
    ConfigError
        Raised when an explicit file does not exist.
    """
    if config_file is not None:
        path = ensure_path(config_file)
        if not path.exists():
            msg = f"Config file {path} does not exist."
            raise ConfigError(msg)
        return _load_file(path)
    origin = ensure_path(start) if start is not None else None
    config_path = _find_in_parents(CONFIG_FILENAME, origin)
    if config_path is not None:
        logger.debug("Loading session config from %s", config_path)
        return _load_file(config_path)
    pyproject_path = _find_in_parents(PYPROJECT_FILENAME, origin)
    if pyproject_path is not None:
        nested = _extract_tool_config(_read_toml(pyproject_path))
        if nested is not None:
            logger.debug("Loading session config from %s", pyproject_path)
            return decode_session_config(
                nested,
                location=f"{pyproject_path}:tool.{PYPROJECT_TOOL_KEY}",
            )
    return RecordSessionConfig()


__all__ = [
    "CONFIG_FILENAME",
    "RecordSessionConfig",
    "decode_session_config",
    "load_session_config",
]
