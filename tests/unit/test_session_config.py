"""Tests for session configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from core_errors import ConfigError, ErrorKind
from obs import configure_logging
from session_engine import (
    CONFIG_FILENAME,
    RecordSessionConfig,
    decode_session_config,
    load_session_config,
)
from storage import ParquetStoreOptions


def test_defaults_without_config_files(tmp_path: Path) -> None:
    """Ensure defaults apply when no config file is found."""
    assert load_session_config(start=tmp_path) == RecordSessionConfig()


def test_load_explicit_file(tmp_path: Path) -> None:
    """Ensure an explicit TOML file is decoded, including nested store options."""
    path = tmp_path / "custom.toml"
    path.write_text(
        'executor = "thread"\n'
        "default_partitions = 4\n"
        "json_sampling_ratio = 0.5\n"
        "[parquet]\n"
        'compression = "snappy"\n',
        encoding="utf-8",
    )
    config = load_session_config(path)
    assert config.executor == "thread"
    assert config.default_partitions == 4
    assert config.json_sampling_ratio == 0.5
    assert config.parquet == ParquetStoreOptions(compression="snappy")


def test_recordbridge_toml_wins_over_pyproject(tmp_path: Path) -> None:
    """Ensure the dedicated config file takes precedence over pyproject.toml."""
    (tmp_path / "pyproject.toml").write_text(
        "[tool.recordbridge]\ndefault_partitions = 2\n", encoding="utf-8"
    )
    nested = tmp_path / "nested"
    nested.mkdir()
    assert load_session_config(start=nested).default_partitions == 2
    (tmp_path / CONFIG_FILENAME).write_text("default_partitions = 8\n", encoding="utf-8")
    assert load_session_config(start=nested).default_partitions == 8


def test_missing_explicit_file_fails(tmp_path: Path) -> None:
    """Ensure a missing explicit config file raises ConfigError."""
    with pytest.raises(ConfigError) as excinfo:
        load_session_config(tmp_path / "absent.toml")
    assert excinfo.value.kind is ErrorKind.CONFIG


def test_invalid_toml_fails(tmp_path: Path) -> None:
    """Ensure malformed TOML raises ConfigError."""
    path = tmp_path / "broken.toml"
    path.write_text("executor = \n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_session_config(path)


@pytest.mark.parametrize(
    "raw",
    [
        {"executor": "cluster"},
        {"default_partitions": 0},
        {"json_sampling_ratio": 1.5},
        {"csv_delimiter": ";;"},
        {"unknown_key": True},
    ],
)
def test_decode_session_config_rejects_invalid_values(raw: dict[str, object]) -> None:
    """Ensure invalid configuration values raise ConfigError."""
    with pytest.raises(ConfigError, match="Config validation failed"):
        decode_session_config(raw, location="inline")  # type: ignore[arg-type]


def test_configure_logging_sets_package_levels() -> None:
    """Ensure configured levels apply to the package loggers."""
    configure_logging("debug")
    assert logging.getLogger("schema_spec").level == logging.DEBUG
    configure_logging(logging.WARNING)
    assert logging.getLogger("session_engine").level == logging.WARNING
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("chatty")


def test_configure_logging_attaches_trace_handler() -> None:
    """Ensure the optional handler injects trace context into records."""
    configure_logging("info", with_handler=True)
    handlers = logging.getLogger("storage").handlers
    assert handlers
    record = logging.LogRecord("storage", logging.INFO, __file__, 1, "msg", None, None)
    assert all(handler.filter(record) for handler in handlers)
    assert record.trace_id is None  # type: ignore[attr-defined]
