"""Tests for tracing helpers."""

from __future__ import annotations

import pytest

from obs import AttributeName, ScopeName, stage_span
from obs.tracing import normalize_attributes


def test_normalize_attributes_stringifies_unsupported_values() -> None:
    """Ensure attribute values are coerced to OpenTelemetry-compatible types."""
    normalized = normalize_attributes(
        {
            AttributeName.ROW_COUNT: 3,
            AttributeName.TYPE_NAME: ScopeName.SCHEMA,
            "names": ("a", "b"),
            "missing": None,
            "blob": b"x",
        }
    )
    assert normalized["row_count"] == 3
    assert normalized["record.type_name"] == "recordbridge.schema"
    assert normalized["names"] == ["a", "b"]
    assert "missing" not in normalized
    assert normalized["blob"] == "b'x'"


def test_stage_span_reraises_errors() -> None:
    """Ensure errors inside a stage span propagate unchanged."""
    msg = "boom"
    with (
        pytest.raises(RuntimeError, match="boom"),
        stage_span("test.stage", stage="test", scope_name=ScopeName.SESSION),
    ):
        raise RuntimeError(msg)


def test_stage_span_yields_span() -> None:
    """Ensure the stage span can be annotated by the caller."""
    with stage_span("test.stage", stage="test", scope_name=ScopeName.SESSION) as span:
        span.set_attribute(AttributeName.ROW_COUNT, 1)
