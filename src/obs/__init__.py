"""Observation utilities: trace spans and logging configuration."""

from __future__ import annotations

from obs.logging import configure_logging
from obs.scopes import AttributeName, ScopeName
from obs.tracing import get_tracer, record_exception, stage_span

__all__ = [
    "AttributeName",
    "ScopeName",
    "configure_logging",
    "get_tracer",
    "record_exception",
    "stage_span",
]
