"""Logging helpers for trace correlation and package log levels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from opentelemetry import trace

if TYPE_CHECKING:

    class _TraceRecord(logging.LogRecord):
        trace_id: str | None
        span_id: str | None


TRACE_LOG_FORMAT = (
    "%(asctime)s %(levelname)s [trace_id=%(trace_id)s span_id=%(span_id)s] %(name)s: %(message)s"
)

PACKAGE_LOGGERS: tuple[str, ...] = (
    "schema_spec",
    "row_materialize",
    "storage",
    "record_inference",
    "session_engine",
)


class TraceContextFilter(logging.Filter):
    """Attach trace/span IDs to log records when available."""

    @staticmethod
    def filter(record: logging.LogRecord) -> bool:
        """Inject trace/span IDs into the log record when available.

        Returns
        -------
        bool
            True to keep the log record.
        """
        context = trace.get_current_span().get_span_context()
        trace_record = cast("_TraceRecord", record)
        if context is None or not context.is_valid:
            trace_record.trace_id = None
            trace_record.span_id = None
            return True
        trace_record.trace_id = f"{context.trace_id:032x}"
        trace_record.span_id = f"{context.span_id:016x}"
        return True


def configure_logging(level: str | int | None, *, with_handler: bool = False) -> None:
    """Apply a log level to the recordbridge package loggers.

    Parameters
    ----------
    level
        Level name or number; ``None`` leaves levels untouched.
    with_handler
        Attach a stream handler using the trace-aware format when the
        package logger has none.

    Raises
    ------
    ValueError
        Raised when the level name is unknown.
    """
    if level is None:
        return
    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(resolved, int):
        msg = f"Unknown log level: {level!r}."
        raise ValueError(msg)
    for name in PACKAGE_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(resolved)
        if with_handler and not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(TRACE_LOG_FORMAT))
            handler.addFilter(TraceContextFilter())
            logger.addHandler(handler)


__all__ = ["PACKAGE_LOGGERS", "TRACE_LOG_FORMAT", "TraceContextFilter", "configure_logging"]
