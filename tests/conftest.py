"""Shared fixtures for recordbridge tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from session_engine import RecordSession


@pytest.fixture
def session() -> Iterator[RecordSession]:
    """Provide a record session with default configuration.

    Yields
    ------
    RecordSession
        Fresh session, closed after the test.
    """
    with RecordSession() as record_session:
        yield record_session


@pytest.fixture
def store_location(tmp_path: Path) -> Path:
    """Provide an unused directory path for a Parquet store.

    Returns
    -------
    Path
        Store location that does not exist yet.
    """
    return tmp_path / "store"
