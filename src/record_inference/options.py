"""Options for semi-structured record inference."""

from __future__ import annotations

from dataclasses import dataclass

import pyarrow as pa

from core_errors import RecordInferenceError

DEFAULT_SAMPLING_SEED = 42


@dataclass(frozen=True)
class JsonInferenceOptions:
    """Options for inferring a schema from JSON records.

    ``sampling_ratio`` is the fraction of records scanned for inference; the
    sample is drawn with a fixed seed so inference is repeatable. An explicit
    ``schema`` bypasses inference entirely.
    """

    sampling_ratio: float = 1.0
    seed: int = DEFAULT_SAMPLING_SEED
    schema: pa.Schema | None = None

    def __post_init__(self) -> None:
        """Validate the sampling ratio.

        Raises
        ------
        RecordInferenceError
            Raised when the ratio is outside ``(0.0, 1.0]``.
        """
        if not 0.0 < self.sampling_ratio <= 1.0:
            msg = f"sampling_ratio must be in (0.0, 1.0], got {self.sampling_ratio}."
            raise RecordInferenceError(msg)


@dataclass(frozen=True)
class CsvInferenceOptions:
    """Options for parsing delimited text.

    When ``header`` is set the first line holds column names. An explicit
    ``schema`` fixes names and types and overrides any header names.
    """

    delimiter: str = ","
    quote: str = '"'
    schema: pa.Schema | None = None
    header: bool = False

    def __post_init__(self) -> None:
        """Validate delimiter and quote characters.

        Raises
        ------
        RecordInferenceError
            Raised when either is not exactly one character or they collide.
        """
        if len(self.delimiter) != 1:
            msg = f"delimiter must be a single character, got {self.delimiter!r}."
            raise RecordInferenceError(msg)
        if len(self.quote) != 1:
            msg = f"quote must be a single character, got {self.quote!r}."
            raise RecordInferenceError(msg)
        if self.delimiter == self.quote:
            msg = "delimiter and quote must differ."
            raise RecordInferenceError(msg)


__all__ = ["DEFAULT_SAMPLING_SEED", "CsvInferenceOptions", "JsonInferenceOptions"]
