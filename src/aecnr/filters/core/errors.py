"""Exception hierarchy for filter design and strategy composition."""

from __future__ import annotations

from typing import Iterable


class AecNrError(RuntimeError):
    """Base class for all processing failures raised by aecnr."""


class ConfigurationError(AecNrError, ValueError):
    """Raised for invalid strategies, ranks, or mismatched input shapes."""


class InsufficientDataError(AecNrError):
    """Raised when a frame-selection mask selects no frame for some bins."""

    def __init__(self, message: str, bins: Iterable[int] = ()) -> None:
        super().__init__(message)
        self.bins = tuple(int(b) for b in bins)


class SingularityError(AecNrError):
    """Raised when a correlation matrix cannot be factorized in one bin."""

    def __init__(self, message: str, bin_index: int | None = None) -> None:
        super().__init__(message)
        self.bin_index = bin_index


class NumericalInstabilityError(AecNrError):
    """Raised when a matrix pair is not jointly positive (semi-)definite."""

    def __init__(self, message: str, bin_index: int | None = None) -> None:
        super().__init__(message)
        self.bin_index = bin_index
