"""Exceptions raised by the gel comparison core."""

from __future__ import annotations


class GelCompareError(ValueError):
    """Base class for structural and per-scenario analysis errors."""

    error_code = "GC_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.error_code}: {message}")


class InsufficientCalibrationData(GelCompareError):
    """Raised when a calibration line cannot be fitted from the ladder."""

    error_code = "GC_CALIBRATION_DATA"


class MissingLadderLane(GelCompareError):
    """Raised when no ladder row carries the designated ladder lane."""

    error_code = "GC_LADDER_LANE"


class EmptyComparisonGroup(GelCompareError):
    """Raised when a comparison group has no fragment sizes."""

    error_code = "GC_EMPTY_GROUP"


class EmptyInput(GelCompareError):
    """Raised when p-value correction receives an empty vector."""

    error_code = "GC_EMPTY_INPUT"


class DuplicateJoinKey(GelCompareError):
    """Raised when a (lane, band) key occurs more than once on one side of a join."""

    error_code = "GC_DUPLICATE_KEY"
