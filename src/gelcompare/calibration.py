from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy import stats

from .errors import InsufficientCalibrationData
from .records import LadderEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationModel:
    """Straight line ``size = intercept + slope * position`` fitted to a ladder.

    Gel migration is often closer to log-linear in size; the linear form is
    kept deliberately and extrapolation beyond the ladder range is allowed.
    """

    intercept: float
    slope: float
    r_squared: float
    residual_std: float
    n_points: int
    position_min: float
    position_max: float

    def predict(self, positions: Sequence[float] | np.ndarray) -> np.ndarray:
        x = np.asarray(positions, dtype=float)
        return self.intercept + self.slope * x

    def n_extrapolated(self, positions: Sequence[float] | np.ndarray) -> int:
        x = np.asarray(positions, dtype=float)
        return int(np.count_nonzero((x < self.position_min) | (x > self.position_max)))

    def to_dict(self) -> dict[str, object]:
        return {
            "intercept": self.intercept,
            "slope": self.slope,
            "r_squared": self.r_squared,
            "residual_std": self.residual_std,
            "n_points": self.n_points,
            "position_min": self.position_min,
            "position_max": self.position_max,
        }


def fit_calibration(
    known_sizes: Sequence[float] | np.ndarray,
    known_positions: Sequence[float] | np.ndarray,
) -> CalibrationModel:
    """Ordinary least-squares fit of known size against migration position."""
    y = np.asarray(known_sizes, dtype=float)
    x = np.asarray(known_positions, dtype=float)
    if y.ndim != 1 or x.ndim != 1:
        raise InsufficientCalibrationData("known sizes and positions must be 1D.")
    if y.size != x.size:
        raise InsufficientCalibrationData(
            f"got {y.size} sizes but {x.size} positions."
        )
    if x.size < 2:
        raise InsufficientCalibrationData(
            f"at least 2 ladder points are required, got {x.size}."
        )
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InsufficientCalibrationData("ladder values must be finite.")
    if np.ptp(x) == 0:
        raise InsufficientCalibrationData(
            "all ladder positions are identical; slope is undefined."
        )

    fit = stats.linregress(x, y)
    fitted = fit.intercept + fit.slope * x
    n = int(x.size)
    ss_res = float(np.sum((y - fitted) ** 2))
    residual_std = float(np.sqrt(ss_res / (n - 2))) if n > 2 else 0.0
    model = CalibrationModel(
        intercept=float(fit.intercept),
        slope=float(fit.slope),
        r_squared=float(fit.rvalue**2),
        residual_std=residual_std,
        n_points=n,
        position_min=float(np.min(x)),
        position_max=float(np.max(x)),
    )
    logger.debug(
        "calibration fit: size = %.6g + %.6g * Rf (n=%d, r2=%.4f)",
        model.intercept,
        model.slope,
        model.n_points,
        model.r_squared,
    )
    return model


def fit_ladder(entries: Sequence[LadderEntry]) -> CalibrationModel:
    return fit_calibration(
        [entry.known_size for entry in entries],
        [entry.migration_distance for entry in entries],
    )
