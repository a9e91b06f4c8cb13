from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from statsmodels.stats.multitest import multipletests

from .errors import EmptyInput
from .scenarios import ScenarioRun

logger = logging.getLogger(__name__)

# canonical name -> statsmodels method
CORRECTION_METHODS: dict[str, str] = {
    "bonferroni": "bonferroni",
    "holm": "holm",
    "hochberg": "simes-hochberg",
    "hommel": "hommel",
    "BH": "fdr_bh",
    "BY": "fdr_by",
}

_ALIASES: dict[str, str] = {
    "bonferroni": "bonferroni",
    "holm": "holm",
    "holm-bonferroni": "holm",
    "hochberg": "hochberg",
    "simes-hochberg": "hochberg",
    "hommel": "hommel",
    "bh": "BH",
    "fdr": "BH",
    "fdr-bh": "BH",
    "benjamini-hochberg": "BH",
    "by": "BY",
    "fdr-by": "BY",
    "benjamini-yekutieli": "BY",
}


@dataclass(frozen=True)
class CorrectionResult:
    method: str
    keys: tuple[tuple[str, str], ...]
    raw: tuple[float, ...]
    adjusted: tuple[float, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "method": self.method,
            "rows": [
                {
                    "reference_label": key[0],
                    "sample_label": key[1],
                    "p_value": p,
                    "p_adjusted": q,
                }
                for key, p, q in zip(self.keys, self.raw, self.adjusted)
            ],
        }


def canonical_method(method: str) -> str:
    name = _ALIASES.get(str(method).strip().lower().replace("_", "-"))
    if name is None:
        raise ValueError(
            f"Unsupported correction method: {method}. "
            f"Choose from {', '.join(CORRECTION_METHODS)}."
        )
    return name


def adjust_p_values(p_values: Sequence[float] | np.ndarray, method: str = "BH") -> np.ndarray:
    """Adjust p-values for multiple testing; output keeps input length and order."""
    name = canonical_method(method)
    p = np.asarray(p_values, dtype=float)
    if p.ndim != 1:
        raise ValueError("p_values must be a 1D sequence.")
    if p.size == 0:
        raise EmptyInput("cannot adjust an empty p-value vector.")
    if np.any(np.isnan(p)):
        raise ValueError("p_values must not contain NaN.")
    if np.any((p < 0.0) | (p > 1.0)):
        raise ValueError("p_values must lie in [0, 1].")

    _, adjusted, _, _ = multipletests(p, method=CORRECTION_METHODS[name])
    return np.clip(np.asarray(adjusted, dtype=float), 0.0, 1.0)


def correct_run(run: ScenarioRun, methods: Sequence[str]) -> list[CorrectionResult]:
    """Adjust the run's dense p-value vector once per method and attach the values.

    Failed and undefined scenarios are left out of the vector; each adjusted
    value is written back onto the result it was computed from.
    """
    keys, p_values = run.p_values()
    if not p_values:
        logger.warning("no testable scenarios; skipping multiple-testing correction.")
        return []
    lookup = run.by_key()
    out: list[CorrectionResult] = []
    for method in methods:
        name = canonical_method(method)
        adjusted = adjust_p_values(p_values, name)
        for key, value in zip(keys, adjusted):
            lookup[key].adjusted[name] = float(value)
        out.append(
            CorrectionResult(
                method=name,
                keys=tuple(keys),
                raw=tuple(float(p) for p in p_values),
                adjusted=tuple(float(q) for q in adjusted),
            )
        )
        logger.debug("applied %s correction to %d p-values", name, len(p_values))
    return out
