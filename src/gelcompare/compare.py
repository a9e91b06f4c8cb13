from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np
from scipy import stats

from .errors import EmptyComparisonGroup


@dataclass(frozen=True)
class AnovaTable:
    ss_between: float
    ss_within: float
    df_between: int
    df_within: int
    f_statistic: float
    p_value: float
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ComparisonResult:
    p_value: float
    test_statistic: float
    df_between: int
    df_within: int
    mean_a: float
    mean_b: float
    mean_difference: float
    confidence_interval: tuple[float, float]
    confidence: float
    n_a: int
    n_b: int
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "p_value": self.p_value,
            "test_statistic": self.test_statistic,
            "df_between": self.df_between,
            "df_within": self.df_within,
            "mean_a": self.mean_a,
            "mean_b": self.mean_b,
            "mean_difference": self.mean_difference,
            "ci_low": self.confidence_interval[0],
            "ci_high": self.confidence_interval[1],
            "confidence": self.confidence,
            "n_a": self.n_a,
            "n_b": self.n_b,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class TukeyComparison:
    label_a: str
    label_b: str
    mean_difference: float
    p_value: float
    ci_low: float
    ci_high: float

    def to_dict(self) -> dict[str, object]:
        return {
            "label_a": self.label_a,
            "label_b": self.label_b,
            "mean_difference": self.mean_difference,
            "p_value": self.p_value,
            "ci_low": self.ci_low,
            "ci_high": self.ci_high,
        }


def _check_confidence(confidence: float) -> None:
    if not (0.0 < confidence < 1.0):
        raise ValueError("confidence must be in (0, 1).")


def one_way_anova(*groups: Sequence[float] | np.ndarray) -> AnovaTable:
    """One-way ANOVA over two or more groups.

    Zero within-group variance is resolved explicitly instead of producing
    0/0: identical group means give F=0 and p=1, distinct means give F=inf
    and p=0.
    """
    if len(groups) < 2:
        raise ValueError("ANOVA requires at least two groups.")
    arrays = [np.asarray(g, dtype=float) for g in groups]
    for idx, arr in enumerate(arrays):
        if arr.size == 0:
            raise EmptyComparisonGroup(f"group {idx} has no values.")

    k = len(arrays)
    pooled = np.concatenate(arrays)
    n_total = int(pooled.size)
    grand_mean = float(np.mean(pooled))
    # constant groups are detected by range so rounding in the means cannot fake variance
    ss_between = (
        0.0
        if np.ptp(pooled) == 0
        else float(sum(arr.size * (arr.mean() - grand_mean) ** 2 for arr in arrays))
    )
    ss_within = float(
        sum(0.0 if np.ptp(arr) == 0 else np.sum((arr - arr.mean()) ** 2) for arr in arrays)
    )
    df_between = k - 1
    df_within = n_total - k

    warnings: list[str] = []
    if df_within == 0:
        warnings.append("No within-group degrees of freedom; F and p are undefined.")
        f_stat = float("nan")
        p_value = float("nan")
    elif ss_within == 0.0:
        if ss_between == 0.0:
            warnings.append("All values identical; F set to 0 and p to 1.")
            f_stat = 0.0
            p_value = 1.0
        else:
            warnings.append("Zero within-group variance with distinct means; F set to inf.")
            f_stat = float("inf")
            p_value = 0.0
    else:
        f_stat = (ss_between / df_between) / (ss_within / df_within)
        p_value = float(stats.f.sf(f_stat, df_between, df_within))

    return AnovaTable(
        ss_between=ss_between,
        ss_within=ss_within,
        df_between=df_between,
        df_within=df_within,
        f_statistic=float(f_stat),
        p_value=float(p_value),
        warnings=tuple(warnings),
    )


def compare_groups(
    group_a: Sequence[float] | np.ndarray,
    group_b: Sequence[float] | np.ndarray,
    *,
    confidence: float = 0.95,
) -> ComparisonResult:
    """Compare two fragment-size groups by one-way ANOVA.

    The confidence interval is the pooled-variance t interval for
    ``mean(group_a) - mean(group_b)``.
    """
    _check_confidence(confidence)
    a = np.asarray(group_a, dtype=float)
    b = np.asarray(group_b, dtype=float)
    if a.size == 0:
        raise EmptyComparisonGroup("reference group has no fragment sizes.")
    if b.size == 0:
        raise EmptyComparisonGroup("sample group has no fragment sizes.")

    table = one_way_anova(a, b)
    mean_a = float(a.mean())
    mean_b = float(b.mean())
    diff = mean_a - mean_b
    if table.df_within > 0:
        msw = table.ss_within / table.df_within
        se = math.sqrt(msw * (1.0 / a.size + 1.0 / b.size))
        t_crit = float(stats.t.ppf((1.0 + confidence) / 2.0, table.df_within))
        ci = (diff - t_crit * se, diff + t_crit * se)
    else:
        ci = (float("nan"), float("nan"))

    return ComparisonResult(
        p_value=table.p_value,
        test_statistic=table.f_statistic,
        df_between=table.df_between,
        df_within=table.df_within,
        mean_a=mean_a,
        mean_b=mean_b,
        mean_difference=diff,
        confidence_interval=(float(ci[0]), float(ci[1])),
        confidence=confidence,
        n_a=int(a.size),
        n_b=int(b.size),
        warnings=table.warnings,
    )


def tukey_posthoc(
    groups: Mapping[str, Sequence[float]],
    *,
    confidence: float = 0.95,
) -> list[TukeyComparison]:
    """Tukey HSD over every unordered pair of labelled groups."""
    _check_confidence(confidence)
    labels = list(groups)
    if len(labels) < 2:
        raise EmptyComparisonGroup("Tukey post-hoc needs at least two groups.")
    arrays = [np.asarray(groups[label], dtype=float) for label in labels]
    small = [label for label, arr in zip(labels, arrays) if arr.size < 2]
    if small:
        raise EmptyComparisonGroup(
            f"Tukey post-hoc needs at least two values per group; too few in: {', '.join(small)}"
        )

    res = stats.tukey_hsd(*arrays)
    ci = res.confidence_interval(confidence_level=confidence)
    out: list[TukeyComparison] = []
    for i in range(len(labels)):
        for j in range(i + 1, len(labels)):
            out.append(
                TukeyComparison(
                    label_a=labels[i],
                    label_b=labels[j],
                    mean_difference=float(res.statistic[i, j]),
                    p_value=float(res.pvalue[i, j]),
                    ci_low=float(ci.low[i, j]),
                    ci_high=float(ci.high[i, j]),
                )
            )
    return out
