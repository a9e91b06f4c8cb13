from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

from .compare import compare_groups
from .errors import DuplicateJoinKey, EmptyComparisonGroup
from .matching import matching_summary, score_matches
from .records import ComparisonScenario, FragmentRecord, MatchingScoreRecord, fragment_sizes

logger = logging.getLogger(__name__)

STATUS_OK = "OK"
STATUS_UNDEFINED = "UNDEFINED"
STATUS_FAILED = "FAILED"


@dataclass
class ScenarioResult:
    scenario: ComparisonScenario
    p_value: float
    test_statistic: float
    confidence_interval: tuple[float, float]
    mean_difference: float
    n_reference: int
    n_sample: int
    status: str = STATUS_OK
    matches: list[MatchingScoreRecord] | None = None
    matching_error: str | None = None
    adjusted: dict[str, float] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    @property
    def testable(self) -> bool:
        return self.status == STATUS_OK and not math.isnan(self.p_value)

    def to_dict(self) -> dict[str, object]:
        summary = matching_summary(self.matches) if self.matches is not None else None
        return {
            "reference_label": self.scenario.reference_label,
            "sample_label": self.scenario.sample_label,
            "status": self.status,
            "p_value": self.p_value,
            "test_statistic": self.test_statistic,
            "ci_low": self.confidence_interval[0],
            "ci_high": self.confidence_interval[1],
            "mean_difference": self.mean_difference,
            "n_reference": self.n_reference,
            "n_sample": self.n_sample,
            "adjusted": dict(self.adjusted),
            "matching": summary,
            "matching_error": self.matching_error,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class ScenarioFailure:
    scenario: ComparisonScenario
    reason: str
    status: str = STATUS_FAILED

    def to_dict(self) -> dict[str, object]:
        return {
            "reference_label": self.scenario.reference_label,
            "sample_label": self.scenario.sample_label,
            "status": self.status,
            "reason": self.reason,
        }


@dataclass
class ScenarioRun:
    scenarios: tuple[ComparisonScenario, ...]
    results: list[ScenarioResult]
    failures: list[ScenarioFailure]

    def by_key(self) -> dict[tuple[str, str], ScenarioResult]:
        return {result.scenario.key: result for result in self.results}

    def testable(self) -> list[ScenarioResult]:
        return [result for result in self.results if result.testable]

    def p_values(self) -> tuple[list[tuple[str, str]], list[float]]:
        """Dense p-value vector of testable results, in scenario order, with keys."""
        rows = self.testable()
        return [r.scenario.key for r in rows], [r.p_value for r in rows]

    def status_of(self, scenario: ComparisonScenario) -> str:
        for result in self.results:
            if result.scenario == scenario:
                return result.status
        for failure in self.failures:
            if failure.scenario == scenario:
                return failure.status
        raise KeyError(scenario.key)


def _check_unique(scenarios: Sequence[ComparisonScenario]) -> None:
    seen: set[tuple[str, str]] = set()
    for scenario in scenarios:
        if scenario.key in seen:
            raise ValueError(
                f"Duplicate scenario: reference={scenario.reference_label} "
                f"sample={scenario.sample_label}"
            )
        seen.add(scenario.key)


def _filter(records: Sequence[FragmentRecord], label: str) -> list[FragmentRecord]:
    return [record for record in records if record.sample_label == label]


def run_scenarios(
    scenarios: Sequence[ComparisonScenario],
    reference: Sequence[FragmentRecord],
    sample: Sequence[FragmentRecord],
    *,
    confidence: float = 0.95,
    score_matches_enabled: bool = True,
) -> ScenarioRun:
    """Compare reference and sample fragment sizes for every scenario.

    A scenario whose reference or sample subset is empty is recorded as a
    failure and the remaining scenarios still run.
    """
    _check_unique(scenarios)
    results: list[ScenarioResult] = []
    failures: list[ScenarioFailure] = []

    for scenario in scenarios:
        ref_rows = _filter(reference, scenario.reference_label)
        sample_rows = _filter(sample, scenario.sample_label)
        try:
            if not ref_rows:
                raise EmptyComparisonGroup(
                    f"no reference rows labelled '{scenario.reference_label}'."
                )
            if not sample_rows:
                raise EmptyComparisonGroup(
                    f"no sample rows labelled '{scenario.sample_label}'."
                )
            comparison = compare_groups(
                fragment_sizes(ref_rows),
                fragment_sizes(sample_rows),
                confidence=confidence,
            )
        except EmptyComparisonGroup as exc:
            logger.warning(
                "scenario %s vs %s failed: %s",
                scenario.reference_label,
                scenario.sample_label,
                exc,
            )
            failures.append(ScenarioFailure(scenario=scenario, reason=str(exc)))
            continue

        status = STATUS_UNDEFINED if math.isnan(comparison.p_value) else STATUS_OK
        result = ScenarioResult(
            scenario=scenario,
            p_value=comparison.p_value,
            test_statistic=comparison.test_statistic,
            confidence_interval=comparison.confidence_interval,
            mean_difference=comparison.mean_difference,
            n_reference=comparison.n_a,
            n_sample=comparison.n_b,
            status=status,
            warnings=comparison.warnings,
        )
        if score_matches_enabled:
            try:
                result.matches = score_matches(ref_rows, sample_rows)
            except DuplicateJoinKey as exc:
                result.matching_error = str(exc)
                logger.warning(
                    "matching skipped for %s vs %s: %s",
                    scenario.reference_label,
                    scenario.sample_label,
                    exc,
                )
        results.append(result)

    logger.info(
        "ran %d scenarios: %d ok, %d undefined, %d failed",
        len(scenarios),
        sum(1 for r in results if r.status == STATUS_OK),
        sum(1 for r in results if r.status == STATUS_UNDEFINED),
        len(failures),
    )
    return ScenarioRun(scenarios=tuple(scenarios), results=results, failures=failures)
