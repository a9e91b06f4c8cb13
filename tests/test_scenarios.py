import pytest

from gelcompare.records import ComparisonScenario, FragmentRecord
from gelcompare.scenarios import STATUS_FAILED, STATUS_OK, STATUS_UNDEFINED, run_scenarios


def _rows(label: str, sizes: list[float], lane: int = 2) -> list[FragmentRecord]:
    return [
        FragmentRecord(
            lane=lane,
            band=i + 1,
            sample_label=label,
            migration_distance=0.5,
            raw_volume=1.0,
            calibrated_volume=1.0,
            fragment_size=size,
        )
        for i, size in enumerate(sizes)
    ]


def _tables() -> tuple[list[FragmentRecord], list[FragmentRecord]]:
    reference = _rows("R1", [10.0, 12.0, 11.0, 13.0]) + _rows("R2", [5.0, 5.0, 5.0, 5.0], lane=3)
    sample = (
        _rows("S1", [20.0, 22.0, 21.0, 23.0])
        + _rows("S2", [5.0, 5.0, 5.0, 5.0], lane=3)
        + _rows("S3", [11.0], lane=4)
    )
    return reference, sample


def test_results_follow_scenario_order_and_failures_are_isolated() -> None:
    reference, sample = _tables()
    scenarios = [
        ComparisonScenario("R1", "S1"),
        ComparisonScenario("R1", "missing"),
        ComparisonScenario("R2", "S2"),
        ComparisonScenario("absent", "S1"),
    ]
    run = run_scenarios(scenarios, reference, sample)
    assert [r.scenario.key for r in run.results] == [("R1", "S1"), ("R2", "S2")]
    assert [f.scenario.key for f in run.failures] == [("R1", "missing"), ("absent", "S1")]
    assert all(f.status == STATUS_FAILED for f in run.failures)
    assert "missing" in run.failures[0].reason

    by_key = run.by_key()
    assert by_key[("R1", "S1")].p_value < 0.05
    assert by_key[("R2", "S2")].p_value == 1.0
    assert run.status_of(scenarios[1]) == STATUS_FAILED
    assert run.status_of(scenarios[2]) == STATUS_OK


def test_dense_p_value_vector_keeps_keys() -> None:
    reference, sample = _tables()
    scenarios = [
        ComparisonScenario("R2", "S2"),
        ComparisonScenario("R1", "nope"),
        ComparisonScenario("R1", "S1"),
    ]
    keys, p_values = run_scenarios(scenarios, reference, sample).p_values()
    assert keys == [("R2", "S2"), ("R1", "S1")]
    assert p_values[0] == 1.0
    assert p_values[1] < 0.05


def test_undefined_comparison_is_kept_but_not_testable() -> None:
    reference = _rows("R", [10.0])
    sample = _rows("S", [12.0])
    run = run_scenarios([ComparisonScenario("R", "S")], reference, sample)
    assert run.results[0].status == STATUS_UNDEFINED
    assert run.testable() == []
    assert run.p_values() == ([], [])


def test_matching_scores_are_attached_per_scenario() -> None:
    reference, sample = _tables()
    run = run_scenarios([ComparisonScenario("R2", "S2")], reference, sample)
    matches = run.results[0].matches
    assert matches is not None
    assert [(m.lane, m.band) for m in matches] == [(3, 1), (3, 2), (3, 3), (3, 4)]
    assert all(m.matching_score == 0.0 for m in matches)

    run = run_scenarios(
        [ComparisonScenario("R1", "S1")], reference, sample, score_matches_enabled=False
    )
    assert run.results[0].matches is None


def test_duplicate_join_key_does_not_fail_the_comparison() -> None:
    reference = _rows("R", [10.0, 11.0])
    sample = _rows("S", [12.0, 13.0]) + _rows("S", [14.0])
    run = run_scenarios([ComparisonScenario("R", "S")], reference, sample)
    result = run.results[0]
    assert result.status == STATUS_OK
    assert result.matches is None
    assert result.matching_error is not None and "lane=2" in result.matching_error


def test_duplicate_scenarios_are_rejected() -> None:
    reference, sample = _tables()
    with pytest.raises(ValueError, match="Duplicate scenario"):
        run_scenarios(
            [ComparisonScenario("R1", "S1"), ComparisonScenario("R1", "S1")], reference, sample
        )


def test_rerun_is_identical() -> None:
    reference, sample = _tables()
    scenarios = [ComparisonScenario("R1", "S1"), ComparisonScenario("R2", "S2")]
    first = run_scenarios(scenarios, reference, sample)
    second = run_scenarios(scenarios, reference, sample)
    assert [r.to_dict() for r in first.results] == [r.to_dict() for r in second.results]
