import numpy as np
import pytest

from gelcompare.correction import CORRECTION_METHODS, adjust_p_values, canonical_method, correct_run
from gelcompare.errors import EmptyInput
from gelcompare.records import ComparisonScenario, FragmentRecord
from gelcompare.scenarios import run_scenarios

# Shuffled order checks that adjusted values map back to input positions.
P_RAW = [0.9, 0.011, 0.02]


@pytest.mark.parametrize(
    ("method", "expected"),
    [
        ("bonferroni", [1.0, 0.033, 0.06]),
        ("holm", [0.9, 0.033, 0.04]),
        ("hochberg", [0.9, 0.033, 0.04]),
        ("hommel", [0.9, 0.03, 0.04]),
        ("BH", [0.9, 0.03, 0.03]),
        ("BY", [1.0, 0.055, 0.055]),
    ],
)
def test_reference_values(method: str, expected: list[float]) -> None:
    q = adjust_p_values(P_RAW, method)
    assert np.allclose(q, expected, atol=1e-12)


def test_bonferroni_constant_vector() -> None:
    for n, p0 in [(4, 0.01), (10, 0.2), (3, 0.5)]:
        q = adjust_p_values([p0] * n, "bonferroni")
        assert np.allclose(q, [min(1.0, n * p0)] * n)


def test_simes_line_gives_common_value() -> None:
    p = [0.01, 0.02, 0.03, 0.04, 0.05]
    for method in ("hochberg", "hommel", "BH"):
        assert np.allclose(adjust_p_values(p, method), [0.05] * 5)


def test_bh_known_example() -> None:
    q = adjust_p_values([0.01, 0.02, 0.03, 0.5], "BH")
    assert np.allclose(q, [0.04, 0.04, 0.04, 0.5])
    assert np.all(np.diff(np.sort(q)) >= 0.0)
    assert np.all(q <= 1.0)


@pytest.mark.parametrize("method", list(CORRECTION_METHODS))
def test_adjusted_not_below_raw_and_in_unit_interval(method: str) -> None:
    p = np.asarray([0.2, 0.01, 0.5, 0.001, 0.07, 0.049, 0.99], dtype=float)
    q = adjust_p_values(p, method)
    assert q.shape == p.shape
    assert np.all(q >= p - 1e-15)
    assert np.all((q >= 0.0) & (q <= 1.0))


@pytest.mark.parametrize("method", list(CORRECTION_METHODS))
def test_monotone_in_sorted_p_order(method: str) -> None:
    p = np.asarray([0.12, 0.8, 0.05, 0.01, 0.2, 0.6], dtype=float)
    q = adjust_p_values(p, method)
    order = np.argsort(p)
    assert np.all(np.diff(q[order]) >= -1e-12)


def test_empty_input_raises() -> None:
    with pytest.raises(EmptyInput):
        adjust_p_values([], "BH")


def test_invalid_inputs_raise() -> None:
    with pytest.raises(ValueError, match="Unsupported correction method"):
        adjust_p_values([0.1], "sidak-magic")
    with pytest.raises(ValueError, match=r"\[0, 1\]"):
        adjust_p_values([0.1, 1.5], "BH")
    with pytest.raises(ValueError, match="NaN"):
        adjust_p_values([0.1, float("nan")], "BH")


@pytest.mark.parametrize(
    ("alias", "name"),
    [
        ("fdr_bh", "BH"),
        ("Benjamini-Hochberg", "BH"),
        ("fdr_by", "BY"),
        ("simes-hochberg", "hochberg"),
        ("Holm", "holm"),
        ("HOMMEL", "hommel"),
    ],
)
def test_method_aliases(alias: str, name: str) -> None:
    assert canonical_method(alias) == name


def _rows(label: str, sizes: list[float]) -> list[FragmentRecord]:
    return [
        FragmentRecord(
            lane=2,
            band=i + 1,
            sample_label=label,
            migration_distance=0.5,
            raw_volume=1.0,
            calibrated_volume=1.0,
            fragment_size=s,
        )
        for i, s in enumerate(sizes)
    ]


def test_correct_run_writes_back_by_scenario() -> None:
    reference = _rows("R", [10.0, 12.0, 11.0, 13.0])
    sample = _rows("A", [20.0, 22.0, 21.0, 23.0]) + _rows("B", [10.5, 12.5, 11.0, 12.0])
    scenarios = [
        ComparisonScenario("R", "A"),
        ComparisonScenario("R", "gone"),
        ComparisonScenario("R", "B"),
    ]
    run = run_scenarios(scenarios, reference, sample, score_matches_enabled=False)
    corrections = correct_run(run, ["bonferroni", "fdr_bh"])
    assert [c.method for c in corrections] == ["bonferroni", "BH"]
    assert corrections[0].keys == (("R", "A"), ("R", "B"))

    by_key = run.by_key()
    for key in [("R", "A"), ("R", "B")]:
        result = by_key[key]
        assert result.adjusted["bonferroni"] == pytest.approx(min(1.0, 2 * result.p_value))
        assert result.adjusted["BH"] >= result.p_value


def test_correct_run_without_testable_scenarios_is_empty() -> None:
    run = run_scenarios([ComparisonScenario("R", "S")], _rows("X", [1.0]), _rows("Y", [1.0]))
    assert correct_run(run, ["BH"]) == []
