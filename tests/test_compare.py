import math

import numpy as np
import pytest
from scipy import stats

from gelcompare.compare import compare_groups, one_way_anova, tukey_posthoc
from gelcompare.errors import EmptyComparisonGroup


def test_separated_groups_are_highly_significant() -> None:
    a = [10.0, 12.0, 11.0, 13.0]
    b = [20.0, 22.0, 21.0, 23.0]
    result = compare_groups(a, b)
    assert result.p_value < 1e-4
    assert result.test_statistic == pytest.approx(120.0)
    assert result.df_between == 1
    assert result.df_within == 6
    assert result.mean_difference == pytest.approx(-10.0)
    low, high = result.confidence_interval
    assert low < high < 0.0
    half = stats.t.ppf(0.975, 6) * math.sqrt((10.0 / 6.0) * 0.5)
    assert low == pytest.approx(-10.0 - half)
    assert high == pytest.approx(-10.0 + half)


def test_matches_scipy_f_oneway() -> None:
    a = [101.0, 98.5, 103.2, 99.9, 100.4]
    b = [104.1, 102.8, 106.0]
    ref = stats.f_oneway(a, b)
    result = compare_groups(a, b)
    assert result.test_statistic == pytest.approx(float(ref.statistic))
    assert result.p_value == pytest.approx(float(ref.pvalue))


def test_identical_constant_groups_give_p_one() -> None:
    result = compare_groups([5.0, 5.0, 5.0, 5.0], [5.0, 5.0, 5.0, 5.0])
    assert result.p_value == 1.0
    assert result.test_statistic == 0.0
    assert result.confidence_interval == (0.0, 0.0)
    assert result.warnings


def test_constant_groups_with_distinct_means_give_p_zero() -> None:
    result = compare_groups([5.0, 5.0], [7.0, 7.0])
    assert result.p_value == 0.0
    assert math.isinf(result.test_statistic)


def test_single_observations_are_undefined_not_an_error() -> None:
    result = compare_groups([5.0], [7.0])
    assert math.isnan(result.p_value)
    assert result.df_within == 0
    assert all(math.isnan(x) for x in result.confidence_interval)


@pytest.mark.parametrize(("a", "b"), [([], [1.0]), ([1.0], []), ([], [])])
def test_empty_group_raises(a: list[float], b: list[float]) -> None:
    with pytest.raises(EmptyComparisonGroup):
        compare_groups(a, b)


def test_comparison_is_deterministic() -> None:
    a = np.array([3.2, 4.1, 3.9, 4.4])
    b = np.array([4.0, 4.6, 5.1])
    assert compare_groups(a, b) == compare_groups(a, b)


def test_one_way_anova_three_groups_matches_scipy() -> None:
    groups = ([1.0, 2.0, 3.0], [2.0, 3.0, 4.5], [5.0, 6.0, 6.5, 7.0])
    table = one_way_anova(*groups)
    ref = stats.f_oneway(*groups)
    assert table.df_between == 2
    assert table.df_within == 7
    assert table.f_statistic == pytest.approx(float(ref.statistic))
    assert table.p_value == pytest.approx(float(ref.pvalue))


def test_tukey_posthoc_pairs_in_label_order() -> None:
    groups = {
        "A": [10.0, 11.0, 12.0, 11.5],
        "B": [10.5, 11.2, 11.8, 12.1],
        "C": [20.0, 21.0, 22.0, 21.5],
    }
    rows = tukey_posthoc(groups)
    assert [(r.label_a, r.label_b) for r in rows] == [("A", "B"), ("A", "C"), ("B", "C")]
    by_pair = {(r.label_a, r.label_b): r for r in rows}
    assert by_pair[("A", "C")].p_value < 0.001
    assert by_pair[("A", "B")].p_value > 0.05
    assert by_pair[("A", "C")].mean_difference == pytest.approx(11.125 - 21.125)
    assert by_pair[("A", "C")].ci_low < by_pair[("A", "C")].ci_high < 0.0


def test_tukey_posthoc_requires_two_groups_with_replicates() -> None:
    with pytest.raises(EmptyComparisonGroup):
        tukey_posthoc({"A": [1.0, 2.0]})
    with pytest.raises(EmptyComparisonGroup, match="B"):
        tukey_posthoc({"A": [1.0, 2.0], "B": [3.0]})
