from datetime import datetime

import pytest

from clinic.analytics.trends import (
    CompareMode,
    ProgressTrend,
    TrendDirection,
    compare_metrics,
    comparison_window,
    split_half_trend,
    trend_from_buckets,
    two_point_trend,
)


@pytest.mark.parametrize(
    "values,direction,pct",
    [
        ([10, 20], TrendDirection.INCREASING, 100.0),
        ([10, 10], TrendDirection.STABLE, 0.0),
        ([20, 5, 10], TrendDirection.DECREASING, 50.0),
        ([10, 10.4], TrendDirection.STABLE, pytest.approx(4.0)),
        ([0, 5], TrendDirection.STABLE, 0.0),
        ([7], TrendDirection.STABLE, 0.0),
        ([], TrendDirection.STABLE, 0.0),
    ],
)
def test_two_point_trend(values, direction, pct):
    trend = two_point_trend(values)
    assert trend.direction is direction
    assert trend.percentage == pct


def test_trend_from_buckets_uses_bucket_sizes():
    buckets = {"2026-02": [1, 2, 3, 4], "2026-01": [1, 2]}
    assert trend_from_buckets(buckets).as_dict() == {
        "direction": "increasing",
        "percentage": 100.0,
    }


def test_split_half_trend():
    assert split_half_trend([40, 42, 50, 55]) is ProgressTrend.IMPROVING
    assert split_half_trend([60, 60, 50, 48]) is ProgressTrend.DECLINING
    assert split_half_trend([50, 52, 51]) is ProgressTrend.STABLE
    assert split_half_trend([50]) is ProgressTrend.INSUFFICIENT_DATA


def test_compare_metrics():
    result = compare_metrics({"a": 10, "c": 1}, {"a": 8, "c": 2}, ["a", "b", "c"])

    assert result["a"]["change"] == 2
    assert result["a"]["percentage_change"] == 25.0
    assert result["a"]["direction"] == "increase"
    assert result["b"] == {
        "current": 0,
        "comparison": 0,
        "change": 0,
        "percentage_change": 0.0,
        "direction": "stable",
    }
    assert result["c"]["direction"] == "decrease"


def test_comparison_window_previous_period():
    start, end = datetime(2026, 3, 1), datetime(2026, 3, 31)
    prev = comparison_window(start, end, CompareMode.PREVIOUS_PERIOD)
    assert prev == (datetime(2026, 1, 30), datetime(2026, 3, 1))


def test_comparison_window_last_year_handles_leap_day():
    start, end = datetime(2028, 2, 29), datetime(2028, 3, 10)
    prev = comparison_window(start, end, "same-period-last-year")
    assert prev == (datetime(2027, 2, 28), datetime(2027, 3, 10))
