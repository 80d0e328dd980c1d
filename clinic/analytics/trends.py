from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any

from clinic.analytics.metrics import mean_or_zero

TREND_THRESHOLD = 5.0


class TrendDirection(str, enum.Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ProgressTrend(str, enum.Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class CompareMode(str, enum.Enum):
    PREVIOUS_PERIOD = "previous-period"
    SAME_PERIOD_LAST_YEAR = "same-period-last-year"


@dataclass(frozen=True)
class Trend:
    direction: TrendDirection
    percentage: float

    def as_dict(self) -> dict[str, Any]:
        return {"direction": self.direction.value, "percentage": self.percentage}


def two_point_trend(values: Sequence[float]) -> Trend:
    """Compares only the first and last value; this is not a fitted trend line."""
    if len(values) < 2:
        return Trend(TrendDirection.STABLE, 0.0)
    first, last = values[0], values[-1]
    change = (last - first) / first * 100 if first > 0 else 0.0
    if change > TREND_THRESHOLD:
        direction = TrendDirection.INCREASING
    elif change < -TREND_THRESHOLD:
        direction = TrendDirection.DECREASING
    else:
        direction = TrendDirection.STABLE
    return Trend(direction, abs(change))


def trend_from_buckets(buckets: Mapping[str, Sequence[Any]]) -> Trend:
    ordered = [len(buckets[k]) for k in sorted(buckets)]
    return two_point_trend(ordered)


def split_half_trend(values: Sequence[float]) -> ProgressTrend:
    """Mean of the later half against the earlier half, ±5 points."""
    if len(values) < 2:
        return ProgressTrend.INSUFFICIENT_DATA
    mid = len(values) // 2
    change = mean_or_zero(values[mid:]) - mean_or_zero(values[:mid])
    if change > TREND_THRESHOLD:
        return ProgressTrend.IMPROVING
    if change < -TREND_THRESHOLD:
        return ProgressTrend.DECLINING
    return ProgressTrend.STABLE


@dataclass(frozen=True)
class MetricChange:
    current: float
    comparison: float
    change: float
    percentage_change: float
    direction: str


def compare_metrics(
    current: Mapping[str, float],
    previous: Mapping[str, float],
    names: Sequence[str],
) -> dict[str, dict[str, Any]]:
    result: dict[str, dict[str, Any]] = {}
    for name in names:
        cur = current.get(name) or 0
        prev = previous.get(name) or 0
        change = cur - prev
        if change > 0:
            direction = "increase"
        elif change < 0:
            direction = "decrease"
        else:
            direction = "stable"
        result[name] = asdict(
            MetricChange(
                current=cur,
                comparison=prev,
                change=change,
                percentage_change=change / prev * 100 if prev > 0 else 0.0,
                direction=direction,
            )
        )
    return result


def _minus_one_year(d: date) -> date:
    try:
        return d.replace(year=d.year - 1)
    except ValueError:  # Feb 29
        return d.replace(year=d.year - 1, day=28)


def comparison_window(
    start: datetime, end: datetime, mode: CompareMode | str
) -> tuple[datetime, datetime]:
    mode = CompareMode(mode)
    if mode is CompareMode.SAME_PERIOD_LAST_YEAR:
        return (
            datetime.combine(_minus_one_year(start.date()), start.timetz()),
            datetime.combine(_minus_one_year(end.date()), end.timetz()),
        )
    length: timedelta = end - start
    return start - length, end - length
