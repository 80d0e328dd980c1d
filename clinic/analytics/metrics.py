"""Counting reducers shared by every analytics report.

All of them are total functions: an empty or sparse input gives zero-valued
results, never an exception.
"""

from __future__ import annotations

import statistics
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

PROGRESS_BANDS: tuple[tuple[str, float, float], ...] = (
    ("0-20", 0, 20),
    ("21-40", 20, 40),
    ("41-60", 40, 60),
    ("61-80", 60, 80),
    ("81-100", 80, 100),
)


def percentage(count: float, total: float) -> float:
    if not total:
        return 0.0
    return count / total * 100


def _read(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def _label(value: Any) -> Any:
    return getattr(value, "value", value)


@dataclass
class MetricAccumulator:
    """Session outcome counters for one bucket (or one filter dimension)."""

    total: int = 0
    completed: int = 0
    cancelled: int = 0
    no_show: int = 0
    rescheduled: int = 0

    _FIELDS = {
        "COMPLETED": "completed",
        "CANCELLED": "cancelled",
        "NO_SHOW": "no_show",
        "RESCHEDULE_REQUESTED": "rescheduled",
    }

    def add(self, status: Any) -> None:
        self.total += 1
        attr = self._FIELDS.get(str(_label(status)).upper())
        if attr:
            setattr(self, attr, getattr(self, attr) + 1)

    def merge(self, other: MetricAccumulator) -> None:
        self.total += other.total
        self.completed += other.completed
        self.cancelled += other.cancelled
        self.no_show += other.no_show
        self.rescheduled += other.rescheduled

    @property
    def completion_rate(self) -> float:
        return percentage(self.completed, self.total)

    @property
    def cancellation_rate(self) -> float:
        return percentage(self.cancelled, self.total)

    @property
    def no_show_rate(self) -> float:
        return percentage(self.no_show, self.total)

    @property
    def reschedule_rate(self) -> float:
        return percentage(self.rescheduled, self.total)

    def as_dict(self) -> dict[str, float]:
        return {
            "total_sessions": self.total,
            "completed_sessions": self.completed,
            "cancelled_sessions": self.cancelled,
            "no_show_sessions": self.no_show,
            "rescheduled_sessions": self.rescheduled,
            "completion_rate": self.completion_rate,
            "cancellation_rate": self.cancellation_rate,
            "no_show_rate": self.no_show_rate,
            "reschedule_rate": self.reschedule_rate,
        }


def accumulate(records: Iterable[Any], field_name: str = "status") -> MetricAccumulator:
    acc = MetricAccumulator()
    for record in records:
        acc.add(_read(record, field_name))
    return acc


@dataclass
class CategoricalRates:
    total: int = 0
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def rates(self) -> dict[str, float]:
        return {k: percentage(v, self.total) for k, v in self.counts.items()}

    def as_dict(self) -> dict[str, Any]:
        return {"total": self.total, "counts": dict(self.counts), "rates": self.rates}


def categorical_rates(
    records: Iterable[Any],
    field_name: str,
    categories: Iterable[Any] | None = None,
    *,
    skip_missing: bool = False,
) -> CategoricalRates:
    """Count of each value of ``field_name`` and its share of the total.

    ``categories`` are always reported, with 0 when absent. Records whose value
    is None are counted under "UNKNOWN" unless ``skip_missing`` is set, in
    which case they are left out of the total as well.
    """
    result = CategoricalRates(counts={str(_label(c)): 0 for c in categories or ()})
    for record in records:
        value = _read(record, field_name)
        if value is None:
            if skip_missing:
                continue
            value = "UNKNOWN"
        k = str(_label(value))
        result.counts[k] = result.counts.get(k, 0) + 1
        result.total += 1
    return result


def mean_or_zero(values: Iterable[float]) -> float:
    vals = list(values)
    return sum(vals) / len(vals) if vals else 0.0


def average_of_fields(
    records: Iterable[Any], fields: Sequence[str]
) -> dict[str, float | None]:
    """Mean of each numeric field over the records where it is present."""
    sums = {f: 0.0 for f in fields}
    counts = {f: 0 for f in fields}
    for record in records:
        for f in fields:
            value = _read(record, f)
            if isinstance(value, bool) or not isinstance(value, int | float):
                continue
            sums[f] += value
            counts[f] += 1
    return {f: (sums[f] / counts[f] if counts[f] else None) for f in fields}


def describe(values: Iterable[float]) -> dict[str, float]:
    vals = sorted(values)
    if not vals:
        return {
            "count": 0,
            "mean": 0.0,
            "median": 0.0,
            "min": 0.0,
            "max": 0.0,
            "std_dev": 0.0,
        }
    return {
        "count": len(vals),
        "mean": statistics.fmean(vals),
        "median": statistics.median(vals),
        "min": vals[0],
        "max": vals[-1],
        "std_dev": statistics.pstdev(vals),
    }


def band_distribution(
    values: Iterable[float],
    bands: Sequence[tuple[str, float, float]] = PROGRESS_BANDS,
) -> dict[str, int]:
    """Band membership is (low, high], the first band also taking its lower bound."""
    dist = {label: 0 for label, _lo, _hi in bands}
    for value in values:
        for i, (label, lo, hi) in enumerate(bands):
            if value <= hi and (value > lo or i == 0):
                dist[label] += 1
                break
        else:
            dist[bands[-1][0]] += 1
    return dist
