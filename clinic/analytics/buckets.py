from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Iterator
from datetime import date, datetime, timedelta
from typing import TypeVar
from zoneinfo import ZoneInfo

from clinic.utils.tz import clinic_tz, week_start_day

T = TypeVar("T")


class Granularity(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


def _local_date(moment: date | datetime, tz: ZoneInfo | None) -> date:
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            return moment.astimezone(tz or clinic_tz()).date()
        return moment.date()
    return moment


def period_start(
    day: date, granularity: Granularity, week_start: int | None = None
) -> date:
    """First calendar day of the period containing ``day``."""
    granularity = Granularity(granularity)
    if granularity is Granularity.DAY:
        return day
    if granularity is Granularity.WEEK:
        first = week_start_day() if week_start is None else week_start
        return day - timedelta(days=(day.weekday() - first) % 7)
    if granularity is Granularity.MONTH:
        return day.replace(day=1)
    if granularity is Granularity.QUARTER:
        return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)
    return date(day.year, 1, 1)


def bucket_key(
    moment: date | datetime,
    granularity: Granularity | str,
    *,
    tz: ZoneInfo | None = None,
    week_start: int | None = None,
) -> str:
    """Zero-padded key, so string order equals chronological order.

    Aware datetimes are bucketed on the clinic's local calendar.
    """
    granularity = Granularity(granularity)
    d = _local_date(moment, tz)
    if granularity is Granularity.DAY:
        return d.isoformat()
    if granularity is Granularity.WEEK:
        return period_start(d, granularity, week_start).isoformat()
    if granularity is Granularity.MONTH:
        return f"{d.year:04d}-{d.month:02d}"
    if granularity is Granularity.QUARTER:
        return f"{d.year:04d}-Q{(d.month - 1) // 3 + 1}"
    return f"{d.year:04d}"


def group_by_period(
    records: Iterable[T],
    granularity: Granularity | str,
    *,
    key: Callable[[T], date | datetime],
    tz: ZoneInfo | None = None,
    week_start: int | None = None,
) -> dict[str, list[T]]:
    groups: dict[str, list[T]] = {}
    for record in records:
        k = bucket_key(key(record), granularity, tz=tz, week_start=week_start)
        groups.setdefault(k, []).append(record)
    return {k: groups[k] for k in sorted(groups)}


def _next_period(start: date, granularity: Granularity) -> date:
    if granularity is Granularity.DAY:
        return start + timedelta(days=1)
    if granularity is Granularity.WEEK:
        return start + timedelta(days=7)
    months = {Granularity.MONTH: 1, Granularity.QUARTER: 3, Granularity.YEAR: 12}[
        granularity
    ]
    idx = start.year * 12 + (start.month - 1) + months
    return date(idx // 12, idx % 12 + 1, 1)


def iter_period_keys(
    start: date,
    end: date,
    granularity: Granularity | str,
    *,
    week_start: int | None = None,
) -> Iterator[str]:
    """Every key touched by the closed window [start, end], in order."""
    granularity = Granularity(granularity)
    cur = period_start(start, granularity, week_start)
    while cur <= end:
        yield bucket_key(cur, granularity, week_start=week_start)
        cur = _next_period(cur, granularity)


def zero_filled(
    groups: dict[str, list[T]],
    start: date,
    end: date,
    granularity: Granularity | str,
    *,
    week_start: int | None = None,
) -> dict[str, list[T]]:
    """``groups`` plus an empty list for every period of the window without rows."""
    filled = {
        k: [] for k in iter_period_keys(start, end, granularity, week_start=week_start)
    }
    for k, rows in groups.items():
        filled[k] = rows
    return {k: filled[k] for k in sorted(filled)}
