from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from clinic.core.settings import settings


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def clinic_tz(name: str | None = None) -> ZoneInfo:
    """Timezone used to build local calendars. Unknown names fall back to settings."""
    try:
        return _zone(name or settings.CLINIC_TZ)
    except (ZoneInfoNotFoundError, ValueError):
        return _zone(settings.CLINIC_TZ)


def week_start_day() -> int:
    return settings.ANALYTICS_WEEK_START


def ensure_aware_utc(dt: datetime) -> datetime:
    """
    Returns dt as timezone-aware UTC.
    Naive datetimes are rejected so nothing gets stored with the wrong offset.
    """
    if dt.tzinfo is None:
        raise ValueError("Naive datetime received. Always use timezone-aware datetimes.")
    return dt.astimezone(UTC)


def as_aware_utc(dt: datetime) -> datetime:
    """SQLite hands back naive values for timezone columns; they are stored as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def local_day_window(
    date_from: date, date_to: date, tz: ZoneInfo | None = None
) -> tuple[datetime, datetime]:
    """UTC bounds [start, end) covering the local days date_from..date_to inclusive."""
    tz = tz or clinic_tz()
    start_local = datetime.combine(date_from, time.min).replace(tzinfo=tz)
    end_local = datetime.combine(date_to + timedelta(days=1), time.min).replace(
        tzinfo=tz
    )
    return start_local.astimezone(UTC), end_local.astimezone(UTC)
