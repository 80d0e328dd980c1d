"""Therapist workload, capacity utilization and simple projections."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from clinic.analytics.buckets import Granularity, bucket_key
from clinic.analytics.metrics import mean_or_zero, percentage
from clinic.analytics.records import SessionRecord
from clinic.core.settings import settings
from clinic.models.therapy_session import ACTIVE_STATUSES

WORKLOAD_STATUSES = frozenset(s.value for s in ACTIVE_STATUSES)

OVERLOAD_THRESHOLD = 90.0
UNDERUSE_THRESHOLD = 20.0
HIGH_UTILIZATION_THRESHOLD = 85.0
LOW_UTILIZATION_THRESHOLD = 50.0
LONG_SESSION_FACTOR = 1.2


@dataclass(frozen=True)
class CapacityLimits:
    max_sessions_per_day: int
    max_sessions_per_week: int
    max_sessions_per_month: int
    max_hours_per_day: float
    max_hours_per_week: float
    max_hours_per_month: float
    preferred_session_minutes: int = 60

    @classmethod
    def from_settings(cls) -> CapacityLimits:
        return cls(
            max_sessions_per_day=settings.MAX_SESSIONS_PER_DAY,
            max_sessions_per_week=settings.MAX_SESSIONS_PER_WEEK,
            max_sessions_per_month=settings.MAX_SESSIONS_PER_MONTH,
            max_hours_per_day=settings.MAX_HOURS_PER_DAY,
            max_hours_per_week=settings.MAX_HOURS_PER_WEEK,
            max_hours_per_month=settings.MAX_HOURS_PER_MONTH,
            preferred_session_minutes=settings.PREFERRED_SESSION_MINUTES,
        )

    @classmethod
    def from_config(cls, config: Any | None) -> CapacityLimits:
        """Limits from a ``CapacityConfig`` row, or the defaults when there is none."""
        if config is None:
            return cls.from_settings()
        return cls(
            max_sessions_per_day=config.max_sessions_per_day,
            max_sessions_per_week=config.max_sessions_per_week,
            max_sessions_per_month=config.max_sessions_per_month,
            max_hours_per_day=config.max_hours_per_day,
            max_hours_per_week=config.max_hours_per_week,
            max_hours_per_month=config.max_hours_per_month,
            preferred_session_minutes=config.preferred_session_minutes,
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "max_sessions_per_day": self.max_sessions_per_day,
            "max_sessions_per_week": self.max_sessions_per_week,
            "max_sessions_per_month": self.max_sessions_per_month,
            "max_hours_per_day": self.max_hours_per_day,
            "max_hours_per_week": self.max_hours_per_week,
            "max_hours_per_month": self.max_hours_per_month,
            "preferred_session_minutes": self.preferred_session_minutes,
        }


@dataclass
class DailyLoad:
    date: str
    sessions: int = 0
    minutes: int = 0
    revenue: Decimal = Decimal("0")
    utilization: float = 0.0

    @property
    def hours(self) -> float:
        return self.minutes / 60

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "sessions": self.sessions,
            "hours": round(self.hours, 2),
            "revenue": float(self.revenue),
            "utilization": round(self.utilization, 2),
        }


@dataclass
class TherapistWorkload:
    therapist_id: int | None
    therapist_name: str | None
    start: date
    end: date
    limits: CapacityLimits
    days: dict[str, DailyLoad] = field(default_factory=dict)
    total_sessions: int = 0
    total_minutes: int = 0
    total_revenue: Decimal = Decimal("0")

    @property
    def total_hours(self) -> float:
        return self.total_minutes / 60

    @property
    def active_days(self) -> int:
        return len(self.days)

    @property
    def window_days(self) -> int:
        return max((self.end - self.start).days + 1, 1)

    @property
    def average_session_minutes(self) -> float:
        return self.total_minutes / self.total_sessions if self.total_sessions else 0.0

    @property
    def utilization_rate(self) -> float:
        """Mean of the daily utilizations over days with sessions."""
        return mean_or_zero(d.utilization for d in self.days.values())

    @property
    def capacity_utilization(self) -> float:
        capacity = self.active_days * self.limits.max_sessions_per_day
        return percentage(self.total_sessions, capacity)

    @property
    def session_utilization(self) -> float:
        weeks = self.window_days / 7
        return percentage(self.total_sessions, self.limits.max_sessions_per_week * weeks)

    @property
    def hour_utilization(self) -> float:
        weeks = self.window_days / 7
        return percentage(self.total_hours, self.limits.max_hours_per_week * weeks)

    @property
    def window_utilization(self) -> float:
        return max(self.session_utilization, self.hour_utilization)

    def trend(self) -> list[dict[str, Any]]:
        return [self.days[k].as_dict() for k in sorted(self.days)]

    def as_dict(self) -> dict[str, Any]:
        return {
            "therapist_id": self.therapist_id,
            "therapist_name": self.therapist_name,
            "period": {"start": self.start.isoformat(), "end": self.end.isoformat()},
            "limits": self.limits.as_dict(),
            "total_sessions": self.total_sessions,
            "total_hours": round(self.total_hours, 2),
            "total_revenue": float(self.total_revenue),
            "active_days": self.active_days,
            "average_session_minutes": round(self.average_session_minutes, 2),
            "utilization_rate": round(self.utilization_rate, 2),
            "capacity_utilization": round(self.capacity_utilization, 2),
            "session_utilization": round(self.session_utilization, 2),
            "hour_utilization": round(self.hour_utilization, 2),
            "window_utilization": round(self.window_utilization, 2),
            "daily": self.trend(),
        }


def summarize_workload(
    sessions: Iterable[SessionRecord],
    limits: CapacityLimits,
    start: date,
    end: date,
    *,
    therapist_id: int | None = None,
    therapist_name: str | None = None,
) -> TherapistWorkload:
    """Fold one therapist's sessions in [start, end] into per-day load.

    Cancelled, no-show and reschedule-requested sessions do not count.
    """
    wl = TherapistWorkload(
        therapist_id=therapist_id,
        therapist_name=therapist_name,
        start=start,
        end=end,
        limits=limits,
    )
    for s in sessions:
        if s.status.upper() not in WORKLOAD_STATUSES:
            continue
        if wl.therapist_id is None:
            wl.therapist_id = s.therapist_id
        if wl.therapist_name is None:
            wl.therapist_name = s.therapist_name
        key = bucket_key(s.scheduled_at, Granularity.DAY)
        day = wl.days.get(key)
        if day is None:
            day = wl.days[key] = DailyLoad(date=key)
        minutes = s.effective_minutes
        day.sessions += 1
        day.minutes += minutes
        day.revenue += s.price
        wl.total_sessions += 1
        wl.total_minutes += minutes
        wl.total_revenue += s.price

    for day in wl.days.values():
        day.utilization = percentage(day.sessions, limits.max_sessions_per_day)
    return wl


def _projection(
    wl: TherapistWorkload, days: int, max_sessions: int, max_hours: float
) -> dict[str, float]:
    if not wl.active_days:
        return {
            "estimated_sessions": 0.0,
            "estimated_hours": 0.0,
            "estimated_revenue": 0.0,
            "capacity_utilization": 0.0,
        }
    sessions = min(wl.total_sessions / wl.active_days * days, max_sessions)
    hours = min(wl.total_hours / wl.active_days * days, max_hours)
    revenue_per_session = float(wl.total_revenue) / wl.total_sessions
    return {
        "estimated_sessions": round(sessions, 2),
        "estimated_hours": round(hours, 2),
        "estimated_revenue": round(sessions * revenue_per_session, 2),
        "capacity_utilization": round(percentage(sessions, max_sessions), 2),
    }


def project_workload(
    wl: TherapistWorkload, limits: CapacityLimits | None = None
) -> dict[str, dict[str, float]]:
    """Per-active-day averages carried forward 7 and 30 days, capped at the limits."""
    limits = limits or wl.limits
    return {
        "next_week": _projection(
            wl, 7, limits.max_sessions_per_week, limits.max_hours_per_week
        ),
        "next_month": _projection(
            wl, 30, limits.max_sessions_per_month, limits.max_hours_per_month
        ),
    }


def capacity_alerts(wl: TherapistWorkload) -> list[dict[str, Any]]:
    alerts: list[dict[str, Any]] = []
    for key in sorted(wl.days):
        day = wl.days[key]
        if day.utilization > OVERLOAD_THRESHOLD:
            alerts.append(
                {
                    "type": "overload",
                    "date": key,
                    "severity": "high",
                    "message": f"High utilization: {round(day.utilization)}%",
                }
            )
        elif day.utilization < UNDERUSE_THRESHOLD:
            alerts.append(
                {
                    "type": "underutilized",
                    "date": key,
                    "severity": "medium",
                    "message": f"Low utilization: {round(day.utilization)}%",
                }
            )
    if wl.utilization_rate > HIGH_UTILIZATION_THRESHOLD:
        alerts.append(
            {
                "type": "high_utilization",
                "therapist_id": wl.therapist_id,
                "severity": "high",
                "message": f"High utilization rate: {round(wl.utilization_rate)}%",
            }
        )
    if wl.capacity_utilization > OVERLOAD_THRESHOLD:
        alerts.append(
            {
                "type": "capacity_warning",
                "therapist_id": wl.therapist_id,
                "severity": "medium",
                "message": f"Capacity utilization at {round(wl.capacity_utilization)}%",
            }
        )
    return alerts


def recommendations(
    wl: TherapistWorkload, limits: CapacityLimits | None = None
) -> list[str]:
    limits = limits or wl.limits
    tips: list[str] = []
    if not wl.total_sessions:
        return tips
    util = wl.window_utilization
    if util > OVERLOAD_THRESHOLD:
        tips.append(
            "Workload is above 90% of capacity; redistribute sessions or raise the limits."
        )
    elif util < LOW_UTILIZATION_THRESHOLD:
        tips.append(
            "Workload is below 50% of capacity; there is room for new patients."
        )
    if wl.average_session_minutes > limits.preferred_session_minutes * LONG_SESSION_FACTOR:
        tips.append(
            f"Sessions average {round(wl.average_session_minutes)} min against a "
            f"preferred {limits.preferred_session_minutes} min; review session planning."
        )
    return tips


def workload_summary(workloads: Sequence[TherapistWorkload]) -> dict[str, Any]:
    n = len(workloads)
    total_sessions = sum(w.total_sessions for w in workloads)
    total_hours = sum(w.total_hours for w in workloads)
    total_revenue = sum((w.total_revenue for w in workloads), Decimal("0"))
    return {
        "total_therapists": n,
        "total_sessions": total_sessions,
        "total_hours": round(total_hours, 2),
        "total_revenue": float(total_revenue),
        "average_utilization": round(mean_or_zero(w.utilization_rate for w in workloads), 2),
        "average_sessions_per_therapist": round(total_sessions / n, 2) if n else 0.0,
        "average_hours_per_therapist": round(total_hours / n, 2) if n else 0.0,
        "total_alerts": sum(len(capacity_alerts(w)) for w in workloads),
    }
