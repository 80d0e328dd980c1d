from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from clinic.analytics import reports
from clinic.analytics.buckets import Granularity, group_by_period, zero_filled
from clinic.analytics.metrics import accumulate
from clinic.analytics.trends import (
    CompareMode,
    compare_metrics,
    comparison_window,
    trend_from_buckets,
)
from clinic.analytics.workload import (
    CapacityLimits,
    TherapistWorkload,
    capacity_alerts,
    project_workload,
    recommendations,
    summarize_workload,
    workload_summary,
)
from clinic.core.logging import get_logger
from clinic.core.settings import settings
from clinic.db import get_db
from clinic.deps import current_therapist, require_roles
from clinic.models.payment import PaymentMethod, PaymentStatus, PaymentType
from clinic.models.therapist import Therapist
from clinic.models.therapy_session import ACTIVE_STATUSES
from clinic.models.user import Role, User
from clinic.schemas.analytics import (
    AnalyticsWindow,
    ComparativeResponse,
    PaymentStatisticsResponse,
    PerformanceResponse,
    ProgressOverviewResponse,
    ProgressTrendsResponse,
    SessionsOverviewResponse,
    TherapistPerformanceResponse,
    TrendsResponse,
    UtilizationResponse,
    WorkloadEntry,
    WorkloadResponse,
)
from clinic.services import analytics_queries as q
from clinic.utils.tz import clinic_tz, local_day_window

router = APIRouter(prefix="/analytics", tags=["analytics"])
log = get_logger(__name__)

STAFF = (Role.COORDINATOR, Role.ADMIN)
DEFAULT_WINDOW_DAYS = 30
MAX_WINDOW_DAYS = 731

DateFrom = Annotated[
    date | None, Query(description="First local day (YYYY-MM-DD), inclusive")
]
DateTo = Annotated[date | None, Query(description="Last local day (YYYY-MM-DD), inclusive")]
GroupBy = Annotated[Granularity, Query()]


class Window:
    """Local inclusive date range plus its UTC [start, end) bounds."""

    def __init__(self, date_from: date | None, date_to: date | None):
        tz = clinic_tz()
        today = datetime.now(tz).date()
        self.date_to = date_to or (
            date_from + timedelta(days=DEFAULT_WINDOW_DAYS - 1) if date_from else today
        )
        self.date_from = date_from or self.date_to - timedelta(days=DEFAULT_WINDOW_DAYS - 1)
        if self.date_from > self.date_to:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST, "date_from must not be after date_to"
            )
        if (self.date_to - self.date_from).days + 1 > MAX_WINDOW_DAYS:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"Window longer than {MAX_WINDOW_DAYS} days",
            )
        self.start_utc, self.end_utc = local_day_window(self.date_from, self.date_to, tz)

    def out(self) -> AnalyticsWindow:
        return AnalyticsWindow(
            date_from=self.date_from, date_to=self.date_to, timezone=settings.CLINIC_TZ
        )


def _limits_for(db: Session, sessions) -> dict[int, CapacityLimits]:
    return q.capacity_limits(db, {s.therapist_id for s in sessions})


# -- sessions ---------------------------------------------------------------


@router.get("/sessions/overview", response_model=SessionsOverviewResponse)
def sessions_overview(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    service_id: int | None = Query(None),
    group_by: GroupBy = Granularity.DAY,
):
    w = Window(date_from, date_to)
    sessions = q.fetch_sessions(
        db, w.start_utc, w.end_utc, therapist_id=therapist_id, service_id=service_id
    )
    utilization = reports.therapist_utilization(
        sessions, group_by, w.date_from, w.date_to, _limits_for(db, sessions)
    )
    raw = group_by_period(sessions, group_by, key=lambda s: s.scheduled_at)
    log.info(
        "analytics.sessions.overview",
        sessions=len(sessions),
        date_from=str(w.date_from),
        date_to=str(w.date_to),
    )
    return SessionsOverviewResponse(
        window=w.out(),
        totals={
            "sessions": len(sessions),
            "therapists": q.count_active_therapists(db),
            "services": q.count_active_services(db),
        },
        metrics=reports.scheduling_performance(sessions),
        status_distribution=reports.status_distribution(sessions),
        utilization=utilization["summary"],
        trend=trend_from_buckets(raw).as_dict(),
    )


@router.get("/sessions/performance", response_model=PerformanceResponse)
def sessions_performance(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    service_id: int | None = Query(None),
    group_by: GroupBy = Granularity.DAY,
):
    w = Window(date_from, date_to)
    sessions = q.fetch_sessions(
        db, w.start_utc, w.end_utc, therapist_id=therapist_id, service_id=service_id
    )
    result = reports.performance_by_period(
        sessions, group_by, start=w.date_from, end=w.date_to
    )
    log.info(
        "analytics.sessions.performance",
        sessions=len(sessions),
        group_by=group_by.value,
        periods=len(result["performance"]),
    )
    return PerformanceResponse(window=w.out(), **result)


@router.get("/sessions/utilization", response_model=UtilizationResponse)
def sessions_utilization(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    service_id: int | None = Query(None),
    group_by: GroupBy = Granularity.WEEK,
):
    w = Window(date_from, date_to)
    sessions = q.fetch_sessions(
        db, w.start_utc, w.end_utc, therapist_id=therapist_id, service_id=service_id
    )
    result = reports.therapist_utilization(
        sessions, group_by, w.date_from, w.date_to, _limits_for(db, sessions)
    )
    log.info(
        "analytics.sessions.utilization",
        sessions=len(sessions),
        therapists=len(result["utilization"]),
    )
    return UtilizationResponse(window=w.out(), **result)


@router.get("/sessions/trends", response_model=TrendsResponse)
def sessions_trends(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    service_id: int | None = Query(None),
    group_by: GroupBy = Granularity.DAY,
):
    w = Window(date_from, date_to)
    sessions = q.fetch_sessions(
        db, w.start_utc, w.end_utc, therapist_id=therapist_id, service_id=service_id
    )
    raw = group_by_period(sessions, group_by, key=lambda s: s.scheduled_at)
    trend = trend_from_buckets(raw)
    groups = zero_filled(raw, w.date_from, w.date_to, group_by)
    log.info(
        "analytics.sessions.trends",
        sessions=len(sessions),
        direction=trend.direction.value,
    )
    return TrendsResponse(
        window=w.out(),
        group_by=group_by,
        trend=trend.as_dict(),
        data=[
            {
                "period": period,
                "count": len(items),
                "completed": accumulate(items).completed,
            }
            for period, items in groups.items()
        ],
    )


COMPARED_METRICS = (
    "total_sessions",
    "completed_sessions",
    "cancelled_sessions",
    "no_show_sessions",
    "completion_rate",
    "cancellation_rate",
    "no_show_rate",
)


@router.get("/sessions/comparative", response_model=ComparativeResponse)
def sessions_comparative(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    service_id: int | None = Query(None),
    compare_with: CompareMode = Query(CompareMode.PREVIOUS_PERIOD),
):
    w = Window(date_from, date_to)
    shifted_start, shifted_end = comparison_window(
        datetime.combine(w.date_from, time.min),
        datetime.combine(w.date_to + timedelta(days=1), time.min),
        compare_with,
    )
    prev = Window(shifted_start.date(), shifted_end.date() - timedelta(days=1))

    filters = {"therapist_id": therapist_id, "service_id": service_id}
    current = reports.scheduling_performance(
        q.fetch_sessions(db, w.start_utc, w.end_utc, **filters)
    )
    previous = reports.scheduling_performance(
        q.fetch_sessions(db, prev.start_utc, prev.end_utc, **filters)
    )
    log.info(
        "analytics.sessions.comparative",
        mode=compare_with.value,
        current=current["total_sessions"],
        previous=previous["total_sessions"],
    )
    return ComparativeResponse(
        mode=compare_with,
        current_period={"date_from": w.date_from, "date_to": w.date_to, "data": current},
        comparison_period={
            "date_from": prev.date_from,
            "date_to": prev.date_to,
            "data": previous,
        },
        comparison=compare_metrics(current, previous, COMPARED_METRICS),
    )


# -- therapists ---------------------------------------------------------------


@router.get("/therapists/performance", response_model=TherapistPerformanceResponse)
def therapists_performance(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    service_id: int | None = Query(None),
):
    w = Window(date_from, date_to)
    sessions = q.fetch_sessions(
        db, w.start_utc, w.end_utc, therapist_id=therapist_id, service_id=service_id
    )
    rows = reports.therapist_performance(sessions, w.date_from, w.date_to)
    log.info("analytics.therapists.performance", therapists=len(rows))
    return TherapistPerformanceResponse(window=w.out(), therapists=rows)


# -- workload -----------------------------------------------------------------


def _workload_entry(
    db: Session, therapist: Therapist, w: Window, include_projections: bool
) -> tuple[WorkloadEntry, TherapistWorkload]:
    sessions = q.fetch_sessions(
        db, w.start_utc, w.end_utc, therapist_id=therapist.id, statuses=ACTIVE_STATUSES
    )
    limits = CapacityLimits.from_config(therapist.capacity)
    wl = summarize_workload(
        sessions,
        limits,
        w.date_from,
        w.date_to,
        therapist_id=therapist.id,
        therapist_name=therapist.full_name,
    )
    entry = WorkloadEntry(
        workload=wl.as_dict(),
        alerts=capacity_alerts(wl),
        recommendations=recommendations(wl, limits),
        projections=project_workload(wl, limits) if include_projections else None,
    )
    return entry, wl


@router.get("/workload", response_model=WorkloadResponse)
def workload(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    include_projections: bool = Query(True),
):
    w = Window(date_from, date_to)
    therapists = q.active_therapists(db, therapist_id)
    if therapist_id is not None and not therapists:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Therapist not found")

    entries, workloads = [], []
    for t in therapists:
        entry, wl = _workload_entry(db, t, w, include_projections)
        entries.append(entry)
        workloads.append(wl)
    summary = workload_summary(workloads)
    log.info(
        "analytics.workload",
        therapists=len(workloads),
        alerts=summary["total_alerts"],
    )
    return WorkloadResponse(window=w.out(), therapists=entries, summary=summary)


@router.get("/workload/me", response_model=WorkloadResponse)
def my_workload(
    therapist: Annotated[Therapist, Depends(current_therapist)],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    include_projections: bool = Query(True),
):
    w = Window(date_from, date_to)
    entry, wl = _workload_entry(db, therapist, w, include_projections)
    log.info("analytics.workload.me", therapist_id=therapist.id)
    return WorkloadResponse(
        window=w.out(), therapists=[entry], summary=workload_summary([wl])
    )


# -- payments -----------------------------------------------------------------


@router.get("/payments/statistics", response_model=PaymentStatisticsResponse)
def payments_statistics(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    parent_id: int | None = Query(None),
    payment_method: PaymentMethod | None = Query(None),
    type: PaymentType | None = Query(None),  # noqa: A002
    payment_status: PaymentStatus | None = Query(None, alias="status"),
    min_amount: Decimal | None = Query(None, ge=0),
    max_amount: Decimal | None = Query(None, ge=0),
    top: int = Query(10, ge=1, le=50),
):
    if (date_from is None) != (date_to is None):
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "date_from and date_to must be given together",
        )
    start_utc = end_utc = None
    if date_from is not None:
        w = Window(date_from, date_to)
        start_utc, end_utc = w.start_utc, w.end_utc

    payments = q.fetch_payments(
        db,
        start_utc,
        end_utc,
        parent_id=parent_id,
        method=payment_method,
        type_=type,
        status=payment_status,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    stats = reports.payment_statistics(payments, top=top)
    log.info(
        "analytics.payments.statistics",
        payments=stats["total_payments"],
        total=stats["total_amount"],
    )
    return stats


# -- progress -----------------------------------------------------------------


def _progress_scope(user: User, therapist_id: int | None) -> int | None:
    if user.role != Role.THERAPIST:
        return therapist_id
    profile = user.therapist_profile
    if profile is None:
        raise HTTPException(
            status.HTTP_404_NOT_FOUND, "No therapist profile linked to this user"
        )
    return profile.id


@router.get("/progress/overview", response_model=ProgressOverviewResponse)
def progress_overview(
    current_user: Annotated[
        User, Depends(require_roles(Role.THERAPIST, Role.COORDINATOR, Role.ADMIN))
    ],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    patient_id: int | None = Query(None),
    therapist_id: int | None = Query(None),
):
    w = Window(date_from, date_to)
    entries = q.fetch_progress(
        db,
        w.start_utc,
        w.end_utc,
        patient_id=patient_id,
        therapist_id=_progress_scope(current_user, therapist_id),
    )
    result = reports.progress_overview(entries)
    log.info("analytics.progress.overview", entries=len(entries), trend=result["trend"])
    return ProgressOverviewResponse(window=w.out(), **result)


@router.get("/progress/trends", response_model=ProgressTrendsResponse)
def progress_trends(
    current_user: Annotated[
        User, Depends(require_roles(Role.THERAPIST, Role.COORDINATOR, Role.ADMIN))
    ],
    db: Annotated[Session, Depends(get_db)],
    date_from: DateFrom = None,
    date_to: DateTo = None,
    patient_id: int | None = Query(None),
    therapist_id: int | None = Query(None),
    group_by: GroupBy = Granularity.MONTH,
):
    w = Window(date_from, date_to)
    entries = q.fetch_progress(
        db,
        w.start_utc,
        w.end_utc,
        patient_id=patient_id,
        therapist_id=_progress_scope(current_user, therapist_id),
    )
    result = reports.progress_trend(entries, group_by, start=w.date_from, end=w.date_to)
    log.info(
        "analytics.progress.trends",
        entries=len(entries),
        group_by=group_by.value,
    )
    return ProgressTrendsResponse(window=w.out(), **result)
