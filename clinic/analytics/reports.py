"""Report builders for the analytics endpoints.

Every function takes already-fetched records and returns plain dicts ready for
JSON. Nothing here touches the database.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from clinic.analytics.buckets import Granularity, group_by_period, zero_filled
from clinic.analytics.metrics import (
    PROGRESS_BANDS,
    accumulate,
    average_of_fields,
    band_distribution,
    categorical_rates,
    describe,
    mean_or_zero,
    percentage,
)
from clinic.analytics.records import (
    PaymentRecord,
    ProgressRecord,
    ProposalRecord,
    SessionRecord,
)
from clinic.analytics.trends import split_half_trend, trend_from_buckets
from clinic.analytics.workload import (
    LOW_UTILIZATION_THRESHOLD,
    OVERLOAD_THRESHOLD,
    WORKLOAD_STATUSES,
    CapacityLimits,
    summarize_workload,
)
from clinic.models.progress import EntryType, RiskLevel, ValidationStatus
from clinic.models.proposal import ProposalStatus
from clinic.models.therapy_session import SessionStatus

DOMAIN_FIELDS = (
    "emotional_score",
    "cognitive_score",
    "social_score",
    "physical_score",
    "treatment_adherence",
)
SATISFACTION_FIELDS = ("patient_satisfaction", "therapist_satisfaction")


def _r(value: float | Decimal | None, places: int = 2) -> float | None:
    if value is None:
        return None
    return round(float(value), places)


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _rounded_rates(metrics: dict[str, float]) -> dict[str, float]:
    return {k: _r(v) if isinstance(v, float) else v for k, v in metrics.items()}


# -- sessions ---------------------------------------------------------------


def scheduling_performance(sessions: Iterable[SessionRecord]) -> dict[str, Any]:
    return _rounded_rates(accumulate(sessions).as_dict())


def performance_by_period(
    sessions: Sequence[SessionRecord],
    granularity: Granularity | str,
    *,
    start: date | None = None,
    end: date | None = None,
) -> dict[str, Any]:
    """Outcome metrics per period; with a window, empty periods are reported too."""
    granularity = Granularity(granularity)
    raw = group_by_period(sessions, granularity, key=lambda s: s.scheduled_at)
    groups = raw
    if start is not None and end is not None:
        groups = zero_filled(raw, start, end, granularity)

    rows = []
    overall = accumulate(())
    for period, items in groups.items():
        acc = accumulate(items)
        overall.merge(acc)
        rows.append({"period": period, **_rounded_rates(acc.as_dict())})

    return {
        "group_by": granularity.value,
        "performance": rows,
        "summary": {
            "total_periods": len(rows),
            "total_sessions": overall.total,
            "average_sessions_per_period": _r(overall.total / len(rows)) if rows else 0.0,
            "average_completion_rate": _r(overall.completion_rate),
            "average_cancellation_rate": _r(overall.cancellation_rate),
            "average_no_show_rate": _r(overall.no_show_rate),
        },
        "trend": trend_from_buckets(raw).as_dict(),
    }


def status_distribution(sessions: Iterable[SessionRecord]) -> dict[str, Any]:
    return categorical_rates(sessions, "status", list(SessionStatus)).as_dict()


def _group_by_therapist(
    sessions: Iterable[SessionRecord],
) -> dict[int, list[SessionRecord]]:
    out: dict[int, list[SessionRecord]] = {}
    for s in sessions:
        out.setdefault(s.therapist_id, []).append(s)
    return out


def therapist_utilization(
    sessions: Sequence[SessionRecord],
    granularity: Granularity | str,
    start: date,
    end: date,
    limits: Mapping[int, CapacityLimits] | None = None,
) -> dict[str, Any]:
    """Session, hour and overall utilization per therapist over [start, end].

    ``limits`` maps therapist id to its capacity; absent ids use the defaults.
    """
    granularity = Granularity(granularity)
    limits = limits or {}
    default = CapacityLimits.from_settings()

    rows = []
    for therapist_id, items in sorted(_group_by_therapist(sessions).items()):
        wl = summarize_workload(
            items,
            limits.get(therapist_id, default),
            start,
            end,
            therapist_id=therapist_id,
            therapist_name=items[0].therapist_name,
        )
        active = [s for s in items if s.status.upper() in WORKLOAD_STATUSES]
        periods = group_by_period(active, granularity, key=lambda s: s.scheduled_at)
        rows.append(
            {
                "therapist_id": therapist_id,
                "therapist_name": wl.therapist_name,
                "total_sessions": wl.total_sessions,
                "total_hours": _r(wl.total_hours),
                "session_utilization": _r(wl.session_utilization),
                "hour_utilization": _r(wl.hour_utilization),
                "overall_utilization": _r(wl.window_utilization),
                "periods": [
                    {
                        "period": key,
                        "sessions": len(bucket),
                        "hours": _r(sum(s.hours for s in bucket)),
                    }
                    for key, bucket in periods.items()
                ],
            }
        )
    return {
        "group_by": granularity.value,
        "utilization": rows,
        "summary": utilization_summary(rows),
    }


def utilization_summary(rows: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    if not rows:
        return {
            "total_therapists": 0,
            "average_utilization": 0.0,
            "max_utilization": 0.0,
            "min_utilization": 0.0,
            "overloaded_therapists": 0,
            "underutilized_therapists": 0,
            "average_sessions_per_therapist": 0.0,
            "average_hours_per_therapist": 0.0,
        }
    overall = [r["overall_utilization"] for r in rows]
    return {
        "total_therapists": len(rows),
        "average_utilization": _r(mean_or_zero(overall)),
        "max_utilization": max(overall),
        "min_utilization": min(overall),
        "overloaded_therapists": sum(1 for u in overall if u > OVERLOAD_THRESHOLD),
        "underutilized_therapists": sum(
            1 for u in overall if u < LOW_UTILIZATION_THRESHOLD
        ),
        "average_sessions_per_therapist": _r(
            mean_or_zero(r["total_sessions"] for r in rows)
        ),
        "average_hours_per_therapist": _r(mean_or_zero(r["total_hours"] for r in rows)),
    }


def therapist_performance(
    sessions: Sequence[SessionRecord], start: date, end: date
) -> list[dict[str, Any]]:
    """Per therapist outcome, revenue and satisfaction figures.

    Revenue and hours only count completed sessions.
    """
    days = max((end - start).days + 1, 1)
    result = []
    for therapist_id, items in sorted(_group_by_therapist(sessions).items()):
        acc = accumulate(items)
        done = [s for s in items if s.status.upper() == "COMPLETED"]
        revenue = sum((s.price for s in done), Decimal("0"))
        hours = sum(s.hours for s in done)
        satisfaction = average_of_fields(items, SATISFACTION_FIELDS)

        by_category: dict[str, dict[str, Any]] = {}
        for s in done:
            cat = by_category.setdefault(
                s.service_category or "UNCATEGORIZED",
                {"sessions": 0, "revenue": Decimal("0")},
            )
            cat["sessions"] += 1
            cat["revenue"] += s.price

        monthly = zero_filled(
            group_by_period(items, Granularity.MONTH, key=lambda s: s.scheduled_at),
            start,
            end,
            Granularity.MONTH,
        )
        result.append(
            {
                "therapist_id": therapist_id,
                "therapist_name": items[0].therapist_name,
                **_rounded_rates(acc.as_dict()),
                "total_hours": _r(hours),
                "average_session_minutes": _r(
                    mean_or_zero(s.effective_minutes for s in done)
                ),
                "total_revenue": _money(revenue),
                "revenue_per_session": _r(revenue / len(done)) if done else 0.0,
                "revenue_per_hour": _r(float(revenue) / hours) if hours else 0.0,
                "sessions_per_day": _r(acc.total / days),
                "average_patient_satisfaction": _r(satisfaction["patient_satisfaction"]),
                "average_therapist_satisfaction": _r(
                    satisfaction["therapist_satisfaction"]
                ),
                "by_category": {
                    k: {"sessions": v["sessions"], "revenue": _money(v["revenue"])}
                    for k, v in sorted(by_category.items())
                },
                "monthly_trends": [
                    _month_row(month, bucket) for month, bucket in monthly.items()
                ],
            }
        )
    return result


def _month_row(month: str, bucket: Sequence[SessionRecord]) -> dict[str, Any]:
    acc = accumulate(bucket)
    revenue = sum(
        (s.price for s in bucket if s.status.upper() == "COMPLETED"), Decimal("0")
    )
    return {
        "month": month,
        "sessions": acc.total,
        "completed_sessions": acc.completed,
        "completion_rate": _r(acc.completion_rate),
        "revenue": _money(revenue),
        "average_satisfaction": _r(
            average_of_fields(bucket, ("patient_satisfaction",))["patient_satisfaction"]
        ),
    }


# -- payments ---------------------------------------------------------------


def payment_statistics(
    payments: Sequence[PaymentRecord], top: int = 10
) -> dict[str, Any]:
    total = sum((p.amount for p in payments), Decimal("0"))

    def _breakdown(attr: str) -> dict[str, dict[str, Any]]:
        out: dict[str, dict[str, Any]] = {}
        for p in payments:
            k = getattr(p, attr) or "UNKNOWN"
            row = out.setdefault(k, {"count": 0, "total": Decimal("0")})
            row["count"] += 1
            row["total"] += p.amount
        return {
            k: {"count": v["count"], "total": _money(v["total"])}
            for k, v in sorted(out.items())
        }

    monthly = group_by_period(payments, Granularity.MONTH, key=lambda p: p.created_at)

    parents: dict[int, dict[str, Any]] = {}
    for p in payments:
        row = parents.setdefault(
            p.parent_id,
            {
                "parent_id": p.parent_id,
                "parent_name": p.parent_name,
                "count": 0,
                "total": Decimal("0"),
            },
        )
        row["count"] += 1
        row["total"] += p.amount
    ranked = sorted(parents.values(), key=lambda r: (-r["total"], r["parent_id"]))[:top]

    return {
        "total_payments": len(payments),
        "total_amount": _money(total),
        "average_amount": _money(total / len(payments)) if payments else 0.0,
        "payment_methods": _breakdown("method"),
        "payment_types": _breakdown("type"),
        "status_breakdown": categorical_rates(payments, "status").counts,
        "monthly_trends": [
            {
                "month": month,
                "count": len(bucket),
                "total": _money(sum((p.amount for p in bucket), Decimal("0"))),
            }
            for month, bucket in monthly.items()
        ],
        "top_parents": [{**r, "total": _money(r["total"])} for r in ranked],
    }


# -- proposals ----------------------------------------------------------------

REVIEWED_PROPOSALS = (ProposalStatus.APPROVED.value, ProposalStatus.REJECTED.value)


def _value_row(items: Sequence[ProposalRecord]) -> dict[str, Any]:
    value = sum((p.value for p in items), Decimal("0"))
    return {
        "count": len(items),
        "total_value": _money(value),
        "average_value": _money(value / len(items)) if items else 0.0,
    }


def proposal_statistics(
    proposals: Sequence[ProposalRecord],
    granularity: Granularity | str = Granularity.MONTH,
    *,
    start: date | None = None,
    end: date | None = None,
) -> dict[str, Any]:
    """Volume, value and review outcomes of the proposals created in a window.

    ``value`` is the undiscounted sum of the lines; the stored cost options are
    not applied. Processing time runs from creation to review and only counts
    reviewed proposals.
    """
    granularity = Granularity(granularity)
    distribution = categorical_rates(
        proposals, "status", list(ProposalStatus)
    ).as_dict()
    approved = distribution["counts"][ProposalStatus.APPROVED.value]
    rejected = distribution["counts"][ProposalStatus.REJECTED.value]
    overall = _value_row(proposals)
    processing_days = [
        (p.reviewed_at - p.created_at).total_seconds() / 86400
        for p in proposals
        if p.reviewed_at is not None and p.status in REVIEWED_PROPOSALS
    ]

    therapists: dict[int, list[ProposalRecord]] = {}
    for p in proposals:
        therapists.setdefault(p.therapist_id, []).append(p)

    raw = group_by_period(proposals, granularity, key=lambda p: p.created_at)
    groups = raw
    if start is not None and end is not None:
        groups = zero_filled(raw, start, end, granularity)

    return {
        "group_by": granularity.value,
        "summary": {
            "total_proposals": overall["count"],
            "total_value": overall["total_value"],
            "average_value": overall["average_value"],
            "approval_rate": _r(percentage(approved, len(proposals))),
            "rejection_rate": _r(percentage(rejected, len(proposals))),
            "review_rate": _r(percentage(approved + rejected, len(proposals))),
            "average_processing_days": _r(mean_or_zero(processing_days)),
        },
        "status_distribution": {
            **distribution,
            "rates": _rounded_rates(distribution["rates"]),
        },
        "by_therapist": [
            {
                "therapist_id": tid,
                "therapist_name": items[0].therapist_name,
                **_value_row(items),
            }
            for tid, items in sorted(therapists.items())
        ],
        "periods": [
            {"period": period, **_value_row(items)} for period, items in groups.items()
        ],
        "trend": trend_from_buckets(raw).as_dict(),
    }


# -- progress ---------------------------------------------------------------


def _goal_rate(entries: Iterable[ProgressRecord]) -> tuple[int, int, float]:
    total = completed = 0
    for e in entries:
        total += e.goals_total
        completed += e.goals_completed
    return total, completed, percentage(completed, total)


def _domain_averages(entries: Iterable[ProgressRecord]) -> dict[str, float | None]:
    return {
        k: _r(v, 1) for k, v in average_of_fields(entries, DOMAIN_FIELDS).items()
    }


def progress_overview(entries: Sequence[ProgressRecord]) -> dict[str, Any]:
    ordered = sorted(entries, key=lambda e: e.entry_date)
    scores = [e.overall_progress for e in ordered]
    goals_total, goals_done, goal_rate = _goal_rate(ordered)

    return {
        "total_entries": len(ordered),
        "unique_patients": len({e.patient_id for e in ordered}),
        "average_progress": _r(mean_or_zero(scores), 1),
        "progress_statistics": {
            k: _r(v, 1) for k, v in describe(scores).items()
        },
        "progress_distribution": band_distribution(scores, PROGRESS_BANDS),
        "entry_types": categorical_rates(ordered, "entry_type", list(EntryType)).as_dict(),
        "validation_status": categorical_rates(
            ordered, "validation_status", list(ValidationStatus)
        ).as_dict(),
        "risk_levels": categorical_rates(
            ordered, "risk_level", list(RiskLevel), skip_missing=True
        ).as_dict(),
        "goals": {
            "total": goals_total,
            "completed": goals_done,
            "completion_rate": _r(goal_rate, 1),
        },
        "trend": split_half_trend(scores).value,
        "domain_averages": _domain_averages(ordered),
    }


def progress_trend(
    entries: Sequence[ProgressRecord],
    granularity: Granularity | str,
    *,
    start: date | None = None,
    end: date | None = None,
) -> dict[str, Any]:
    granularity = Granularity(granularity)
    raw = group_by_period(entries, granularity, key=lambda e: e.entry_date)
    groups = raw
    if start is not None and end is not None:
        groups = zero_filled(raw, start, end, granularity)

    rows = []
    for period, bucket in groups.items():
        _total, _done, goal_rate = _goal_rate(bucket)
        rows.append(
            {
                "period": period,
                "entries": len(bucket),
                "unique_patients": len({e.patient_id for e in bucket}),
                "average_progress": _r(
                    mean_or_zero(e.overall_progress for e in bucket), 1
                ),
                "goal_completion_rate": _r(goal_rate, 1),
                "domain_averages": _domain_averages(bucket),
            }
        )

    averages = [r["average_progress"] for r in rows if r["entries"]]
    return {
        "group_by": granularity.value,
        "trends": rows,
        "volume_trend": trend_from_buckets(raw).as_dict(),
        "progress_direction": split_half_trend(averages).value,
    }
