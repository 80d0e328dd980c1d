from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from clinic.analytics import reports
from clinic.analytics.records import (
    PaymentRecord,
    ProgressRecord,
    ProposalRecord,
    SessionRecord,
)


def _session(i, therapist_id, day, status="COMPLETED", **kw):
    return SessionRecord(
        id=i,
        therapist_id=therapist_id,
        therapist_name=f"Therapist {therapist_id}",
        scheduled_at=datetime(2026, 3, day, 16, 0, tzinfo=UTC),
        status=status,
        duration_minutes=60,
        price=kw.pop("price", Decimal("100")),
        **kw,
    )


def _progress(i, patient_id, day, score, **kw):
    return ProgressRecord(
        id=i,
        patient_id=patient_id,
        entry_date=datetime(2026, 3, day, 16, 0, tzinfo=UTC),
        entry_type=kw.pop("entry_type", "SESSION"),
        validation_status=kw.pop("validation_status", "VALIDATED"),
        overall_progress=score,
        **kw,
    )


def test_performance_by_period_fills_empty_days():
    sessions = [
        _session(1, 1, 2),
        _session(2, 1, 2, "CANCELLED"),
        _session(3, 1, 4),
    ]
    result = reports.performance_by_period(
        sessions, "day", start=date(2026, 3, 1), end=date(2026, 3, 5)
    )

    assert [r["period"] for r in result["performance"]] == [
        "2026-03-01",
        "2026-03-02",
        "2026-03-03",
        "2026-03-04",
        "2026-03-05",
    ]
    assert result["performance"][0]["total_sessions"] == 0
    assert result["performance"][1]["completion_rate"] == 50.0
    assert result["summary"]["total_sessions"] == 3
    assert result["summary"]["average_sessions_per_period"] == 0.6
    # the trend ignores zero-filled periods: 2 sessions then 1
    assert result["trend"] == {"direction": "decreasing", "percentage": 50.0}


def test_grouping_never_drops_records():
    sessions = [_session(i, 1, day) for i, day in enumerate((1, 2, 2, 9, 30, 31))]
    for granularity in ("day", "week", "month", "quarter", "year"):
        result = reports.performance_by_period(sessions, granularity)
        assert sum(r["total_sessions"] for r in result["performance"]) == len(sessions)


def test_status_distribution_shares_sum_to_100():
    sessions = [
        _session(1, 1, 2),
        _session(2, 1, 2, "NO_SHOW"),
        _session(3, 1, 3, "CANCELLED"),
    ]
    dist = reports.status_distribution(sessions)

    assert dist["counts"]["IN_PROGRESS"] == 0
    assert abs(sum(dist["rates"].values()) - 100) < 1e-9


def test_therapist_utilization_keeps_name_when_everything_cancelled():
    sessions = [_session(1, 7, 2, "CANCELLED")]
    result = reports.therapist_utilization(
        sessions, "week", date(2026, 3, 1), date(2026, 3, 7)
    )
    row = result["utilization"][0]

    assert row["therapist_name"] == "Therapist 7"
    assert row["total_sessions"] == 0
    assert row["periods"] == []
    assert result["summary"]["underutilized_therapists"] == 1


def test_utilization_summary_empty():
    assert reports.utilization_summary([])["total_therapists"] == 0


def test_therapist_performance_revenue_counts_completed_only():
    sessions = [
        _session(1, 1, 2, patient_satisfaction=4, service_category="psychology"),
        _session(2, 1, 3, patient_satisfaction=5, service_category="psychology"),
        _session(3, 1, 4, "CANCELLED", service_category="psychology"),
        _session(4, 2, 4, price=Decimal("60")),
    ]
    rows = reports.therapist_performance(sessions, date(2026, 2, 20), date(2026, 3, 10))
    first, second = rows

    assert first["total_revenue"] == 200.0
    assert first["revenue_per_session"] == 100.0
    assert first["revenue_per_hour"] == 100.0
    assert first["average_patient_satisfaction"] == 4.5
    assert first["by_category"] == {"psychology": {"sessions": 2, "revenue": 200.0}}
    assert [m["month"] for m in first["monthly_trends"]] == ["2026-02", "2026-03"]
    assert first["monthly_trends"][0]["sessions"] == 0
    assert second["by_category"] == {"UNCATEGORIZED": {"sessions": 1, "revenue": 60.0}}


def test_payment_statistics():
    def pay(i, parent, amount, method="CARD", status="COMPLETED", month=3):
        return PaymentRecord(
            id=i,
            parent_id=parent,
            parent_name=f"Parent {parent}",
            amount=Decimal(amount),
            type="SESSION",
            status=status,
            method=method,
            created_at=datetime(2026, month, 10, 18, 0, tzinfo=UTC),
        )

    payments = [
        pay(1, 1, "80.00"),
        pay(2, 1, "80.00", month=2),
        pay(3, 2, "150.00", method=None, status="PENDING"),
        pay(4, 3, "10.10", method="CASH"),
    ]
    stats = reports.payment_statistics(payments, top=2)

    assert stats["total_payments"] == 4
    assert stats["total_amount"] == 320.1
    assert stats["average_amount"] == 80.03
    assert stats["payment_methods"]["UNKNOWN"] == {"count": 1, "total": 150.0}
    assert stats["status_breakdown"] == {"COMPLETED": 3, "PENDING": 1}
    assert [m["month"] for m in stats["monthly_trends"]] == ["2026-02", "2026-03"]
    assert [p["parent_id"] for p in stats["top_parents"]] == [1, 2]
    assert stats["top_parents"][0]["total"] == 160.0


def test_payment_statistics_empty():
    stats = reports.payment_statistics([])
    assert stats["total_amount"] == 0.0
    assert stats["average_amount"] == 0.0
    assert stats["top_parents"] == []


def _proposal(i, therapist_id, month, day, status, value, review_days=None):
    created = datetime(2026, month, day, 16, 0, tzinfo=UTC)
    return ProposalRecord(
        id=i,
        therapist_id=therapist_id,
        therapist_name=f"Therapist {therapist_id}",
        status=status,
        created_at=created,
        value=Decimal(value),
        reviewed_at=created + timedelta(days=review_days) if review_days else None,
    )


def test_proposal_statistics():
    proposals = [
        _proposal(1, 1, 1, 10, "APPROVED", "1000", review_days=2),
        _proposal(2, 1, 1, 20, "REJECTED", "500", review_days=4),
        _proposal(3, 2, 3, 5, "SUBMITTED", "300"),
        _proposal(4, 2, 3, 6, "DRAFT", "200"),
    ]
    stats = reports.proposal_statistics(
        proposals, "month", start=date(2026, 1, 1), end=date(2026, 3, 31)
    )

    assert stats["summary"] == {
        "total_proposals": 4,
        "total_value": 2000.0,
        "average_value": 500.0,
        "approval_rate": 25.0,
        "rejection_rate": 25.0,
        "review_rate": 50.0,
        "average_processing_days": 3.0,
    }
    assert stats["status_distribution"]["counts"] == {
        "DRAFT": 1,
        "SUBMITTED": 1,
        "APPROVED": 1,
        "REJECTED": 1,
    }
    assert stats["status_distribution"]["rates"]["APPROVED"] == 25.0
    by_therapist = stats["by_therapist"]
    assert [(t["therapist_id"], t["count"], t["total_value"]) for t in by_therapist] == [
        (1, 2, 1500.0),
        (2, 2, 500.0),
    ]
    # February has no proposals but is still reported
    periods = stats["periods"]
    assert [(p["period"], p["count"], p["average_value"]) for p in periods] == [
        ("2026-01", 2, 750.0),
        ("2026-02", 0, 0.0),
        ("2026-03", 2, 250.0),
    ]
    assert stats["trend"] == {"direction": "stable", "percentage": 0.0}


def test_proposal_statistics_empty():
    stats = reports.proposal_statistics([], "week")
    assert stats["summary"]["total_proposals"] == 0
    assert stats["summary"]["approval_rate"] == 0.0
    assert stats["summary"]["average_processing_days"] == 0.0
    assert stats["status_distribution"]["total"] == 0
    assert stats["by_therapist"] == []
    assert stats["periods"] == []


def test_progress_overview():
    entries = [
        _progress(1, 1, 2, 30, goals_total=4, goals_completed=1, risk_level="high"),
        _progress(2, 1, 9, 35, emotional_score=60.0),
        _progress(3, 2, 16, 62, goals_total=2, goals_completed=2, emotional_score=70.0),
        _progress(4, 2, 23, 70, entry_type="MILESTONE", validation_status="PENDING"),
    ]
    result = reports.progress_overview(entries)

    assert result["total_entries"] == 4
    assert result["unique_patients"] == 2
    assert result["average_progress"] == 49.2
    assert result["progress_statistics"]["median"] == 48.5
    assert result["progress_statistics"]["max"] == 70.0
    assert result["progress_distribution"]["21-40"] == 2
    assert result["entry_types"]["counts"]["MILESTONE"] == 1
    assert result["risk_levels"]["total"] == 1
    assert result["goals"] == {"total": 6, "completed": 3, "completion_rate": 50.0}
    assert result["trend"] == "improving"
    assert result["domain_averages"]["emotional_score"] == 65.0
    assert result["domain_averages"]["physical_score"] is None


def test_progress_overview_empty():
    result = reports.progress_overview([])
    assert result["average_progress"] == 0.0
    assert result["trend"] == "insufficient_data"


def test_progress_trend_by_week():
    entries = [_progress(1, 1, 2, 40), _progress(2, 1, 16, 60), _progress(3, 2, 17, 70)]
    result = reports.progress_trend(
        entries, "week", start=date(2026, 3, 1), end=date(2026, 3, 21)
    )

    assert [r["period"] for r in result["trends"]] == [
        "2026-03-01",
        "2026-03-08",
        "2026-03-15",
    ]
    assert result["trends"][1]["entries"] == 0
    assert result["trends"][2]["average_progress"] == 65.0
    assert result["volume_trend"]["direction"] == "increasing"
    assert result["progress_direction"] == "improving"
