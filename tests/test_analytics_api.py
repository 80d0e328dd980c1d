from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from fastapi import status

from clinic.models.capacity import CapacityConfig
from clinic.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from clinic.models.progress import EntryType, ProgressEntry
from clinic.models.therapy_session import SessionStatus

MARCH = {"date_from": "2026-03-01", "date_to": "2026-03-31"}


def _at(month: int, day: int, hour: int = 16) -> datetime:
    # 16:00 UTC is 10:00 in Mexico City
    return datetime(2026, month, day, hour, 0, tzinfo=UTC)


@pytest.fixture
def march_sessions(make_session):
    return [
        make_session(_at(3, 2), patient_satisfaction=4),
        make_session(_at(3, 2, 18), patient_satisfaction=5),
        make_session(_at(3, 3), SessionStatus.CANCELLED),
        make_session(_at(3, 10), SessionStatus.NO_SHOW),
        make_session(_at(3, 17)),
        # outside the window
        make_session(_at(2, 10)),
    ]


def test_analytics_is_staff_only(client, therapist_user, parent_user, auth):
    for user in (therapist_user, parent_user):
        response = client.get(
            "/api/v1/analytics/sessions/overview", params=MARCH, headers=auth(user)
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


def test_analytics_requires_login(client):
    response = client.get("/api/v1/analytics/workload")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_sessions_overview(client, coordinator_user, march_sessions, auth):
    response = client.get(
        "/api/v1/analytics/sessions/overview", params=MARCH, headers=auth(coordinator_user)
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()

    assert data["window"] == {
        "date_from": "2026-03-01",
        "date_to": "2026-03-31",
        "timezone": "America/Mexico_City",
    }
    assert data["totals"] == {"sessions": 5, "therapists": 1, "services": 1}
    assert data["metrics"]["completed_sessions"] == 3
    assert data["metrics"]["completion_rate"] == 60.0
    assert data["status_distribution"]["counts"]["NO_SHOW"] == 1
    assert data["utilization"]["total_therapists"] == 1


def test_default_window_is_last_30_days(client, coordinator_user, auth):
    data = client.get(
        "/api/v1/analytics/sessions/overview", headers=auth(coordinator_user)
    ).json()
    start = date.fromisoformat(data["window"]["date_from"])
    end = date.fromisoformat(data["window"]["date_to"])
    assert (end - start).days == 29
    assert data["metrics"]["total_sessions"] == 0


@pytest.mark.parametrize(
    "params",
    [
        {"date_from": "2026-03-10", "date_to": "2026-03-01"},
        {"date_from": "2020-01-01", "date_to": "2026-03-01"},
    ],
)
def test_bad_windows(client, coordinator_user, auth, params):
    response = client.get(
        "/api/v1/analytics/sessions/performance",
        params=params,
        headers=auth(coordinator_user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_unknown_group_by(client, coordinator_user, auth):
    response = client.get(
        "/api/v1/analytics/sessions/performance",
        params={**MARCH, "group_by": "fortnight"},
        headers=auth(coordinator_user),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_sessions_performance_by_week(client, coordinator_user, march_sessions, auth):
    data = client.get(
        "/api/v1/analytics/sessions/performance",
        params={**MARCH, "group_by": "week"},
        headers=auth(coordinator_user),
    ).json()

    periods = [p["period"] for p in data["performance"]]
    assert periods == ["2026-03-01", "2026-03-08", "2026-03-15", "2026-03-22", "2026-03-29"]
    assert data["performance"][0]["total_sessions"] == 3
    assert data["performance"][3]["total_sessions"] == 0
    assert data["summary"]["total_sessions"] == 5
    assert data["trend"]["direction"] == "decreasing"


def test_sessions_utilization(client, coordinator_user, therapist, march_sessions, auth, db_session):
    db_session.add(
        CapacityConfig(
            therapist_id=therapist.id,
            max_sessions_per_day=2,
            max_sessions_per_week=2,
            max_sessions_per_month=8,
            max_hours_per_day=2,
            max_hours_per_week=2,
            max_hours_per_month=8,
        )
    )
    db_session.commit()

    data = client.get(
        "/api/v1/analytics/sessions/utilization",
        params=MARCH,
        headers=auth(coordinator_user),
    ).json()
    row = data["utilization"][0]

    assert data["group_by"] == "week"
    assert row["therapist_name"] == "Ana Souza"
    assert row["total_sessions"] == 3
    # 3 sessions against 2 per week over 31 days
    assert row["session_utilization"] == round(3 / (2 * 31 / 7) * 100, 2)
    assert [p["sessions"] for p in row["periods"]] == [2, 1]


def test_sessions_trends(client, coordinator_user, march_sessions, auth):
    data = client.get(
        "/api/v1/analytics/sessions/trends",
        params={"date_from": "2026-03-01", "date_to": "2026-03-03"},
        headers=auth(coordinator_user),
    ).json()

    assert data["data"] == [
        {"period": "2026-03-01", "count": 0, "completed": 0},
        {"period": "2026-03-02", "count": 2, "completed": 2},
        {"period": "2026-03-03", "count": 1, "completed": 0},
    ]
    assert data["trend"] == {"direction": "decreasing", "percentage": 50.0}


def test_sessions_comparative(client, coordinator_user, march_sessions, auth):
    data = client.get(
        "/api/v1/analytics/sessions/comparative",
        params={"date_from": "2026-03-01", "date_to": "2026-03-28"},
        headers=auth(coordinator_user),
    ).json()

    assert data["comparison_period"]["date_from"] == "2026-02-01"
    assert data["comparison_period"]["date_to"] == "2026-02-28"
    total = data["comparison"]["total_sessions"]
    assert (total["current"], total["comparison"]) == (5, 1)
    assert total["direction"] == "increase"
    assert total["percentage_change"] == 400.0


def test_therapists_performance(client, coordinator_user, march_sessions, auth):
    data = client.get(
        "/api/v1/analytics/therapists/performance",
        params=MARCH,
        headers=auth(coordinator_user),
    ).json()
    row = data["therapists"][0]

    assert row["total_revenue"] == 240.0
    assert row["average_patient_satisfaction"] == 4.5
    assert row["by_category"]["psychology"]["sessions"] == 3


def test_workload(client, coordinator_user, therapist, march_sessions, auth):
    response = client.get(
        "/api/v1/analytics/workload", params=MARCH, headers=auth(coordinator_user)
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    entry = data["therapists"][0]

    assert entry["workload"]["therapist_id"] == therapist.id
    assert entry["workload"]["total_sessions"] == 3
    assert entry["projections"]["next_week"]["estimated_sessions"] > 0
    assert data["summary"]["total_therapists"] == 1


def test_workload_without_projections(client, coordinator_user, therapist, auth):
    data = client.get(
        "/api/v1/analytics/workload",
        params={**MARCH, "include_projections": "false"},
        headers=auth(coordinator_user),
    ).json()
    assert data["therapists"][0]["projections"] is None


def test_workload_unknown_therapist(client, coordinator_user, auth):
    response = client.get(
        "/api/v1/analytics/workload",
        params={**MARCH, "therapist_id": 999},
        headers=auth(coordinator_user),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_my_workload(client, therapist_user, march_sessions, auth):
    response = client.get(
        "/api/v1/analytics/workload/me", params=MARCH, headers=auth(therapist_user)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["summary"]["total_sessions"] == 3


def test_my_workload_needs_profile(client, therapist_user, auth):
    response = client.get("/api/v1/analytics/workload/me", headers=auth(therapist_user))
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.fixture
def payments(db_session, parent_user, patient):
    rows = [
        ("80.00", PaymentMethod.CARD, PaymentStatus.COMPLETED, _at(3, 2)),
        ("80.00", PaymentMethod.CASH, PaymentStatus.COMPLETED, _at(3, 9)),
        ("150.00", PaymentMethod.CARD, PaymentStatus.PENDING, _at(2, 20)),
    ]
    for amount, method, state, when in rows:
        db_session.add(
            Payment(
                parent_user_id=parent_user.id,
                patient_id=patient.id,
                amount=Decimal(amount),
                payment_method=method,
                type=PaymentType.SESSION,
                status=state,
                created_at=when,
            )
        )
    db_session.commit()


def test_payment_statistics_all_time(client, coordinator_user, parent_user, payments, auth):
    data = client.get(
        "/api/v1/analytics/payments/statistics", headers=auth(coordinator_user)
    ).json()

    assert data["total_payments"] == 3
    assert data["total_amount"] == 310.0
    assert data["payment_methods"]["CARD"] == {"count": 2, "total": 230.0}
    assert data["top_parents"][0]["parent_name"] == "Parent User"
    assert [m["month"] for m in data["monthly_trends"]] == ["2026-02", "2026-03"]


def test_payment_statistics_filters(client, coordinator_user, payments, auth):
    data = client.get(
        "/api/v1/analytics/payments/statistics",
        params={**MARCH, "status": "COMPLETED", "payment_method": "CASH"},
        headers=auth(coordinator_user),
    ).json()
    assert data["total_payments"] == 1
    assert data["status_breakdown"] == {"COMPLETED": 1}


def test_payment_statistics_needs_both_dates(client, coordinator_user, auth):
    response = client.get(
        "/api/v1/analytics/payments/statistics",
        params={"date_from": "2026-03-01"},
        headers=auth(coordinator_user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.fixture
def progress(db_session, patient, therapist, other_therapist):
    for day, score, owner in ((2, 40, therapist), (9, 45, therapist), (16, 60, therapist), (23, 70, other_therapist)):
        db_session.add(
            ProgressEntry(
                patient_id=patient.id,
                therapist_id=owner.id,
                entry_date=_at(3, day),
                entry_type=EntryType.SESSION,
                overall_progress=score,
                goals_total=2,
                goals_completed=1,
            )
        )
    db_session.commit()


def test_progress_overview_staff(client, coordinator_user, progress, auth):
    data = client.get(
        "/api/v1/analytics/progress/overview", params=MARCH, headers=auth(coordinator_user)
    ).json()

    assert data["total_entries"] == 4
    assert data["goals"]["completion_rate"] == 50.0
    assert data["trend"] == "improving"


def test_progress_overview_is_scoped_for_therapists(
    client, therapist_user, other_therapist, progress, auth
):
    data = client.get(
        "/api/v1/analytics/progress/overview",
        params={**MARCH, "therapist_id": other_therapist.id},
        headers=auth(therapist_user),
    ).json()
    # the therapist_id filter is ignored; only their own entries count
    assert data["total_entries"] == 3


def test_progress_trends(client, coordinator_user, progress, auth):
    data = client.get(
        "/api/v1/analytics/progress/trends",
        params={**MARCH, "group_by": "week"},
        headers=auth(coordinator_user),
    ).json()

    assert len(data["trends"]) == 5
    assert data["trends"][0]["average_progress"] == 40.0
    assert data["progress_direction"] == "improving"
