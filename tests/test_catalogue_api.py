from fastapi import status

from clinic.models.capacity import CapacityConfig


def test_create_and_list_services(client, coordinator_user, therapist_user, auth):
    payload = {
        "code": "EVAL",
        "name": "Initial evaluation",
        "type": "EVALUATION",
        "category": "evaluation",
        "duration_minutes": 90,
        "price": "150.00",
    }
    created = client.post("/api/v1/services", json=payload, headers=auth(coordinator_user))
    assert created.status_code == status.HTTP_201_CREATED

    duplicate = client.post(
        "/api/v1/services", json=payload, headers=auth(coordinator_user)
    )
    assert duplicate.status_code == status.HTTP_409_CONFLICT

    listed = client.get("/api/v1/services", headers=auth(therapist_user))
    assert listed.status_code == status.HTTP_200_OK
    assert [s["code"] for s in listed.json()] == ["EVAL"]


def test_create_therapist_requires_therapist_user(
    client, admin_user, parent_user, therapist_user, auth
):
    headers = auth(admin_user)
    bad = client.post(
        "/api/v1/therapists",
        json={"first_name": "X", "last_name": "Y", "user_id": parent_user.id},
        headers=headers,
    )
    assert bad.status_code == status.HTTP_400_BAD_REQUEST

    ok = client.post(
        "/api/v1/therapists",
        json={"first_name": "Ana", "last_name": "Souza", "user_id": therapist_user.id},
        headers=headers,
    )
    assert ok.status_code == status.HTTP_201_CREATED
    assert ok.json()["full_name"] == "Ana Souza"


def test_list_therapists_filter(client, therapist, other_therapist, parent_user, auth):
    response = client.get(
        "/api/v1/therapists", params={"q": "speech"}, headers=auth(parent_user)
    )
    assert [t["id"] for t in response.json()] == [other_therapist.id]


def test_capacity_upsert(client, coordinator_user, therapist, auth, db_session):
    limits = {
        "max_sessions_per_day": 6,
        "max_sessions_per_week": 25,
        "max_sessions_per_month": 100,
        "max_hours_per_day": 6,
        "max_hours_per_week": 25,
        "max_hours_per_month": 100,
    }
    url = f"/api/v1/therapists/{therapist.id}/capacity"
    first = client.put(url, json=limits, headers=auth(coordinator_user))
    assert first.status_code == status.HTTP_200_OK
    assert first.json()["preferred_session_minutes"] == 60

    second = client.put(
        url, json={**limits, "max_sessions_per_day": 5}, headers=auth(coordinator_user)
    )
    assert second.json()["max_sessions_per_day"] == 5
    assert db_session.query(CapacityConfig).count() == 1


def test_capacity_limits_are_validated(client, coordinator_user, therapist, auth):
    response = client.put(
        f"/api/v1/therapists/{therapist.id}/capacity",
        json={
            "max_sessions_per_day": 30,
            "max_sessions_per_week": 25,
            "max_sessions_per_month": 100,
            "max_hours_per_day": 6,
            "max_hours_per_week": 25,
            "max_hours_per_month": 100,
        },
        headers=auth(coordinator_user),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_parents_only_see_their_children(
    client, patient, parent_user, coordinator_user, auth, db_session
):
    from clinic.models.patient import Patient
    from clinic.models.user import Role, User

    other_parent = User(
        name="Other", email="other@example.com", password_hash="x", role=Role.PARENT
    )
    db_session.add(other_parent)
    db_session.commit()
    db_session.add(Patient(first_name="Bob", last_name="Q", parent_user_id=other_parent.id))
    db_session.commit()

    mine = client.get("/api/v1/patients", headers=auth(parent_user)).json()
    assert [p["id"] for p in mine] == [patient.id]

    everyone = client.get("/api/v1/patients", headers=auth(coordinator_user)).json()
    assert len(everyone) == 2

    hidden = client.get(f"/api/v1/patients/{patient.id}", headers=auth(other_parent))
    assert hidden.status_code == status.HTTP_404_NOT_FOUND


def test_record_payment(client, coordinator_user, parent_user, patient, auth):
    response = client.post(
        "/api/v1/payments",
        json={
            "parent_user_id": parent_user.id,
            "patient_id": patient.id,
            "amount": "80.00",
            "payment_method": "CARD",
            "status": "COMPLETED",
        },
        headers=auth(coordinator_user),
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["type"] == "SESSION"


def test_payment_for_someone_elses_child(client, coordinator_user, patient, db_session, auth):
    from clinic.models.user import Role, User

    stranger = User(
        name="Stranger", email="stranger@example.com", password_hash="x", role=Role.PARENT
    )
    db_session.add(stranger)
    db_session.commit()

    response = client.post(
        "/api/v1/payments",
        json={"parent_user_id": stranger.id, "patient_id": patient.id, "amount": "10.00"},
        headers=auth(coordinator_user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
