from fastapi import status

from clinic.core.security import hash_password
from clinic.main import cors_origins
from clinic.models.audit_log import AuditLog
from clinic.models.user import Role, User

PASSWORD = "TestPass123!"


def _login(client, email, password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def test_login_success(client, coordinator_user, db_session):
    """Test successful user login."""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "coordinator@example.com", "password": PASSWORD},
        headers={"X-Request-ID": "login-1"},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"
    assert "access_token" in response.cookies

    audit = db_session.query(AuditLog).filter_by(action="LOGIN").one()
    assert audit.user_id == coordinator_user.id
    assert audit.request_id == "login-1"


def test_login_invalid_credentials(client, coordinator_user):
    response = _login(client, "coordinator@example.com", "wrongpassword")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Invalid credentials"


def test_login_nonexistent_user(client):
    response = _login(client, "nobody@example.com")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_inactive_user(client, db_session):
    db_session.add(
        User(
            name="Inactive User",
            email="inactive@example.com",
            password_hash=hash_password(PASSWORD),
            role=Role.PARENT,
            is_active=False,
        )
    )
    db_session.commit()

    response = _login(client, "inactive@example.com")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_me_endpoint_authenticated(client, therapist_user, auth):
    response = client.get("/api/v1/auth/me", headers=auth(therapist_user))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == therapist_user.id
    assert data["email"] == "therapist@example.com"
    assert data["role"] == "THERAPIST"
    assert data["is_active"] is True


def test_me_endpoint_unauthenticated(client):
    response = client.get("/api/v1/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_me_rejects_refresh_token(client, coordinator_user):
    refresh = _login(client, "coordinator@example.com").json()["refresh_token"]
    client.cookies.clear()

    response = client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {refresh}"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_logout(client):
    response = client.post("/api/v1/auth/logout")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"ok": True}


def test_refresh_token(client, coordinator_user):
    refresh = _login(client, "coordinator@example.com").json()["refresh_token"]

    response = client.post(
        "/api/v1/auth/refresh", headers={"Authorization": f"Bearer {refresh}"}
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["access_token"]


def test_refresh_with_invalid_token(client):
    response = client.post(
        "/api/v1/auth/refresh", headers={"Authorization": "Bearer nope"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_healthz_and_security_headers(client):
    response = client.get("/healthz")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "default-src 'none'" in response.headers["Content-Security-Policy"]
    assert response.headers["X-Request-ID"]


def test_request_id_is_echoed(client):
    response = client.get("/version", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.json()["name"] == "clinic-analytics"


def test_cors_origins_accepts_bare_hosts_and_urls():
    assert cors_origins("example.com, https://app.example.com,,") == [
        "http://example.com",
        "https://example.com",
        "https://app.example.com",
    ]
