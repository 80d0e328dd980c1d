import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("CLINIC_TZ", "America/Mexico_City")
os.environ.setdefault("LOG_JSON", "false")

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import clinic.db.base  # noqa: F401
from clinic.core.security import create_access_token, hash_password
from clinic.db.base_class import Base
from clinic.models.patient import Patient
from clinic.models.service import Service, ServiceType
from clinic.models.therapist import Therapist
from clinic.models.therapy_session import SessionStatus, TherapySession
from clinic.models.user import Role, User

PASSWORD = "TestPass123!"


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def TestingSessionLocal(engine):
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


@pytest.fixture
def override_get_db(TestingSessionLocal):
    """Override the database dependency to use our test database."""

    def _override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    return _override_get_db


@pytest.fixture
def db_session(TestingSessionLocal):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(override_get_db):
    """Create a test client for API tests."""
    from fastapi.testclient import TestClient

    from clinic.db import get_db
    from clinic.main import app

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def _make_user(db, name: str, email: str, role: Role) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(PASSWORD),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth():
    """Bearer header for a user."""

    def _auth(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}

    return _auth


@pytest.fixture
def parent_user(db_session):
    return _make_user(db_session, "Parent User", "parent@example.com", Role.PARENT)


@pytest.fixture
def therapist_user(db_session):
    return _make_user(
        db_session, "Therapist User", "therapist@example.com", Role.THERAPIST
    )


@pytest.fixture
def coordinator_user(db_session):
    return _make_user(
        db_session, "Coordinator User", "coordinator@example.com", Role.COORDINATOR
    )


@pytest.fixture
def admin_user(db_session):
    return _make_user(db_session, "Admin User", "admin@example.com", Role.ADMIN)


@pytest.fixture
def therapist(db_session, therapist_user):
    t = Therapist(
        first_name="Ana",
        last_name="Souza",
        specialty="Psychology",
        user_id=therapist_user.id,
    )
    db_session.add(t)
    db_session.commit()
    db_session.refresh(t)
    return t


@pytest.fixture
def other_therapist(db_session):
    t = Therapist(first_name="Bruno", last_name="Lima", specialty="Speech therapy")
    db_session.add(t)
    db_session.commit()
    db_session.refresh(t)
    return t


@pytest.fixture
def patient(db_session, parent_user):
    p = Patient(first_name="Alice", last_name="Lima", parent_user_id=parent_user.id)
    db_session.add(p)
    db_session.commit()
    db_session.refresh(p)
    return p


@pytest.fixture
def service(db_session):
    s = Service(
        code="PSY",
        name="Psychotherapy",
        type=ServiceType.TREATMENT,
        category="psychology",
        duration_minutes=60,
        price=Decimal("80.00"),
    )
    db_session.add(s)
    db_session.commit()
    db_session.refresh(s)
    return s


@pytest.fixture
def make_session(db_session, patient, therapist, service):
    """Factory for sessions at a UTC instant."""

    def _make(
        when: datetime,
        status: SessionStatus = SessionStatus.COMPLETED,
        *,
        therapist_id: int | None = None,
        duration: int = 60,
        **extra,
    ) -> TherapySession:
        s = TherapySession(
            patient_id=patient.id,
            therapist_id=therapist_id or therapist.id,
            service_id=service.id,
            status=status,
            scheduled_at=when.astimezone(UTC),
            duration_minutes=duration,
            **extra,
        )
        db_session.add(s)
        db_session.commit()
        db_session.refresh(s)
        return s

    return _make
