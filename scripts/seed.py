# scripts/seed.py
from __future__ import annotations

import os
import random
from collections.abc import Iterable
from datetime import UTC, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from clinic.core.security import hash_password, validate_password_policy
from clinic.db import get_db
from clinic.models.capacity import CapacityConfig
from clinic.models.patient import Patient
from clinic.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from clinic.models.progress import EntryType, ProgressEntry, RiskLevel, ValidationStatus
from clinic.models.proposal import ProposalService, ProposalStatus, TherapeuticProposal
from clinic.models.service import Service, ServiceType
from clinic.models.therapist import Therapist
from clinic.models.therapy_session import SessionStatus, TherapySession
from clinic.models.user import Role, User
from clinic.utils.tz import clinic_tz

# ---------------- ENV knobs ----------------
SEED_DAYS = int(os.getenv("SEED_DAYS", "60"))
SEED_PASSWORD = os.getenv("SEED_PASSWORD", "Secret123!")
random.seed(int(os.getenv("SEED_RANDOM", "42")))

# ---------------- Sample data ----------------
THERAPISTS_DATA = [
    ("Ana", "Souza", "Psychology"),
    ("Bruno", "Lima", "Speech therapy"),
    ("Carla", "Dias", "Occupational therapy"),
]

PARENTS_DATA = [
    ("Marcos Lima", ("Alice", "Lima")),
    ("Patricia Alves", ("Bruno", "Alves")),
    ("Roberta Dias", ("Clara", "Dias")),
    ("Carlos Nogueira", ("Diego", "Nogueira")),
]

SERVICES_DATA = [
    ("EVAL", "Initial evaluation", ServiceType.EVALUATION, "evaluation", 90, "150.00"),
    ("PSY", "Psychotherapy session", ServiceType.TREATMENT, "psychology", 60, "80.00"),
    ("SPEECH", "Speech therapy", ServiceType.TREATMENT, "speech", 45, "60.00"),
    ("OT", "Occupational therapy", ServiceType.TREATMENT, "occupational", 60, "70.00"),
    ("FUP", "Follow-up", ServiceType.FOLLOW_UP, "follow_up", 30, "40.00"),
]

SLOTS = (time(9), time(10, 30), time(14), time(15, 30))

SESSION_OUTCOMES = [
    (SessionStatus.COMPLETED, 70),
    (SessionStatus.CANCELLED, 12),
    (SessionStatus.NO_SHOW, 8),
    (SessionStatus.CONFIRMED, 10),
]


# ---------------- Helpers ----------------
def _now_utc() -> datetime:
    return datetime.now(UTC)


def get_session() -> Session:
    gen = get_db()
    return next(gen)


def _business_days(n_days: int) -> Iterable[datetime]:
    """Local midnights of the last ``n_days`` weekdays, oldest first."""
    tz = clinic_tz()
    today = _now_utc().astimezone(tz).date()
    for offset in range(n_days, 0, -1):
        d = today - timedelta(days=offset)
        if d.weekday() < 5:
            yield datetime(d.year, d.month, d.day, tzinfo=tz)


def _pick_outcome() -> SessionStatus:
    statuses, weights = zip(*SESSION_OUTCOMES)
    return random.choices(statuses, weights=weights)[0]


# ---------------- Seed steps ----------------
def ensure_user(db: Session, *, name: str, email: str, role: Role) -> User:
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        return user

    user = User(
        name=name,
        email=email,
        role=role,
        password_hash=hash_password(SEED_PASSWORD),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"[Seed] User created: {user.name} ({user.email}) - role {user.role.value}")
    return user


def ensure_therapists(db: Session) -> list[Therapist]:
    therapists = []
    for i, (first, last, specialty) in enumerate(THERAPISTS_DATA):
        user = ensure_user(
            db,
            name=f"{first} {last}",
            email=f"therapist{i + 1}@example.com",
            role=Role.THERAPIST,
        )
        therapist = db.execute(
            select(Therapist).where(Therapist.user_id == user.id)
        ).scalar_one_or_none()
        if not therapist:
            therapist = Therapist(
                first_name=first,
                last_name=last,
                specialty=specialty,
                user_id=user.id,
            )
            db.add(therapist)
            db.flush()
            # the first therapist gets a tighter agenda
            if i == 0:
                db.add(
                    CapacityConfig(
                        therapist_id=therapist.id,
                        max_sessions_per_day=6,
                        max_sessions_per_week=25,
                        max_sessions_per_month=100,
                        max_hours_per_day=6,
                        max_hours_per_week=25,
                        max_hours_per_month=100,
                        preferred_session_minutes=60,
                    )
                )
            db.commit()
            db.refresh(therapist)
            print(f"[Seed] Therapist created: {therapist.full_name}")
        therapists.append(therapist)
    return therapists


def ensure_services(db: Session) -> list[Service]:
    services = []
    for code, name, type_, category, minutes, price in SERVICES_DATA:
        service = db.execute(
            select(Service).where(Service.code == code)
        ).scalar_one_or_none()
        if not service:
            service = Service(
                code=code,
                name=name,
                type=type_,
                category=category,
                duration_minutes=minutes,
                price=Decimal(price),
            )
            db.add(service)
            db.commit()
            db.refresh(service)
            print(f"[Seed] Service created: {service.name}")
        services.append(service)
    return services


def ensure_patients(db: Session) -> list[Patient]:
    patients = []
    for i, (parent_name, (first, last)) in enumerate(PARENTS_DATA):
        parent = ensure_user(
            db, name=parent_name, email=f"parent{i + 1}@example.com", role=Role.PARENT
        )
        patient = db.execute(
            select(Patient).where(
                Patient.parent_user_id == parent.id, Patient.first_name == first
            )
        ).scalar_one_or_none()
        if not patient:
            patient = Patient(first_name=first, last_name=last, parent_user_id=parent.id)
            db.add(patient)
            db.commit()
            db.refresh(patient)
            print(f"[Seed] Patient created: {patient.full_name}")
        patients.append(patient)
    return patients


def ensure_sessions(
    db: Session,
    therapists: list[Therapist],
    patients: list[Patient],
    services: list[Service],
    days: int,
) -> list[TherapySession]:
    print("[Seed] Generating sessions, payments and progress...")
    created: list[TherapySession] = []

    for day in _business_days(days):
        for therapist in therapists:
            for slot in SLOTS:
                # ~65% of slots get booked
                if random.random() > 0.65:
                    continue
                start = datetime.combine(day.date(), slot, tzinfo=day.tzinfo).astimezone(UTC)
                exists = db.execute(
                    select(TherapySession.id).where(
                        TherapySession.therapist_id == therapist.id,
                        TherapySession.scheduled_at == start,
                    )
                ).scalar_one_or_none()
                if exists:
                    continue

                service = random.choice(services)
                status = _pick_outcome()
                s = TherapySession(
                    patient_id=random.choice(patients).id,
                    therapist_id=therapist.id,
                    service_id=service.id,
                    status=status,
                    scheduled_at=start,
                    duration_minutes=service.duration_minutes,
                )
                if status == SessionStatus.COMPLETED:
                    s.started_at = start
                    s.actual_duration_minutes = service.duration_minutes + random.choice(
                        (-5, 0, 0, 5, 20)
                    )
                    s.completed_at = start + timedelta(minutes=s.actual_duration_minutes)
                    s.patient_satisfaction = random.randint(3, 5)
                    s.therapist_satisfaction = random.randint(3, 5)
                db.add(s)
                created.append(s)
    db.commit()
    print(f"[Seed] {len(created)} sessions created.")
    return created


def ensure_payments(db: Session, sessions: list[TherapySession]) -> None:
    total = 0
    for s in sessions:
        if s.status != SessionStatus.COMPLETED:
            continue
        patient = db.get(Patient, s.patient_id)
        service = db.get(Service, s.service_id)
        status = random.choices(
            (PaymentStatus.COMPLETED, PaymentStatus.PENDING, PaymentStatus.FAILED),
            weights=(85, 10, 5),
        )[0]
        db.add(
            Payment(
                parent_user_id=patient.parent_user_id,
                patient_id=patient.id,
                amount=service.price,
                currency=service.currency,
                payment_method=random.choice(list(PaymentMethod)),
                type=PaymentType.EVALUATION
                if service.type == ServiceType.EVALUATION
                else PaymentType.SESSION,
                status=status,
                paid_at=s.completed_at if status == PaymentStatus.COMPLETED else None,
                created_at=s.completed_at,
            )
        )
        total += 1
    db.commit()
    print(f"[Seed] {total} payments created.")


def ensure_progress(db: Session, sessions: list[TherapySession]) -> None:
    score: dict[int, int] = {}
    total = 0
    for s in sessions:
        if s.status != SessionStatus.COMPLETED or random.random() > 0.5:
            continue
        # patients drift upwards over time
        current = min(100, score.get(s.patient_id, random.randint(25, 45)) + random.randint(-3, 6))
        current = max(0, current)
        score[s.patient_id] = current
        goals_total = random.randint(2, 6)
        db.add(
            ProgressEntry(
                patient_id=s.patient_id,
                therapist_id=s.therapist_id,
                entry_date=s.completed_at,
                entry_type=random.choice(
                    (EntryType.SESSION, EntryType.SESSION, EntryType.OBSERVATION)
                ),
                validation_status=random.choice(list(ValidationStatus)),
                overall_progress=current,
                risk_level=random.choice((None, *RiskLevel)),
                goals_total=goals_total,
                goals_completed=random.randint(0, goals_total),
                emotional_score=random.uniform(40, 90),
                cognitive_score=random.uniform(40, 90),
                social_score=random.uniform(40, 90),
                physical_score=None,
                treatment_adherence=random.uniform(60, 100),
            )
        )
        total += 1
    db.commit()
    print(f"[Seed] {total} progress entries created.")


def ensure_proposal(
    db: Session, therapists: list[Therapist], patients: list[Patient], services: list[Service]
) -> None:
    if db.execute(select(TherapeuticProposal.id).limit(1)).scalar_one_or_none():
        return
    proposal = TherapeuticProposal(
        patient_id=patients[0].id,
        therapist_id=therapists[0].id,
        status=ProposalStatus.SUBMITTED,
        cost_options={
            "include_discounts": True,
            "discount_percentage": "10",
            "include_taxes": True,
            "tax_rate": "8",
        },
    )
    for service, count in zip(services[:3], (1, 12, 8)):
        proposal.services.append(
            ProposalService(
                service_id=service.id, session_count=count, unit_price=service.price
            )
        )
    db.add(proposal)
    db.commit()
    print("[Seed] Sample proposal created.")


def check_tables_exist(db: Session) -> bool:
    """Check if all required tables exist in the database."""
    required_tables = [
        "users",
        "therapists",
        "patients",
        "services",
        "therapy_sessions",
        "payments",
        "progress_entries",
        "therapeutic_proposals",
    ]
    try:
        for table in required_tables:
            db.execute(text(f"SELECT 1 FROM {table} LIMIT 1"))
        return True
    except (ProgrammingError, OperationalError):
        return False


def main():
    print("[Seed] Seeding the database...")
    try:
        validate_password_policy(SEED_PASSWORD)
    except ValueError as e:
        print(f"[Seed] SEED_PASSWORD rejected. {e}")
        return
    db = None
    try:
        db = get_session()

        if not check_tables_exist(db):
            print("[Seed] Error: database tables are missing.")
            print("[Seed] Run the migrations first:")
            print("     alembic upgrade head")
            return

        ensure_user(db, name="Admin", email="admin@example.com", role=Role.ADMIN)
        ensure_user(
            db, name="Coordination", email="coordinator@example.com", role=Role.COORDINATOR
        )
        therapists = ensure_therapists(db)
        services = ensure_services(db)
        patients = ensure_patients(db)
        sessions = ensure_sessions(db, therapists, patients, services, SEED_DAYS)
        ensure_payments(db, sessions)
        ensure_progress(db, sessions)
        ensure_proposal(db, therapists, patients, services)

        print("\n[Seed] Done!")
        print("-------------------------------------------------")
        print(f"Users (password: {SEED_PASSWORD!r}):")
        print("- admin@example.com (Admin)")
        print("- coordinator@example.com (Coordinator)")
        for i in range(len(THERAPISTS_DATA)):
            print(f"- therapist{i + 1}@example.com (Therapist)")
        for i in range(len(PARENTS_DATA)):
            print(f"- parent{i + 1}@example.com (Parent)")
        print("-------------------------------------------------")
    except Exception as e:
        print(f"[Seed] Error while seeding: {e}")
        raise
    finally:
        if db:
            db.close()


if __name__ == "__main__":
    main()
