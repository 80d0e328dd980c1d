"""ORM reads feeding the analytics layer.

Each fetch returns flat records from ``clinic.analytics.records``; the route
handlers never pass ORM objects into the calculations. A SQLAlchemy Session is
not thread-safe, so the fetches of one request run one after another.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload, selectinload

from clinic.analytics.records import (
    PaymentRecord,
    ProgressRecord,
    ProposalRecord,
    SessionRecord,
)
from clinic.analytics.workload import CapacityLimits
from clinic.models.capacity import CapacityConfig
from clinic.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from clinic.models.progress import ProgressEntry
from clinic.models.proposal import TherapeuticProposal
from clinic.models.service import Service
from clinic.models.therapist import Therapist
from clinic.models.therapy_session import SessionStatus, TherapySession
from clinic.models.user import User
from clinic.utils.tz import as_aware_utc


def _label(value) -> str | None:
    if value is None:
        return None
    return getattr(value, "value", str(value))


def to_session_record(s: TherapySession) -> SessionRecord:
    return SessionRecord(
        id=s.id,
        therapist_id=s.therapist_id,
        scheduled_at=as_aware_utc(s.scheduled_at),
        status=_label(s.status),
        duration_minutes=s.duration_minutes,
        therapist_name=s.therapist.full_name if s.therapist else None,
        patient_id=s.patient_id,
        service_id=s.service_id,
        service_name=s.service.name if s.service else None,
        service_category=(s.service.category if s.service else None),
        price=Decimal(s.service.price) if s.service else Decimal("0"),
        actual_duration_minutes=s.actual_duration_minutes,
        patient_satisfaction=s.patient_satisfaction,
        therapist_satisfaction=s.therapist_satisfaction,
    )


def fetch_sessions(
    db: Session,
    start_utc: datetime,
    end_utc: datetime,
    *,
    therapist_id: int | None = None,
    service_id: int | None = None,
    statuses: Iterable[SessionStatus] | None = None,
) -> list[SessionRecord]:
    """Sessions scheduled in [start_utc, end_utc), oldest first."""
    stmt = (
        select(TherapySession)
        .options(
            joinedload(TherapySession.therapist), joinedload(TherapySession.service)
        )
        .where(
            TherapySession.scheduled_at >= start_utc,
            TherapySession.scheduled_at < end_utc,
        )
        .order_by(TherapySession.scheduled_at.asc(), TherapySession.id.asc())
    )
    if therapist_id is not None:
        stmt = stmt.where(TherapySession.therapist_id == therapist_id)
    if service_id is not None:
        stmt = stmt.where(TherapySession.service_id == service_id)
    if statuses is not None:
        stmt = stmt.where(TherapySession.status.in_(list(statuses)))
    return [to_session_record(s) for s in db.scalars(stmt).unique()]


def fetch_payments(
    db: Session,
    start_utc: datetime | None = None,
    end_utc: datetime | None = None,
    *,
    parent_id: int | None = None,
    method: PaymentMethod | None = None,
    type_: PaymentType | None = None,
    status: PaymentStatus | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
) -> list[PaymentRecord]:
    stmt = (
        select(Payment, User.name)
        .join(User, User.id == Payment.parent_user_id)
        .order_by(Payment.created_at.asc(), Payment.id.asc())
    )
    if start_utc is not None:
        stmt = stmt.where(Payment.created_at >= start_utc)
    if end_utc is not None:
        stmt = stmt.where(Payment.created_at < end_utc)
    if parent_id is not None:
        stmt = stmt.where(Payment.parent_user_id == parent_id)
    if method is not None:
        stmt = stmt.where(Payment.payment_method == method)
    if type_ is not None:
        stmt = stmt.where(Payment.type == type_)
    if status is not None:
        stmt = stmt.where(Payment.status == status)
    if min_amount is not None:
        stmt = stmt.where(Payment.amount >= min_amount)
    if max_amount is not None:
        stmt = stmt.where(Payment.amount <= max_amount)

    return [
        PaymentRecord(
            id=p.id,
            parent_id=p.parent_user_id,
            amount=Decimal(p.amount),
            type=_label(p.type),
            status=_label(p.status),
            created_at=as_aware_utc(p.created_at),
            method=_label(p.payment_method),
            parent_name=parent_name,
        )
        for p, parent_name in db.execute(stmt).all()
    ]


def fetch_proposals(
    db: Session,
    start_utc: datetime,
    end_utc: datetime,
    *,
    therapist_id: int | None = None,
) -> list[ProposalRecord]:
    """Proposals created in [start_utc, end_utc), oldest first."""
    stmt = (
        select(TherapeuticProposal)
        .options(
            joinedload(TherapeuticProposal.therapist),
            selectinload(TherapeuticProposal.services),
        )
        .where(
            TherapeuticProposal.created_at >= start_utc,
            TherapeuticProposal.created_at < end_utc,
        )
        .order_by(TherapeuticProposal.created_at.asc(), TherapeuticProposal.id.asc())
    )
    if therapist_id is not None:
        stmt = stmt.where(TherapeuticProposal.therapist_id == therapist_id)

    return [
        ProposalRecord(
            id=p.id,
            therapist_id=p.therapist_id,
            status=_label(p.status),
            created_at=as_aware_utc(p.created_at),
            value=sum(
                (Decimal(ln.unit_price) * ln.session_count for ln in p.services),
                Decimal("0"),
            ),
            reviewed_at=as_aware_utc(p.reviewed_at) if p.reviewed_at else None,
            therapist_name=p.therapist.full_name if p.therapist else None,
        )
        for p in db.scalars(stmt).unique()
    ]


def fetch_progress(
    db: Session,
    start_utc: datetime,
    end_utc: datetime,
    *,
    patient_id: int | None = None,
    therapist_id: int | None = None,
) -> list[ProgressRecord]:
    stmt = (
        select(ProgressEntry)
        .where(
            ProgressEntry.entry_date >= start_utc, ProgressEntry.entry_date < end_utc
        )
        .order_by(ProgressEntry.entry_date.asc(), ProgressEntry.id.asc())
    )
    if patient_id is not None:
        stmt = stmt.where(ProgressEntry.patient_id == patient_id)
    if therapist_id is not None:
        stmt = stmt.where(ProgressEntry.therapist_id == therapist_id)

    return [
        ProgressRecord(
            id=e.id,
            patient_id=e.patient_id,
            entry_date=as_aware_utc(e.entry_date),
            entry_type=_label(e.entry_type),
            validation_status=_label(e.validation_status),
            overall_progress=e.overall_progress,
            therapist_id=e.therapist_id,
            risk_level=_label(e.risk_level),
            goals_total=e.goals_total,
            goals_completed=e.goals_completed,
            emotional_score=e.emotional_score,
            cognitive_score=e.cognitive_score,
            social_score=e.social_score,
            physical_score=e.physical_score,
            treatment_adherence=e.treatment_adherence,
        )
        for e in db.scalars(stmt)
    ]


def count_active_therapists(db: Session) -> int:
    return db.scalar(
        select(func.count(Therapist.id)).where(Therapist.is_active == True)  # noqa: E712
    ) or 0


def count_active_services(db: Session) -> int:
    return db.scalar(
        select(func.count(Service.id)).where(Service.is_active == True)  # noqa: E712
    ) or 0


def active_therapists(db: Session, therapist_id: int | None = None) -> list[Therapist]:
    stmt = select(Therapist).order_by(Therapist.id)
    if therapist_id is not None:
        stmt = stmt.where(Therapist.id == therapist_id)
    else:
        stmt = stmt.where(Therapist.is_active == True)  # noqa: E712
    return list(db.scalars(stmt))


def capacity_limits(
    db: Session, therapist_ids: Iterable[int]
) -> dict[int, CapacityLimits]:
    """Configured limits per therapist; ids without a row get the defaults."""
    ids = list(therapist_ids)
    configs = {
        c.therapist_id: c
        for c in db.scalars(
            select(CapacityConfig).where(CapacityConfig.therapist_id.in_(ids))
        )
    } if ids else {}
    return {tid: CapacityLimits.from_config(configs.get(tid)) for tid in ids}
