from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic.audit.helpers import record_audit
from clinic.core.logging import get_logger
from clinic.db import get_db
from clinic.deps import require_roles
from clinic.models.patient import Patient
from clinic.models.service import Service
from clinic.models.therapist import Therapist
from clinic.models.therapy_session import ACTIVE_STATUSES, SessionStatus, TherapySession
from clinic.models.user import Role, User
from clinic.schemas.sessions import SessionCreateIn, SessionOut, SessionStatusIn
from clinic.utils.tz import as_aware_utc, ensure_aware_utc

router = APIRouter(prefix="/sessions", tags=["sessions"])
log = get_logger(__name__)

# Longest session we look back for when checking overlaps
MAX_LOOKBACK = timedelta(hours=8)

ALLOWED_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.SCHEDULED: {
        SessionStatus.CONFIRMED,
        SessionStatus.IN_PROGRESS,
        SessionStatus.CANCELLED,
        SessionStatus.NO_SHOW,
        SessionStatus.RESCHEDULE_REQUESTED,
    },
    SessionStatus.CONFIRMED: {
        SessionStatus.IN_PROGRESS,
        SessionStatus.CANCELLED,
        SessionStatus.NO_SHOW,
        SessionStatus.RESCHEDULE_REQUESTED,
    },
    SessionStatus.IN_PROGRESS: {SessionStatus.COMPLETED, SessionStatus.CANCELLED},
    SessionStatus.RESCHEDULE_REQUESTED: {
        SessionStatus.SCHEDULED,
        SessionStatus.CANCELLED,
    },
    SessionStatus.COMPLETED: set(),
    SessionStatus.CANCELLED: set(),
    SessionStatus.NO_SHOW: set(),
}


def _overlaps(
    db: Session, therapist_id: int, start: datetime, end: datetime
) -> bool:
    candidates = db.scalars(
        select(TherapySession).where(
            TherapySession.therapist_id == therapist_id,
            TherapySession.status.in_(ACTIVE_STATUSES),
            TherapySession.scheduled_at >= start - MAX_LOOKBACK,
            TherapySession.scheduled_at < end,
        )
    )
    for other in candidates:
        o_start = as_aware_utc(other.scheduled_at)
        o_end = o_start + timedelta(minutes=other.duration_minutes)
        if o_start < end and start < o_end:
            return True
    return False


def _out(s: TherapySession) -> SessionOut:
    out = SessionOut.model_validate(s)
    out.scheduled_at = as_aware_utc(s.scheduled_at)
    return out


@router.post("", response_model=SessionOut, status_code=201)
def create_session(
    payload: SessionCreateIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(Role.COORDINATOR, Role.ADMIN))],
    db: Session = Depends(get_db),
):
    patient = db.get(Patient, payload.patient_id)
    if not patient or not patient.is_active:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Patient not found")
    therapist = db.get(Therapist, payload.therapist_id)
    if not therapist or not therapist.is_active:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Therapist not found")

    duration = payload.duration_minutes
    if payload.service_id is not None:
        service = db.get(Service, payload.service_id)
        if not service or not service.is_active:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "Service not found")
        if "duration_minutes" not in payload.model_fields_set:
            duration = service.duration_minutes

    start = ensure_aware_utc(payload.scheduled_at)
    end = start + timedelta(minutes=duration)
    if _overlaps(db, therapist.id, start, end):
        raise HTTPException(
            status.HTTP_409_CONFLICT, "Therapist already has a session in that slot"
        )

    s = TherapySession(
        patient_id=patient.id,
        therapist_id=therapist.id,
        service_id=payload.service_id,
        status=SessionStatus.SCHEDULED,
        scheduled_at=start,
        duration_minutes=duration,
        notes=payload.notes,
    )
    db.add(s)
    db.flush()
    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action="CREATE",
        entity="session",
        entity_id=s.id,
    )

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # race on (therapist_id, scheduled_at)
        if "uq_session_therapist_start" in str(e.orig) or "unique" in str(e.orig).lower():
            raise HTTPException(
                status.HTTP_409_CONFLICT,
                "The slot was just taken; pick another time.",
            ) from e
        raise

    db.refresh(s)
    log.info("session.created", session_id=s.id, therapist_id=s.therapist_id)
    return _out(s)


@router.patch("/{session_id}/status", response_model=SessionOut)
def update_session_status(
    session_id: int,
    payload: SessionStatusIn,
    request: Request,
    current_user: Annotated[
        User, Depends(require_roles(Role.THERAPIST, Role.COORDINATOR, Role.ADMIN))
    ],
    db: Session = Depends(get_db),
):
    s = db.get(TherapySession, session_id)
    if not s:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Session not found")
    if current_user.role == Role.THERAPIST:
        therapist = current_user.therapist_profile
        if therapist is None or therapist.id != s.therapist_id:
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Forbidden")

    if payload.status not in ALLOWED_TRANSITIONS[s.status]:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"Cannot move a session from {s.status.value} to {payload.status.value}",
        )

    now = datetime.now(UTC)
    previous = s.status
    s.status = payload.status
    if payload.status == SessionStatus.IN_PROGRESS:
        s.started_at = now
    elif payload.status == SessionStatus.COMPLETED:
        s.completed_at = now
        if payload.actual_duration_minutes is not None:
            s.actual_duration_minutes = payload.actual_duration_minutes
    for field in ("patient_satisfaction", "therapist_satisfaction", "notes"):
        value = getattr(payload, field)
        if value is not None:
            setattr(s, field, value)

    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action=f"STATUS_{payload.status.value}",
        entity="session",
        entity_id=s.id,
        details={"from": previous.value, "to": s.status.value},
    )
    db.commit()
    db.refresh(s)
    log.info(
        "session.status_changed",
        session_id=s.id,
        previous=previous.value,
        status=s.status.value,
    )
    return _out(s)
