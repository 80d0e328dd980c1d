from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic.audit.helpers import record_audit
from clinic.db import get_db
from clinic.deps import get_current_user, require_roles
from clinic.models.capacity import CapacityConfig
from clinic.models.therapist import Therapist
from clinic.models.user import Role, User
from clinic.schemas.therapists import (
    CapacityIn,
    CapacityOut,
    TherapistCreateIn,
    TherapistOut,
)

router = APIRouter(prefix="/therapists", tags=["therapists"])

STAFF = (Role.COORDINATOR, Role.ADMIN)


@router.post("", response_model=TherapistOut, status_code=201)
def create_therapist(
    payload: TherapistCreateIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Session = Depends(get_db),
):
    if payload.user_id is not None:
        linked = db.get(User, payload.user_id)
        if not linked:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
        if linked.role != Role.THERAPIST:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST, "User does not have the THERAPIST role"
            )

    t = Therapist(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        specialty=payload.specialty or None,
        user_id=payload.user_id,
        is_active=payload.is_active,
    )
    db.add(t)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(
            status.HTTP_409_CONFLICT, "User already linked to another therapist"
        ) from e
    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action="CREATE",
        entity="therapist",
        entity_id=t.id,
    )
    db.commit()
    db.refresh(t)
    return TherapistOut.model_validate(t)


@router.get("", response_model=list[TherapistOut])
def list_therapists(
    current_user: Annotated[User, Depends(get_current_user)],
    include_inactive: bool = Query(False),
    q: str | None = Query(None, description="Name or specialty contains"),
    db: Session = Depends(get_db),
):
    stmt = select(Therapist)
    if not include_inactive:
        stmt = stmt.where(Therapist.is_active == True)  # noqa: E712
    if q:
        like = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(
                Therapist.first_name.ilike(like),
                Therapist.last_name.ilike(like),
                Therapist.specialty.ilike(like),
            )
        )
    rows = db.scalars(stmt.order_by(Therapist.last_name, Therapist.first_name))
    return [TherapistOut.model_validate(t) for t in rows]


@router.get("/{therapist_id}", response_model=TherapistOut)
def get_therapist(
    therapist_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Session = Depends(get_db),
):
    t = db.get(Therapist, therapist_id)
    if not t:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Therapist not found")
    return TherapistOut.model_validate(t)


@router.put("/{therapist_id}/capacity", response_model=CapacityOut)
def set_capacity(
    therapist_id: int,
    payload: CapacityIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Session = Depends(get_db),
):
    """Create or replace the therapist's capacity limits."""
    t = db.get(Therapist, therapist_id)
    if not t:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Therapist not found")

    cfg = db.scalar(
        select(CapacityConfig).where(CapacityConfig.therapist_id == therapist_id)
    )
    action = "UPDATE"
    if cfg is None:
        cfg = CapacityConfig(therapist_id=therapist_id)
        db.add(cfg)
        action = "CREATE"
    for field, value in payload.model_dump().items():
        setattr(cfg, field, value)
    db.flush()

    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action=action,
        entity="capacity_config",
        entity_id=cfg.id,
    )
    db.commit()
    db.refresh(cfg)
    return CapacityOut.model_validate(cfg)
