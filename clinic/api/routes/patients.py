from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic.audit.helpers import record_audit
from clinic.db import get_db
from clinic.deps import get_current_user, require_roles
from clinic.models.patient import Patient
from clinic.models.user import Role, User
from clinic.schemas.patients import PatientCreateIn, PatientOut

router = APIRouter(prefix="/patients", tags=["patients"])


@router.post("", response_model=PatientOut, status_code=201)
def create_patient(
    payload: PatientCreateIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(Role.COORDINATOR, Role.ADMIN))],
    db: Session = Depends(get_db),
):
    parent = db.get(User, payload.parent_user_id)
    if not parent or parent.role != Role.PARENT:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "parent_user_id must be a PARENT user")

    p = Patient(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        date_of_birth=payload.date_of_birth,
        parent_user_id=parent.id,
    )
    db.add(p)
    db.flush()
    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action="CREATE",
        entity="patient",
        entity_id=p.id,
    )
    db.commit()
    db.refresh(p)
    return PatientOut.model_validate(p)


@router.get("", response_model=list[PatientOut])
def list_patients(
    current_user: Annotated[User, Depends(get_current_user)],
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
):
    stmt = select(Patient)
    if current_user.role == Role.PARENT:
        # Parents only see their own children
        stmt = stmt.where(Patient.parent_user_id == current_user.id)
    if not include_inactive:
        stmt = stmt.where(Patient.is_active == True)  # noqa: E712
    rows = db.scalars(stmt.order_by(Patient.last_name, Patient.first_name))
    return [PatientOut.model_validate(p) for p in rows]


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Session = Depends(get_db),
):
    p = db.get(Patient, patient_id)
    if not p or (
        current_user.role == Role.PARENT and p.parent_user_id != current_user.id
    ):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Patient not found")
    return PatientOut.model_validate(p)
