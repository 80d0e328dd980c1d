from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from clinic.audit.helpers import record_audit
from clinic.db import get_db
from clinic.deps import require_roles
from clinic.models.patient import Patient
from clinic.models.payment import Payment
from clinic.models.user import Role, User
from clinic.schemas.payments import PaymentCreateIn, PaymentOut

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=PaymentOut, status_code=201)
def create_payment(
    payload: PaymentCreateIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(Role.COORDINATOR, Role.ADMIN))],
    db: Session = Depends(get_db),
):
    parent = db.get(User, payload.parent_user_id)
    if not parent or parent.role != Role.PARENT:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "parent_user_id must be a PARENT user")
    if payload.patient_id is not None:
        patient = db.get(Patient, payload.patient_id)
        if not patient or patient.parent_user_id != parent.id:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST, "Patient does not belong to this parent"
            )

    p = Payment(**payload.model_dump())
    p.currency = p.currency.upper()
    db.add(p)
    db.flush()
    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action="CREATE",
        entity="payment",
        entity_id=p.id,
    )
    db.commit()
    db.refresh(p)
    return PaymentOut.model_validate(p)
