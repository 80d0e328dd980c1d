from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic.audit.helpers import record_audit
from clinic.db import get_db
from clinic.deps import get_current_user, require_roles
from clinic.models.service import Service
from clinic.models.user import Role, User
from clinic.schemas.services import ServiceCreateIn, ServiceOut

router = APIRouter(prefix="/services", tags=["services"])


@router.post("", response_model=ServiceOut, status_code=201)
def create_service(
    payload: ServiceCreateIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(Role.COORDINATOR, Role.ADMIN))],
    db: Session = Depends(get_db),
):
    s = Service(**payload.model_dump())
    s.currency = s.currency.upper()
    db.add(s)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(
            status.HTTP_409_CONFLICT, f"Service code '{payload.code}' already exists"
        ) from e
    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action="CREATE",
        entity="service",
        entity_id=s.id,
    )
    db.commit()
    db.refresh(s)
    return ServiceOut.model_validate(s)


@router.get("", response_model=list[ServiceOut])
def list_services(
    current_user: Annotated[User, Depends(get_current_user)],
    include_inactive: bool = Query(False),
    category: str | None = Query(None),
    db: Session = Depends(get_db),
):
    stmt = select(Service)
    if not include_inactive:
        stmt = stmt.where(Service.is_active == True)  # noqa: E712
    if category:
        stmt = stmt.where(Service.category == category)
    return [ServiceOut.model_validate(s) for s in db.scalars(stmt.order_by(Service.name))]
