from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from clinic.analytics import reports
from clinic.analytics.buckets import Granularity
from clinic.analytics.costs import calculate_cost_breakdown, summarize
from clinic.analytics.visibility import shape_cost_view
from clinic.api.routes.analytics import STAFF, DateFrom, DateTo, GroupBy, Window
from clinic.audit.helpers import record_audit
from clinic.core.logging import get_logger
from clinic.db import get_db
from clinic.deps import require_roles
from clinic.models.patient import Patient
from clinic.models.proposal import ProposalService, ProposalStatus, TherapeuticProposal
from clinic.models.service import Service
from clinic.models.therapist import Therapist
from clinic.models.user import Role, User
from clinic.schemas.analytics import ProposalStatisticsResponse
from clinic.schemas.costs import CostViewOut
from clinic.schemas.proposals import (
    CostCalculateIn,
    ProposalCreateIn,
    ProposalOut,
    ProposalReviewIn,
)
from clinic.services import analytics_queries as q
from clinic.services.costing import (
    selected_from_proposal,
    selected_from_request,
    stored_options,
)

router = APIRouter(tags=["proposals"])
log = get_logger(__name__)

CLINICAL = (Role.THERAPIST, Role.COORDINATOR, Role.ADMIN)

REVIEW_TRANSITIONS: dict[ProposalStatus, set[ProposalStatus]] = {
    ProposalStatus.DRAFT: {ProposalStatus.SUBMITTED},
    ProposalStatus.SUBMITTED: {ProposalStatus.APPROVED, ProposalStatus.REJECTED},
    ProposalStatus.APPROVED: set(),
    ProposalStatus.REJECTED: set(),
}


def _own_therapist_id(user: User) -> int | None:
    profile = user.therapist_profile
    return profile.id if profile else None


def _load_proposal(db: Session, proposal_id: int, user: User) -> TherapeuticProposal:
    proposal = db.scalar(
        select(TherapeuticProposal)
        .options(
            selectinload(TherapeuticProposal.services).selectinload(
                ProposalService.service
            )
        )
        .where(TherapeuticProposal.id == proposal_id)
    )
    if not proposal:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Proposal not found")
    # Therapists only reach their own proposals
    if user.role == Role.THERAPIST and proposal.therapist_id != _own_therapist_id(user):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Proposal not found")
    return proposal


@router.post("/proposals", response_model=ProposalOut, status_code=201)
def create_proposal(
    payload: ProposalCreateIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(*CLINICAL))],
    db: Session = Depends(get_db),
):
    if not db.get(Patient, payload.patient_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Patient not found")
    if not db.get(Therapist, payload.therapist_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Therapist not found")
    if (
        current_user.role == Role.THERAPIST
        and payload.therapist_id != _own_therapist_id(current_user)
    ):
        raise HTTPException(
            status.HTTP_403_FORBIDDEN, "Therapists can only draft their own proposals"
        )

    ids = {ln.service_id for ln in payload.services}
    catalogue = {s.id: s for s in db.scalars(select(Service).where(Service.id.in_(ids)))}
    if ids - catalogue.keys():
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Service not found")

    proposal = TherapeuticProposal(
        patient_id=payload.patient_id,
        therapist_id=payload.therapist_id,
        status=ProposalStatus.DRAFT,
        cost_options=payload.cost_options.model_dump(mode="json")
        if payload.cost_options
        else None,
    )
    for ln in payload.services:
        proposal.services.append(
            ProposalService(
                service_id=ln.service_id,
                session_count=ln.session_count,
                unit_price=ln.unit_price
                if ln.unit_price is not None
                else Decimal(catalogue[ln.service_id].price),
                priority=ln.priority,
                notes=ln.notes,
            )
        )
    db.add(proposal)
    db.flush()
    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action="CREATE",
        entity="proposal",
        entity_id=proposal.id,
    )
    db.commit()
    db.refresh(proposal)
    return ProposalOut.model_validate(proposal)


@router.get("/proposals/statistics", response_model=ProposalStatisticsResponse)
def proposals_statistics(
    current_user: Annotated[User, Depends(require_roles(*STAFF))],
    db: Session = Depends(get_db),
    date_from: DateFrom = None,
    date_to: DateTo = None,
    therapist_id: int | None = Query(None),
    group_by: GroupBy = Granularity.MONTH,
):
    """Value and review outcomes of the proposals created in the window."""
    w = Window(date_from, date_to)
    proposals = q.fetch_proposals(db, w.start_utc, w.end_utc, therapist_id=therapist_id)
    stats = reports.proposal_statistics(
        proposals, group_by, start=w.date_from, end=w.date_to
    )
    log.info(
        "proposals.statistics",
        proposals=len(proposals),
        date_from=str(w.date_from),
        date_to=str(w.date_to),
        group_by=group_by.value,
    )
    return {"window": w.out(), **stats}


@router.get("/proposals/{proposal_id}", response_model=ProposalOut)
def get_proposal(
    proposal_id: int,
    current_user: Annotated[User, Depends(require_roles(*CLINICAL))],
    db: Session = Depends(get_db),
):
    return ProposalOut.model_validate(_load_proposal(db, proposal_id, current_user))


@router.patch("/proposals/{proposal_id}/status", response_model=ProposalOut)
def review_proposal(
    proposal_id: int,
    payload: ProposalReviewIn,
    request: Request,
    current_user: Annotated[User, Depends(require_roles(*CLINICAL))],
    db: Session = Depends(get_db),
):
    """DRAFT → SUBMITTED by its author or staff; SUBMITTED → APPROVED/REJECTED by staff."""
    proposal = _load_proposal(db, proposal_id, current_user)
    previous = proposal.status
    if payload.status not in REVIEW_TRANSITIONS[proposal.status]:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            f"Cannot move a proposal from {proposal.status.value} to {payload.status.value}",
        )
    if payload.status != ProposalStatus.SUBMITTED:
        if current_user.role == Role.THERAPIST:
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Forbidden")
        proposal.reviewed_by_user_id = current_user.id
        proposal.reviewed_at = datetime.now(UTC)
        proposal.review_notes = payload.review_notes
    proposal.status = payload.status

    record_audit(
        db,
        request=request,
        user_id=current_user.id,
        action=payload.status.value,
        entity="proposal",
        entity_id=proposal.id,
        details={"from": previous.value, "to": proposal.status.value},
    )
    db.commit()
    db.refresh(proposal)
    log.info("proposal.status_changed", proposal_id=proposal.id, status=proposal.status.value)
    return ProposalOut.model_validate(proposal)


@router.get(
    "/proposals/{proposal_id}/costs",
    response_model=CostViewOut,
    response_model_exclude_none=True,
)
def proposal_costs(
    proposal_id: int,
    current_user: Annotated[User, Depends(require_roles(*CLINICAL))],
    db: Session = Depends(get_db),
):
    proposal = _load_proposal(db, proposal_id, current_user)
    services = selected_from_proposal(proposal)
    breakdown = calculate_cost_breakdown(services, stored_options(proposal))
    view = shape_cost_view(breakdown, summarize(services), current_user.role)
    view["proposal_id"] = proposal.id
    log.info(
        "costs.calculated",
        proposal_id=proposal.id,
        services=len(services),
        role=current_user.role.value,
    )
    return view


@router.post(
    "/costs/calculate",
    response_model=CostViewOut,
    response_model_exclude_none=True,
)
def calculate_costs(
    payload: CostCalculateIn,
    current_user: Annotated[User, Depends(require_roles(*CLINICAL))],
    db: Session = Depends(get_db),
):
    services = selected_from_request(db, payload.services)
    breakdown = calculate_cost_breakdown(services, payload.options)
    log.info(
        "costs.calculated",
        services=len(services),
        role=current_user.role.value,
    )
    return shape_cost_view(breakdown, summarize(services), current_user.role)
