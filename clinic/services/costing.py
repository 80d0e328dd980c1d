from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic.analytics.costs import CostOptions, SelectedService
from clinic.core.logging import get_logger
from clinic.models.proposal import TherapeuticProposal
from clinic.models.service import Service
from clinic.schemas.proposals import AdHocServiceIn

log = get_logger(__name__)


def selected_from_proposal(proposal: TherapeuticProposal) -> list[SelectedService]:
    return [
        SelectedService(
            service_id=line.service_id,
            name=line.service.name,
            unit_price=Decimal(line.unit_price),
            session_count=line.session_count,
            priority=line.priority.value,
            notes=line.notes,
            duration_minutes=line.service.duration_minutes,
            category=line.service.category,
        )
        for line in proposal.services
    ]


def selected_from_request(
    db: Session, lines: Sequence[AdHocServiceIn]
) -> list[SelectedService]:
    """Resolve quote lines against the catalogue; explicit values win over it."""
    ids = {ln.service_id for ln in lines if ln.service_id is not None}
    catalogue = (
        {s.id: s for s in db.scalars(select(Service).where(Service.id.in_(ids)))}
        if ids
        else {}
    )
    missing = ids - catalogue.keys()
    if missing:
        raise HTTPException(
            status.HTTP_404_NOT_FOUND,
            f"Unknown service id(s): {', '.join(str(i) for i in sorted(missing))}",
        )

    out = []
    for ln in lines:
        svc = catalogue.get(ln.service_id) if ln.service_id is not None else None
        out.append(
            SelectedService(
                service_id=ln.service_id,
                name=ln.name or (svc.name if svc else ""),
                unit_price=ln.unit_price
                if ln.unit_price is not None
                else Decimal(svc.price),
                session_count=ln.session_count,
                priority=ln.priority.value,
                notes=ln.notes,
                duration_minutes=ln.duration_minutes
                or (svc.duration_minutes if svc else 0),
                category=svc.category if svc else None,
            )
        )
    return out


def stored_options(proposal: TherapeuticProposal) -> CostOptions:
    """Options saved with the proposal.

    Saved options that no longer validate are a 422; the breakdown is never
    computed with substitute defaults.
    """
    if not proposal.cost_options:
        return CostOptions()
    try:
        return CostOptions.model_validate(proposal.cost_options)
    except ValidationError as e:
        log.warning(
            "costs.stored_options_invalid",
            proposal_id=proposal.id,
            errors=e.error_count(),
        )
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {
                "message": "Stored cost options are invalid",
                "errors": e.errors(include_url=False, include_context=False),
            },
        ) from e
