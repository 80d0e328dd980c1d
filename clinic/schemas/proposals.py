from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clinic.analytics.costs import CostOptions
from clinic.models.proposal import ProposalStatus, ServicePriority


class ProposalServiceIn(BaseModel):
    service_id: int
    session_count: int = Field(gt=0, le=500)
    # Defaults to the catalogue price when omitted
    unit_price: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    priority: ServicePriority = ServicePriority.MEDIUM
    notes: str | None = Field(None, max_length=1000)


class ProposalCreateIn(BaseModel):
    patient_id: int
    therapist_id: int
    services: list[ProposalServiceIn] = Field(min_length=1)
    cost_options: CostOptions | None = None


class ProposalReviewIn(BaseModel):
    status: ProposalStatus
    review_notes: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _only_decisions(self) -> ProposalReviewIn:
        if self.status not in (
            ProposalStatus.SUBMITTED,
            ProposalStatus.APPROVED,
            ProposalStatus.REJECTED,
        ):
            raise ValueError("status must be SUBMITTED, APPROVED or REJECTED")
        return self


class ProposalServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    session_count: int
    priority: ServicePriority
    notes: str | None = None


class ProposalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    therapist_id: int
    status: ProposalStatus
    review_notes: str | None = None
    reviewed_at: dt.datetime | None = None
    created_at: dt.datetime
    services: list[ProposalServiceOut]


class AdHocServiceIn(BaseModel):
    """A line for an ad-hoc quote; either a catalogue id or a name and price."""

    service_id: int | None = None
    name: str | None = Field(None, max_length=160)
    unit_price: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    session_count: int = Field(gt=0, le=500)
    duration_minutes: int | None = Field(None, gt=0, le=480)
    priority: ServicePriority = ServicePriority.MEDIUM
    notes: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _resolvable(self) -> AdHocServiceIn:
        if self.service_id is None and (self.name is None or self.unit_price is None):
            raise ValueError("give service_id, or both name and unit_price")
        return self


class CostCalculateIn(BaseModel):
    services: list[AdHocServiceIn] = Field(default_factory=list)
    options: CostOptions = Field(default_factory=CostOptions)
