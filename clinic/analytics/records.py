"""Flat, already-materialized rows consumed by the analytics functions.

The query layer (``clinic.services.analytics_queries``) builds these from ORM
objects; everything under ``clinic.analytics`` works on them only, so the
calculations can be exercised without a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class SessionRecord:
    id: int
    therapist_id: int
    scheduled_at: datetime
    status: str
    duration_minutes: int
    therapist_name: str | None = None
    patient_id: int | None = None
    service_id: int | None = None
    service_name: str | None = None
    service_category: str | None = None
    price: Decimal = Decimal("0")
    actual_duration_minutes: int | None = None
    patient_satisfaction: int | None = None
    therapist_satisfaction: int | None = None

    @property
    def effective_minutes(self) -> int:
        return self.actual_duration_minutes or self.duration_minutes

    @property
    def hours(self) -> float:
        return self.effective_minutes / 60


@dataclass(frozen=True)
class PaymentRecord:
    id: int
    parent_id: int
    amount: Decimal
    type: str
    status: str
    created_at: datetime
    method: str | None = None
    parent_name: str | None = None


@dataclass(frozen=True)
class ProgressRecord:
    id: int
    patient_id: int
    entry_date: datetime
    entry_type: str
    validation_status: str
    overall_progress: float
    therapist_id: int | None = None
    risk_level: str | None = None
    goals_total: int = 0
    goals_completed: int = 0
    emotional_score: float | None = None
    cognitive_score: float | None = None
    social_score: float | None = None
    physical_score: float | None = None
    treatment_adherence: float | None = None


@dataclass(frozen=True)
class ProposalRecord:
    id: int
    therapist_id: int
    status: str
    created_at: datetime
    value: Decimal  # sum of unit_price * session_count, before options
    reviewed_at: datetime | None = None
    therapist_name: str | None = None
