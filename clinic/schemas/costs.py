from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class VisibilityOut(BaseModel):
    can_view_pricing: bool
    can_view_costs: bool
    can_view_breakdown: bool
    can_view_options: bool
    can_view_internal_costs: bool


class CostSummaryOut(BaseModel):
    total_sessions: int
    total_duration_minutes: int
    service_count: int


class CostLineOut(BaseModel):
    service_id: int | None = None
    name: str
    category: str | None = None
    session_count: int
    duration_minutes: int
    priority: str
    notes: str | None = None
    # present only for roles allowed to see prices
    unit_price: float | None = None
    subtotal: float | None = None
    percentage: float | None = None


class CostViewOut(BaseModel):
    """Role-shaped cost view. Fields a role may not see are left out entirely."""

    visibility: VisibilityOut
    summary: CostSummaryOut
    services: list[CostLineOut]
    currency: str | None = None
    subtotal: float | None = None
    total: float | None = None
    options: dict[str, Any] | None = None
    components: dict[str, dict[str, Any] | None] | None = None
    proposal_id: int | None = None
