"""Which cost fields each role receives.

The response is shaped here, on the server, so a role never gets a number it
is not allowed to see.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from clinic.analytics.costs import CostBreakdown, CostSummary
from clinic.models.user import Role


@dataclass(frozen=True)
class RoleVisibility:
    can_view_pricing: bool = False
    can_view_costs: bool = False
    can_view_breakdown: bool = False
    can_view_options: bool = False
    can_view_internal_costs: bool = False

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


NO_ACCESS = RoleVisibility()

_COORDINATOR = RoleVisibility(
    can_view_pricing=True,
    can_view_costs=True,
    can_view_breakdown=True,
    can_view_options=True,
)

_TABLE: dict[Role, RoleVisibility] = {
    Role.THERAPIST: NO_ACCESS,
    Role.COORDINATOR: _COORDINATOR,
    Role.ADMIN: RoleVisibility(
        can_view_pricing=True,
        can_view_costs=True,
        can_view_breakdown=True,
        can_view_options=True,
        can_view_internal_costs=True,
    ),
}


def visibility_for(role: Role | str | None) -> RoleVisibility:
    """Unknown roles (and parents) get nothing."""
    if role is None:
        return NO_ACCESS
    try:
        role = Role(str(getattr(role, "value", role)).upper())
    except ValueError:
        return NO_ACCESS
    return _TABLE.get(role, NO_ACCESS)


def shape_cost_view(
    breakdown: CostBreakdown,
    summary: CostSummary,
    role: Role | str | None,
) -> dict[str, Any]:
    """Cost view for ``role``.

    ``total`` is the amount quoted to the family, so every role allowed to see
    costs gets the same figure, payment fee and insurance included.
    ``can_view_internal_costs`` withholds only the per-component amounts
    (discount, tax, insurance and fee lines); the rates are part of the
    options, which coordinators see.
    """
    vis = visibility_for(role)
    view: dict[str, Any] = {
        "visibility": vis.as_dict(),
        "summary": summary.as_dict(),
        "services": breakdown.service_rows(
            with_prices=vis.can_view_pricing and vis.can_view_breakdown
        ),
    }
    if vis.can_view_pricing:
        view["currency"] = breakdown.options.currency
    if vis.can_view_costs:
        view["subtotal"] = breakdown.money(breakdown.subtotal)
        view["total"] = breakdown.money(breakdown.total)
    if vis.can_view_options:
        view["options"] = breakdown.options.model_dump(mode="json")
    if vis.can_view_internal_costs:
        view["components"] = breakdown.components()
    return view
