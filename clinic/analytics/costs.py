"""Therapeutic proposal cost breakdown.

Amounts are ``Decimal`` end to end and only rounded when the breakdown is
rendered (``CostBreakdown.as_dict``), so component sums never drift by a cent.
``CostOptions`` validates itself on construction; the calculator trusts it.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from clinic.core.settings import settings

ZERO = Decimal("0")
HUNDRED = Decimal("100")
PERCENT_PLACES = 2


class TaxBase(str, enum.Enum):
    DISCOUNTED_SUBTOTAL = "discounted_subtotal"
    SUBTOTAL = "subtotal"


class FeeBase(str, enum.Enum):
    SUBTOTAL = "subtotal"
    PATIENT_TOTAL = "patient_total"


Rate = Field(default=ZERO, ge=0, le=100)


class CostOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    currency: str = Field(
        default_factory=lambda: settings.DEFAULT_CURRENCY,
        min_length=3,
        max_length=3,
    )
    precision: int = Field(
        default_factory=lambda: settings.DEFAULT_PRECISION, ge=0, le=10
    )
    include_taxes: bool = False
    tax_rate: Decimal = Rate
    tax_base: TaxBase = TaxBase.DISCOUNTED_SUBTOTAL
    include_discounts: bool = False
    discount_percentage: Decimal = Rate
    include_insurance: bool = False
    insurance_coverage: Decimal = Rate
    include_payment_fees: bool = False
    payment_fee_rate: Decimal = Rate
    fee_base: FeeBase = FeeBase.SUBTOTAL


@dataclass(frozen=True)
class SelectedService:
    service_id: int | None
    name: str
    unit_price: Decimal
    session_count: int
    priority: str = "MEDIUM"
    notes: str | None = None
    duration_minutes: int = 0
    category: str | None = None


@dataclass(frozen=True)
class ServiceCost:
    service: SelectedService
    subtotal: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class CostSummary:
    total_sessions: int
    total_duration_minutes: int
    service_count: int

    def as_dict(self) -> dict[str, int]:
        return {
            "total_sessions": self.total_sessions,
            "total_duration_minutes": self.total_duration_minutes,
            "service_count": self.service_count,
        }


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def round_money(value: Decimal, precision: int) -> Decimal:
    return value.quantize(_quantum(precision), rounding=ROUND_HALF_UP)


def _number(value: Decimal, places: int) -> float | int:
    rounded = round_money(value, places)
    return int(rounded) if places == 0 else float(rounded)


@dataclass(frozen=True)
class CostBreakdown:
    options: CostOptions
    services: tuple[ServiceCost, ...]
    subtotal: Decimal
    discount: Decimal | None = None
    taxable_base: Decimal | None = None
    tax: Decimal | None = None
    insurance_covered: Decimal | None = None
    patient_responsibility: Decimal | None = None
    payment_fee: Decimal | None = None
    total: Decimal = ZERO

    def money(self, value: Decimal) -> float | int:
        return _number(value, self.options.precision)

    def service_rows(self, *, with_prices: bool = True) -> list[dict[str, Any]]:
        rows = []
        for item in self.services:
            svc = item.service
            row: dict[str, Any] = {
                "service_id": svc.service_id,
                "name": svc.name,
                "category": svc.category,
                "session_count": svc.session_count,
                "duration_minutes": svc.duration_minutes,
                "priority": svc.priority,
                "notes": svc.notes,
            }
            if with_prices:
                row["unit_price"] = self.money(svc.unit_price)
                row["subtotal"] = self.money(item.subtotal)
                row["percentage"] = _number(item.percentage, PERCENT_PLACES)
            rows.append(row)
        return rows

    def components(self) -> dict[str, dict[str, Any] | None]:
        opts = self.options
        return {
            "discounts": None
            if self.discount is None
            else {
                "amount": self.money(self.discount),
                "percentage": float(opts.discount_percentage),
            },
            "taxes": None
            if self.tax is None
            else {
                "amount": self.money(self.tax),
                "rate": float(opts.tax_rate),
                "base": opts.tax_base.value,
                "taxable_amount": self.money(self.taxable_base or ZERO),
            },
            "insurance": None
            if self.insurance_covered is None
            else {
                "covered_amount": self.money(self.insurance_covered),
                "patient_responsibility": self.money(
                    self.patient_responsibility or ZERO
                ),
                "coverage_percentage": float(opts.insurance_coverage),
            },
            "payment_fees": None
            if self.payment_fee is None
            else {
                "amount": self.money(self.payment_fee),
                "rate": float(opts.payment_fee_rate),
                "base": opts.fee_base.value,
            },
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "currency": self.options.currency,
            "precision": self.options.precision,
            "services": self.service_rows(),
            "subtotal": self.money(self.subtotal),
            "total": self.money(self.total),
            **self.components(),
        }


def summarize(services: Sequence[SelectedService]) -> CostSummary:
    return CostSummary(
        total_sessions=sum(s.session_count for s in services),
        total_duration_minutes=sum(s.session_count * s.duration_minutes for s in services),
        service_count=len(services),
    )


def _rate(base: Decimal, rate: Decimal) -> Decimal:
    return base * rate / HUNDRED


def calculate_cost_breakdown(
    services: Sequence[SelectedService], options: CostOptions | None = None
) -> CostBreakdown:
    opts = options or CostOptions()

    subtotals = [Decimal(s.unit_price) * s.session_count for s in services]
    subtotal = sum(subtotals, ZERO)
    rows = tuple(
        ServiceCost(
            service=s,
            subtotal=sub,
            percentage=(sub / subtotal * HUNDRED) if subtotal else ZERO,
        )
        for s, sub in zip(services, subtotals, strict=True)
    )

    discount = _rate(subtotal, opts.discount_percentage) if opts.include_discounts else None
    insurance = _rate(subtotal, opts.insurance_coverage) if opts.include_insurance else None
    patient_responsibility = subtotal - insurance if insurance is not None else None

    taxable_base = tax = None
    if opts.include_taxes:
        if opts.tax_base is TaxBase.DISCOUNTED_SUBTOTAL:
            taxable_base = subtotal - (discount or ZERO)
        else:
            taxable_base = subtotal
        tax = _rate(taxable_base, opts.tax_rate)

    payment_fee = None
    if opts.include_payment_fees:
        if opts.fee_base is FeeBase.PATIENT_TOTAL:
            fee_base = subtotal - (discount or ZERO) - (insurance or ZERO) + (tax or ZERO)
        else:
            fee_base = subtotal
        payment_fee = _rate(fee_base, opts.payment_fee_rate)

    total = (
        subtotal
        - (discount or ZERO)
        - (insurance or ZERO)
        + (tax or ZERO)
        + (payment_fee or ZERO)
    )

    return CostBreakdown(
        options=opts,
        services=rows,
        subtotal=subtotal,
        discount=discount,
        taxable_base=taxable_base,
        tax=tax,
        insurance_covered=insurance,
        patient_responsibility=patient_responsibility,
        payment_fee=payment_fee,
        total=total,
    )
