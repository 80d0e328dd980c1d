from decimal import Decimal

import pytest
from pydantic import ValidationError

from clinic.analytics.costs import (
    CostOptions,
    FeeBase,
    SelectedService,
    TaxBase,
    calculate_cost_breakdown,
    round_money,
    summarize,
)


def _svc(price: str, count: int, name: str = "svc", minutes: int = 60) -> SelectedService:
    return SelectedService(
        service_id=None,
        name=name,
        unit_price=Decimal(price),
        session_count=count,
        duration_minutes=minutes,
    )


@pytest.fixture
def plan():
    return [
        _svc("150", 1, "Evaluation", 90),
        _svc("80", 12, "Psychotherapy"),
        _svc("75", 8, "Speech therapy", 45),
    ]


def test_plain_subtotal_and_shares(plan):
    breakdown = calculate_cost_breakdown(plan, CostOptions(currency="USD", precision=2))
    data = breakdown.as_dict()

    assert breakdown.subtotal == Decimal("1710")
    assert data["subtotal"] == 1710.0
    assert data["total"] == 1710.0
    assert [row["subtotal"] for row in data["services"]] == [150.0, 960.0, 600.0]
    assert [row["percentage"] for row in data["services"]] == [8.77, 56.14, 35.09]
    # disabled components are reported as absent
    assert data["discounts"] is None
    assert data["taxes"] is None
    assert data["insurance"] is None
    assert data["payment_fees"] is None


def test_discount_then_tax_on_discounted_subtotal(plan):
    opts = CostOptions(
        include_discounts=True,
        discount_percentage=Decimal("10"),
        include_taxes=True,
        tax_rate=Decimal("8"),
    )
    breakdown = calculate_cost_breakdown(plan, opts)

    assert breakdown.discount == Decimal("171.0")
    assert breakdown.taxable_base == Decimal("1539.0")
    assert round_money(breakdown.tax, 2) == Decimal("123.12")
    assert round_money(breakdown.total, 2) == Decimal("1662.12")

    parts = breakdown.components()
    assert parts["discounts"] == {"amount": 171.0, "percentage": 10.0}
    assert parts["taxes"]["taxable_amount"] == 1539.0
    assert parts["taxes"]["base"] == "discounted_subtotal"


def test_tax_on_full_subtotal(plan):
    opts = CostOptions(
        include_discounts=True,
        discount_percentage=Decimal("10"),
        include_taxes=True,
        tax_rate=Decimal("8"),
        tax_base=TaxBase.SUBTOTAL,
    )
    breakdown = calculate_cost_breakdown(plan, opts)
    assert breakdown.tax == Decimal("136.8")
    assert breakdown.total == Decimal("1710") - Decimal("171") + Decimal("136.8")


def test_insurance_and_payment_fee(plan):
    opts = CostOptions(
        include_insurance=True,
        insurance_coverage=Decimal("60"),
        include_payment_fees=True,
        payment_fee_rate=Decimal("3"),
    )
    breakdown = calculate_cost_breakdown(plan, opts)

    assert breakdown.insurance_covered == Decimal("1026")
    assert breakdown.patient_responsibility == Decimal("684")
    assert breakdown.payment_fee == Decimal("51.3")
    assert breakdown.total == Decimal("1710") - Decimal("1026") + Decimal("51.3")


def test_payment_fee_on_patient_total(plan):
    opts = CostOptions(
        include_insurance=True,
        insurance_coverage=Decimal("50"),
        include_payment_fees=True,
        payment_fee_rate=Decimal("2"),
        fee_base=FeeBase.PATIENT_TOTAL,
    )
    breakdown = calculate_cost_breakdown(plan, opts)
    assert breakdown.payment_fee == Decimal("17.1")


def test_empty_service_list():
    breakdown = calculate_cost_breakdown([])
    data = breakdown.as_dict()

    assert breakdown.subtotal == 0
    assert data["services"] == []
    assert data["total"] == 0.0


def test_zero_priced_services_have_zero_share():
    breakdown = calculate_cost_breakdown([_svc("0", 3), _svc("0", 1)])
    assert [r["percentage"] for r in breakdown.service_rows()] == [0.0, 0.0]


def test_subtotals_are_exact_and_shares_sum_to_100():
    services = [_svc("33.33", 3), _svc("0.01", 7), _svc("19.99", 11)]
    breakdown = calculate_cost_breakdown(services)

    assert sum(item.subtotal for item in breakdown.services) == breakdown.subtotal
    shares = [r["percentage"] for r in breakdown.service_rows()]
    assert abs(sum(shares) - 100) <= 0.01 * len(shares)


def test_same_input_same_output(plan):
    opts = CostOptions(include_taxes=True, tax_rate=Decimal("16"))
    assert (
        calculate_cost_breakdown(plan, opts).as_dict()
        == calculate_cost_breakdown(plan, opts).as_dict()
    )


def test_precision_zero_renders_integers(plan):
    data = calculate_cost_breakdown(plan, CostOptions(precision=0)).as_dict()
    assert data["subtotal"] == 1710
    assert isinstance(data["subtotal"], int)


def test_half_up_rounding():
    assert round_money(Decimal("0.125"), 2) == Decimal("0.13")
    assert round_money(Decimal("2.5"), 0) == Decimal("3")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"tax_rate": Decimal("-1")},
        {"discount_percentage": Decimal("101")},
        {"precision": 11},
        {"precision": -1},
        {"currency": "DOLLARS"},
        {"unknown_option": True},
    ],
)
def test_invalid_options_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        CostOptions(**kwargs)


def test_summary(plan):
    summary = summarize(plan).as_dict()
    assert summary == {
        "total_sessions": 21,
        "total_duration_minutes": 90 + 12 * 60 + 8 * 45,
        "service_count": 3,
    }
