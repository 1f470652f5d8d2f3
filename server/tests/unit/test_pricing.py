"""Unit tests for price breakdowns."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from tourism_api.core.exceptions import ValidationError
from tourism_api.models.discount import DiscountType
from tourism_api.services.pricing import DiscountSpec, PricingCalculator, nights_between, quantize_money


def test_quote_three_nights_with_tax():
    """200/night for 3 nights at 15% tax."""
    quote = PricingCalculator(Decimal("15")).quote(Decimal("200"), 1, "VUV", nights=3)

    assert quote.subtotal == Decimal("600.00")
    assert quote.discount_amount == Decimal("0.00")
    assert quote.tax_amount == Decimal("90.00")
    assert quote.total == Decimal("690.00")
    assert quote.currency == "VUV"
    assert quote.discount_code is None


def test_quote_uses_configured_tax_rate():
    calculator = PricingCalculator()
    assert calculator.tax_rate == Decimal("15")


def test_quote_multiplies_quantity_and_nights():
    quote = PricingCalculator(Decimal("0")).quote(Decimal("99.99"), 2, "AUD", nights=2)
    assert quote.subtotal == Decimal("399.96")
    assert quote.total == Decimal("399.96")


def test_percentage_discount_is_taken_before_tax():
    discount = DiscountSpec(code="BULA10", discount_type=DiscountType.PERCENTAGE, value=Decimal("10"))
    quote = PricingCalculator(Decimal("15")).quote(Decimal("200"), 1, "VUV", nights=3, discount=discount)

    assert quote.discount_amount == Decimal("60.00")
    assert quote.tax_amount == Decimal("81.00")
    assert quote.total == Decimal("621.00")
    assert quote.discount_code == "BULA10"


def test_percentage_discount_respects_cap():
    discount = DiscountSpec(
        code="CAPPED",
        discount_type=DiscountType.PERCENTAGE,
        value=Decimal("50"),
        max_discount_amount=Decimal("100"),
    )
    assert discount.amount_for(Decimal("600.00")) == Decimal("100.00")


def test_fixed_discount_never_exceeds_subtotal():
    discount = DiscountSpec(code="BIG", discount_type=DiscountType.FIXED, value=Decimal("5000"))
    quote = PricingCalculator(Decimal("15")).quote(Decimal("100"), 1, "VUV", discount=discount)

    assert quote.discount_amount == Decimal("100.00")
    assert quote.tax_amount == Decimal("0.00")
    assert quote.total == Decimal("0.00")


def test_discount_minimum_purchase_enforced():
    discount = DiscountSpec(
        code="MIN1000",
        discount_type=DiscountType.FIXED,
        value=Decimal("50"),
        min_purchase_amount=Decimal("1000"),
    )
    with pytest.raises(ValidationError):
        PricingCalculator(Decimal("15")).quote(Decimal("200"), 1, "VUV", nights=3, discount=discount)


@pytest.mark.parametrize(
    "unit_price,quantity,nights",
    [
        (Decimal("-1"), 1, 1),
        (Decimal("100"), 0, 1),
        (Decimal("100"), 1, 0),
    ],
)
def test_quote_rejects_out_of_range_inputs(unit_price, quantity, nights):
    with pytest.raises(ValidationError):
        PricingCalculator(Decimal("15")).quote(unit_price, quantity, "VUV", nights=nights)


def test_tax_rate_must_be_a_percentage():
    with pytest.raises(ValueError):
        PricingCalculator(Decimal("101"))
    with pytest.raises(ValueError):
        PricingCalculator(Decimal("-1"))


def test_quantize_money_rounds_half_up():
    assert quantize_money(Decimal("1.005")) == Decimal("1.01")
    assert quantize_money(Decimal("1.004")) == Decimal("1.00")


def test_nights_between_dates():
    assert nights_between(date(2026, 3, 1), date(2026, 3, 4)) == 3


def test_nights_between_rounds_partial_days_up():
    assert nights_between(datetime(2026, 3, 1, 14), datetime(2026, 3, 2, 16)) == 2


@pytest.mark.parametrize(
    "check_in,check_out",
    [
        (date(2026, 3, 4), date(2026, 3, 4)),
        (date(2026, 3, 4), date(2026, 3, 1)),
        (date(2026, 3, 1), datetime(2026, 3, 4)),
    ],
)
def test_nights_between_rejects_invalid_stays(check_in, check_out):
    with pytest.raises(ValidationError):
        nights_between(check_in, check_out)
