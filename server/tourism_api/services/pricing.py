"""Deterministic price breakdowns for rooms, flight fares and services."""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from ..core.config import settings
from ..core.exceptions import ValidationError
from ..models.discount import DiscountType

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def quantize_money(amount: Decimal) -> Decimal:
    """Round half-up to cents."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def nights_between(check_in: Union[date, datetime], check_out: Union[date, datetime]) -> int:
    """
    Number of nights for a stay, rounding partial days up.

    Raises:
        ValidationError: If check-out is not after check-in
    """
    if isinstance(check_in, datetime) != isinstance(check_out, datetime):
        raise ValidationError("checkIn and checkOut must be of the same type")

    if isinstance(check_in, datetime):
        seconds = (check_out - check_in).total_seconds()
        nights = math.ceil(seconds / 86400)
    else:
        nights = (check_out - check_in).days

    if nights < 1:
        raise ValidationError("checkOut must be after checkIn")
    return nights


@dataclass(frozen=True)
class DiscountSpec:
    """Terms of a discount code, detached from the ORM row."""

    code: str
    discount_type: DiscountType
    value: Decimal
    max_discount_amount: Optional[Decimal] = None
    min_purchase_amount: Decimal = Decimal("0")

    @classmethod
    def from_model(cls, discount) -> "DiscountSpec":
        return cls(
            code=discount.code,
            discount_type=DiscountType(discount.discount_type),
            value=Decimal(discount.value),
            max_discount_amount=discount.max_discount_amount,
            min_purchase_amount=discount.min_purchase_amount or Decimal("0"),
        )

    def amount_for(self, subtotal: Decimal) -> Decimal:
        """Discount on ``subtotal``, capped by the code's maximum and by the subtotal itself."""
        if self.discount_type == DiscountType.PERCENTAGE:
            amount = subtotal * self.value / HUNDRED
        else:
            amount = self.value

        if self.max_discount_amount is not None:
            amount = min(amount, Decimal(self.max_discount_amount))

        return quantize_money(max(Decimal("0"), min(amount, subtotal)))


@dataclass(frozen=True)
class PriceBreakdown:
    unit_price: Decimal
    quantity: int
    nights: int
    subtotal: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: str
    discount: Optional[DiscountSpec] = None

    @property
    def discount_code(self) -> Optional[str]:
        return self.discount.code if self.discount else None


class PricingCalculator:
    """
    Prices a booking line.

    subtotal = unit price x quantity x nights; the discount comes off the
    subtotal before tax; tax = (subtotal - discount) x rate; total =
    subtotal - discount + tax. Currency is carried through unchanged.
    """

    def __init__(self, tax_rate_percent: Optional[Decimal] = None):
        self.tax_rate = Decimal(
            settings.tax_rate_percent if tax_rate_percent is None else tax_rate_percent
        )
        if self.tax_rate < 0 or self.tax_rate > HUNDRED:
            raise ValueError("Tax rate must be between 0 and 100 percent")

    def quote(
        self,
        unit_price: Decimal,
        quantity: int,
        currency: str,
        nights: int = 1,
        discount: Optional[DiscountSpec] = None,
    ) -> PriceBreakdown:
        """
        Compute a full price breakdown.

        Args:
            unit_price: Price of one unit for one night (or one seat/place)
            quantity: Number of units
            currency: ISO 4217 code of ``unit_price``
            nights: Nights of stay; 1 for flights and services
            discount: Optional discount terms

        Returns:
            PriceBreakdown with every amount rounded half-up to cents

        Raises:
            ValidationError: If an input is out of range or the subtotal is
                below the discount's minimum purchase amount
        """
        unit_price = Decimal(unit_price)
        if unit_price < 0:
            raise ValidationError("Unit price cannot be negative")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if nights < 1:
            raise ValidationError("Nights must be at least 1")

        subtotal = quantize_money(unit_price * quantity * nights)

        discount_amount = Decimal("0.00")
        if discount is not None:
            if subtotal < discount.min_purchase_amount:
                raise ValidationError(
                    f"Discount {discount.code} requires a minimum purchase of "
                    f"{quantize_money(discount.min_purchase_amount)} {currency}"
                )
            discount_amount = discount.amount_for(subtotal)

        taxable = subtotal - discount_amount
        tax_amount = quantize_money(taxable * self.tax_rate / HUNDRED)
        total = taxable + tax_amount

        return PriceBreakdown(
            unit_price=quantize_money(unit_price),
            quantity=quantity,
            nights=nights,
            subtotal=subtotal,
            discount_amount=discount_amount,
            tax_rate=self.tax_rate,
            tax_amount=tax_amount,
            total=total,
            currency=currency,
            discount=discount,
        )
