"""Discount code schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator

from ..models.discount import DiscountScope, DiscountType
from .common import ApiModel, MoneyAmount


class CreateDiscountRequest(ApiModel):
    code: str = Field(..., min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_-]+$")
    description: Optional[str] = Field(None, max_length=1000)
    type: DiscountType
    value: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    applies_to: DiscountScope = DiscountScope.ALL
    valid_from: datetime
    valid_until: datetime
    max_uses: Optional[int] = Field(None, ge=1)
    max_uses_per_user: Optional[int] = Field(None, ge=1)
    min_purchase_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    max_discount_amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def check_terms(self) -> "CreateDiscountRequest":
        if self.valid_until <= self.valid_from:
            raise ValueError("validUntil must be after validFrom")
        if self.type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("A percentage discount cannot exceed 100")
        return self


class Discount(ApiModel):
    id: str
    code: str
    description: Optional[str] = None
    type: str
    value: MoneyAmount
    applies_to: str
    valid_from: datetime
    valid_until: datetime
    max_uses: Optional[int] = None
    max_uses_per_user: Optional[int] = None
    used_count: int
    min_purchase_amount: MoneyAmount
    max_discount_amount: Optional[MoneyAmount] = None
    is_active: bool


class DiscountValidation(ApiModel):
    """Outcome of checking a code against an amount."""

    valid: bool
    code: str
    message: str
    discount_amount: Optional[MoneyAmount] = None
    final_amount: Optional[MoneyAmount] = None
