"""Discount code service."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import to_naive_utc, utcnow
from ..core.exceptions import ConflictError, ValidationError
from ..models.booking import Booking
from ..models.discount import Discount, DiscountUsage
from ..schemas.discount import CreateDiscountRequest
from .pricing import DiscountSpec, quantize_money

logger = logging.getLogger(__name__)


class DiscountService:
    """Service for discount code operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_discount(self, request: CreateDiscountRequest) -> Discount:
        """
        Create a discount code.

        Raises:
            ConflictError: If the code already exists
        """
        if await self.get_discount_by_code(request.code):
            raise ConflictError(f"Discount code {request.code} already exists", code="DUPLICATE_CODE")

        discount = Discount(
            code=request.code,
            description=request.description,
            discount_type=request.type.value,
            value=request.value,
            applies_to=request.applies_to.value,
            valid_from=to_naive_utc(request.valid_from),
            valid_until=to_naive_utc(request.valid_until),
            max_uses=request.max_uses,
            max_uses_per_user=request.max_uses_per_user,
            min_purchase_amount=request.min_purchase_amount,
            max_discount_amount=request.max_discount_amount,
        )
        self.db.add(discount)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"Discount code {request.code} already exists", code="DUPLICATE_CODE")

        logger.info(
            "Discount created",
            extra={"discount_code": discount.code, "type": discount.discount_type, "value": str(discount.value)},
        )
        return discount

    async def get_discount_by_code(self, code: str) -> Optional[Discount]:
        result = await self.db.execute(select(Discount).where(Discount.code == code.strip().upper()))
        return result.scalar_one_or_none()

    async def uses_by_user(self, discount_id: UUID, user_id: UUID) -> int:
        return await self.db.scalar(
            select(func.count(DiscountUsage.id)).where(
                DiscountUsage.discount_id == discount_id, DiscountUsage.user_id == user_id
            )
        )

    async def resolve_for_booking(
        self,
        code: str,
        booking_type: Optional[str],
        at: Optional[datetime] = None,
        user_id: Optional[UUID] = None,
    ) -> DiscountSpec:
        """
        Look up a code that must be usable for a booking right now.

        Raises:
            ValidationError: If the code is unknown, expired, used up, not
                valid for ``booking_type``, or already used as often as
                ``user_id`` is allowed
        """
        discount = await self.get_discount_by_code(code)
        if discount is None:
            raise ValidationError(f"Discount code {code.upper()} is not valid")

        if not discount.is_valid(at or utcnow()):
            raise ValidationError(f"Discount code {discount.code} is expired or no longer available")

        if booking_type and not discount.applies_to_booking(booking_type):
            raise ValidationError(f"Discount code {discount.code} cannot be used for {booking_type} bookings")

        if user_id is not None and discount.max_uses_per_user is not None:
            if await self.uses_by_user(discount.id, user_id) >= discount.max_uses_per_user:
                raise ValidationError(
                    f"Discount code {discount.code} can be used {discount.max_uses_per_user} time(s) per customer"
                )

        return DiscountSpec.from_model(discount)

    async def redeem(self, code: str, booking: Optional[Booking] = None) -> None:
        """
        Count one use of a code and, for a booking, record who used it.

        The increment is conditional on the use limit, so a code cannot be
        redeemed more often than ``max_uses`` even under concurrent bookings.
        ``booking`` must already be flushed so its id is assigned.

        Raises:
            ValidationError: If the code has been used up
        """
        code = code.strip().upper()
        result = await self.db.execute(
            update(Discount)
            .where(
                Discount.code == code,
                or_(Discount.max_uses.is_(None), Discount.used_count < Discount.max_uses),
            )
            .values(used_count=Discount.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ValidationError(f"Discount code {code} has reached its usage limit")

        if booking is not None:
            discount_id = await self.db.scalar(select(Discount.id).where(Discount.code == code))
            self.db.add(
                DiscountUsage(
                    discount_id=discount_id,
                    user_id=booking.user_id,
                    booking_id=booking.id,
                    discount_amount=booking.discount_amount,
                    original_amount=booking.subtotal,
                    final_amount=booking.total_amount,
                )
            )

    async def validate_code(
        self, code: str, amount: Decimal, booking_type: Optional[str] = None
    ) -> Tuple[bool, str, Optional[Decimal]]:
        """
        Check a code against an amount without redeeming it.

        Returns:
            (valid, message, discount amount)
        """
        try:
            spec = await self.resolve_for_booking(code, booking_type)
        except ValidationError as e:
            return False, e.message, None

        if amount < spec.min_purchase_amount:
            return (
                False,
                f"Minimum purchase amount of {quantize_money(spec.min_purchase_amount)} required",
                None,
            )

        return True, "Discount code is valid", spec.amount_for(quantize_money(amount))

