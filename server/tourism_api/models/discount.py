"""Discount code model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utcnow


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DiscountScope(str, Enum):
    """Booking types a code may be applied to."""
    PROPERTY = "property"
    FLIGHT = "flight"
    SERVICE = "service"
    ALL = "all"


class Discount(Base):
    """Promotional code applied to a booking subtotal before tax."""

    __tablename__ = "discounts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    discount_type: Mapped[DiscountType] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    applies_to: Mapped[DiscountScope] = mapped_column(String(20), nullable=False, default=DiscountScope.ALL)

    valid_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_uses_per_user: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_purchase_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    max_discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("value > 0", name="ck_discount_value_positive"),
        CheckConstraint("used_count >= 0", name="ck_discount_used_count_non_negative"),
        CheckConstraint("valid_until > valid_from", name="ck_discount_window_ordered"),
    )

    def is_valid(self, at: datetime) -> bool:
        """Active, inside its window and not used up."""
        if not self.is_active:
            return False
        if at < self.valid_from or at > self.valid_until:
            return False
        if self.max_uses is not None and self.used_count >= self.max_uses:
            return False
        return True

    def applies_to_booking(self, booking_type: str) -> bool:
        return self.applies_to == DiscountScope.ALL or self.applies_to == booking_type

    def __repr__(self) -> str:
        return f"<Discount(code='{self.code}', type={self.discount_type}, value={self.value})>"


class DiscountUsage(Base):
    """One redemption of a code: who used it, on which booking, and for how much."""

    __tablename__ = "discount_usages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    discount_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    booking_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    original_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    final_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_discount_usages_discount_user", "discount_id", "user_id"),
        Index("ix_discount_usages_user_used_at", "user_id", "used_at"),
    )

    def __repr__(self) -> str:
        return f"<DiscountUsage(discount_id={self.discount_id}, user_id={self.user_id}, booking_id={self.booking_id})>"
