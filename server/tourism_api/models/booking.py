"""Booking model definition and its lifecycle enumerations."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .flight import Flight
    from .property import Property, Room
    from .service import Service
    from .user import User


class BookingType(str, Enum):
    """Kind of resource a booking reserves."""
    PROPERTY = "property"
    FLIGHT = "flight"
    SERVICE = "service"


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    """Accepted payment methods."""
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"
    TRANSFER = "transfer"
    PAYPAL = "paypal"
    STRIPE = "stripe"


class CheckInStatus(str, Enum):
    NOT_CHECKED_IN = "not-checked-in"
    CHECKED_IN = "checked-in"
    LATE = "late"
    NO_SHOW = "no-show"


class CheckOutStatus(str, Enum):
    NOT_CHECKED_OUT = "not-checked-out"
    CHECKED_OUT = "checked-out"
    LATE_CHECKOUT = "late-checkout"


# Statuses that hold inventory and block account deletion
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    """Reservation of a room, flight fare or service by a user."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    reservation_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    booking_type: Mapped[BookingType] = mapped_column(String(20), nullable=False, index=True)

    # Exactly one resource reference is set, according to booking_type
    property_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True
    )
    room_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True, index=True
    )
    flight_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("flights.id", ondelete="SET NULL"), nullable=True, index=True
    )
    cabin_class: Mapped[str | None] = mapped_column(String(20), nullable=True)
    service_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Travel dates; a flight or service booking uses check_in_date only
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_out_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    nights: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Guests
    adults: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    children: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    infants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    guest_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    guest_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Pricing breakdown
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    discount_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    discount_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Payment
    payment_status: Mapped[PaymentStatus] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.UNPAID, index=True
    )
    payment_method: Mapped[PaymentMethod | None] = mapped_column(String(20), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Check-in / check-out
    check_in_status: Mapped[CheckInStatus] = mapped_column(
        String(20), nullable=False, default=CheckInStatus.NOT_CHECKED_IN
    )
    checked_in_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    check_out_status: Mapped[CheckOutStatus] = mapped_column(
        String(20), nullable=False, default=CheckOutStatus.NOT_CHECKED_OUT
    )
    checked_out_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    damage_reported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    damage_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle
    status: Mapped[BookingStatus] = mapped_column(
        String(20), nullable=False, default=BookingStatus.PENDING, index=True
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_booking_quantity_positive"),
        CheckConstraint("nights >= 1", name="ck_booking_nights_positive"),
        CheckConstraint("adults >= 1", name="ck_booking_adults_positive"),
        CheckConstraint("total_amount >= 0", name="ck_booking_total_non_negative"),
        CheckConstraint("paid_amount >= 0", name="ck_booking_paid_non_negative"),
        CheckConstraint(
            "check_out_date IS NULL OR check_out_date > check_in_date",
            name="ck_booking_dates_ordered",
        ),
        Index("ix_bookings_room_dates", "room_id", "check_in_date", "check_out_date"),
    )

    user: Mapped["User"] = relationship("User", back_populates="bookings", lazy="selectin")
    property: Mapped["Property | None"] = relationship("Property", lazy="selectin")
    room: Mapped["Room | None"] = relationship("Room", lazy="selectin")
    flight: Mapped["Flight | None"] = relationship("Flight", lazy="selectin")
    service: Mapped["Service | None"] = relationship("Service", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, number='{self.reservation_number}', "
            f"type={self.booking_type}, status={self.status}, total={self.total_amount} {self.currency})>"
        )
