"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import EmailStr, Field, model_validator

from ..models.booking import BookingStatus, PaymentMethod
from ..models.flight import CabinClass
from .common import ApiModel, MoneyAmount, Pagination, Percentage


class Guests(ApiModel):
    adults: int = Field(1, ge=1, le=50)
    children: int = Field(0, ge=0, le=50)
    infants: int = Field(0, ge=0, le=20)

    @property
    def total(self) -> int:
        """Guests occupying a bed; infants share."""
        return self.adults + self.children


class GuestDetails(ApiModel):
    """Lead guest contact details."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=32)


class BookingRequestBase(ApiModel):
    guest_details: GuestDetails
    special_requests: Optional[str] = Field(None, max_length=2000)
    discount_code: Optional[str] = Field(None, max_length=32)
    payment_method: Optional[PaymentMethod] = None


class CreatePropertyBookingRequest(BookingRequestBase):
    """Request schema for booking rooms at a property."""

    property_id: str
    room_id: str
    check_in: date
    check_out: date
    quantity: int = Field(1, ge=1, le=20, description="Number of rooms")
    guests: Guests = Field(default_factory=Guests)

    @model_validator(mode="after")
    def check_dates(self) -> "CreatePropertyBookingRequest":
        if self.check_out <= self.check_in:
            raise ValueError("checkOut must be after checkIn")
        return self


class CreateFlightBookingRequest(BookingRequestBase):
    """Request schema for booking seats on a flight."""

    flight_id: str
    cabin_class: CabinClass = CabinClass.ECONOMY
    passengers: int = Field(1, ge=1, le=9)
    guests: Optional[Guests] = None


class CreateServiceBookingRequest(BookingRequestBase):
    """Request schema for booking places on a service."""

    service_id: str
    service_date: date = Field(..., alias="date")
    participants: int = Field(1, ge=1, le=100)
    guests: Optional[Guests] = None


class PriceBreakdown(ApiModel):
    """Computed price of a booking or quote. Every amount is in ``currency``."""

    unit_price: MoneyAmount
    quantity: int
    nights: int
    subtotal: MoneyAmount
    discount_code: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Optional[MoneyAmount] = None
    discount_amount: MoneyAmount
    tax_rate: Percentage
    tax_amount: MoneyAmount
    total: MoneyAmount
    currency: str


class PaymentInfo(ApiModel):
    status: str
    method: Optional[str] = None
    reference: Optional[str] = None
    paid_amount: MoneyAmount
    remaining_amount: MoneyAmount
    paid_at: Optional[datetime] = None
    refund_amount: MoneyAmount
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None


class CheckInInfo(ApiModel):
    status: str
    checked_in_at: Optional[datetime] = None


class CheckOutInfo(ApiModel):
    status: str
    checked_out_at: Optional[datetime] = None
    damage_reported: bool
    damage_description: Optional[str] = None


class Booking(ApiModel):
    """Booking response schema."""

    id: str
    reservation_number: str
    user_id: str
    booking_type: str
    property_id: Optional[str] = None
    room_id: Optional[str] = None
    flight_id: Optional[str] = None
    cabin_class: Optional[str] = None
    service_id: Optional[str] = None
    resource_name: Optional[str] = Field(None, description="Property, flight number or service name")
    check_in_date: date
    check_out_date: Optional[date] = None
    nights: int
    quantity: int
    guests: Guests
    guest_details: GuestDetails
    special_requests: Optional[str] = None
    pricing: PriceBreakdown
    payment: PaymentInfo
    check_in: CheckInInfo
    check_out: CheckOutInfo
    status: str
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime


class BookingList(ApiModel):
    bookings: List[Booking]
    pagination: Pagination


class CancelBookingRequest(ApiModel):
    reason: Optional[str] = Field(None, max_length=1000)


class UpdateBookingStatusRequest(ApiModel):
    status: BookingStatus
    reason: Optional[str] = Field(None, max_length=1000)


class CheckOutRequest(ApiModel):
    damage_reported: bool = False
    damage_description: Optional[str] = Field(None, max_length=2000)


class RecordPaymentRequest(ApiModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    method: PaymentMethod
    reference: Optional[str] = Field(None, max_length=128)


class RefundRequest(ApiModel):
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2, description="Defaults to the full paid amount")
    reason: str = Field(..., min_length=1, max_length=1000)


class PaymentFailedRequest(ApiModel):
    reason: Optional[str] = Field(None, max_length=1000)
