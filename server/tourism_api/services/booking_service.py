"""Booking service for business logic operations."""

import logging
import secrets
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import utcnow
from ..core.exceptions import ConflictError, InternalServerError, NotFoundError, ValidationError
from ..core.identifiers import parse_uuid
from ..core.observability import metrics_collector
from ..core.permissions import authorize, require_role
from ..models.booking import (
    Booking,
    BookingStatus,
    BookingType,
    CheckInStatus,
    CheckOutStatus,
    PaymentStatus,
)
from ..models.property import Property
from ..models.user import User, UserRole
from ..schemas.booking import (
    BookingRequestBase,
    CheckOutRequest,
    CreateFlightBookingRequest,
    CreatePropertyBookingRequest,
    CreateServiceBookingRequest,
    Guests,
    PaymentFailedRequest,
    RecordPaymentRequest,
    RefundRequest,
    UpdateBookingStatusRequest,
)
from .availability_service import AvailabilityService
from .catalog_service import CatalogService
from .discount_service import DiscountService
from .flight_service import FlightService
from .lifecycle import (
    ensure_payment_transition,
    ensure_transition,
    loyalty_points_for,
    payment_status_after,
    tier_for,
)
from .pricing import PriceBreakdown, PricingCalculator, nights_between
from .property_service import PropertyService
from .query_builder import PageRequest

logger = logging.getLogger(__name__)

RESERVATION_NUMBER_ATTEMPTS = 5


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability_service = AvailabilityService(db)
        self.discount_service = DiscountService(db)
        self.pricing = PricingCalculator()

    async def _generate_reservation_number(self) -> str:
        """Generate an unused ``VU-YYYYMM-NNNNNN`` reservation number."""
        prefix = f"VU-{utcnow():%Y%m}-"
        for _ in range(RESERVATION_NUMBER_ATTEMPTS):
            candidate = f"{prefix}{secrets.randbelow(1_000_000):06d}"
            taken = await self.db.scalar(select(Booking.id).where(Booking.reservation_number == candidate))
            if not taken:
                return candidate

        logger.error("Could not allocate a reservation number", extra={"prefix": prefix})
        raise InternalServerError("Could not allocate a reservation number")

    async def _price(
        self,
        user: User,
        request: BookingRequestBase,
        booking_type: BookingType,
        unit_price: Decimal,
        quantity: int,
        currency: str,
        nights: int = 1,
    ) -> PriceBreakdown:
        discount = None
        if request.discount_code:
            discount = await self.discount_service.resolve_for_booking(
                request.discount_code, booking_type.value, user_id=user.id
            )
        return self.pricing.quote(
            unit_price=unit_price,
            quantity=quantity,
            nights=nights,
            currency=currency,
            discount=discount,
        )

    async def _new_booking(
        self,
        user: User,
        request: BookingRequestBase,
        booking_type: BookingType,
        price: PriceBreakdown,
        guests: Guests,
        check_in_date: date,
        **resource,
    ) -> Booking:
        booking = Booking(
            reservation_number=await self._generate_reservation_number(),
            user_id=user.id,
            booking_type=booking_type.value,
            check_in_date=check_in_date,
            nights=price.nights,
            quantity=price.quantity,
            adults=guests.adults,
            children=guests.children,
            infants=guests.infants,
            guest_first_name=request.guest_details.first_name,
            guest_last_name=request.guest_details.last_name,
            guest_email=request.guest_details.email,
            guest_phone=request.guest_details.phone,
            special_requests=request.special_requests,
            unit_price=price.unit_price,
            subtotal=price.subtotal,
            discount_code=price.discount_code,
            discount_type=price.discount.discount_type.value if price.discount else None,
            discount_value=price.discount.value if price.discount else None,
            discount_amount=price.discount_amount,
            tax_rate=price.tax_rate,
            tax_amount=price.tax_amount,
            total_amount=price.total,
            currency=price.currency,
            payment_status=PaymentStatus.UNPAID.value,
            payment_method=request.payment_method.value if request.payment_method else None,
            paid_amount=Decimal("0.00"),
            remaining_amount=price.total,
            refund_amount=Decimal("0.00"),
            status=BookingStatus.PENDING.value,
            check_in_status=CheckInStatus.NOT_CHECKED_IN.value,
            check_out_status=CheckOutStatus.NOT_CHECKED_OUT.value,
            **resource,
        )
        self.db.add(booking)

        if price.discount:
            # the usage record references the booking row
            await self.db.flush()
            await self.discount_service.redeem(price.discount.code, booking)

        await self.db.commit()
        metrics_collector.record_booking_created(booking_type.value)

        logger.info(
            "Booking created",
            extra={
                "booking_id": str(booking.id),
                "reservation_number": booking.reservation_number,
                "booking_type": booking_type.value,
                "user_id": str(user.id),
                "quantity": price.quantity,
                "total": str(price.total),
                "currency": price.currency,
                "discount_code": price.discount_code,
            },
        )
        return await self._reload(booking.id)

    async def _reload(self, booking_id: UUID) -> Booking:
        result = await self.db.execute(
            select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def create_property_booking(self, user: User, request: CreatePropertyBookingRequest) -> Booking:
        """
        Book rooms at a property.

        Args:
            user: Authenticated guest
            request: Booking request

        Returns:
            Created booking in ``pending`` status

        Raises:
            NotFoundError: If the property or room does not exist
            ValidationError: If the stay, party size or discount is not acceptable
            AvailabilityError: If not enough rooms are free for the dates
        """
        property_service = PropertyService(self.db)
        property_obj = await property_service.get_property_by_id_or_raise(request.property_id)
        room = property_service.get_room_or_raise(property_obj, request.room_id)

        nights = nights_between(request.check_in, request.check_out)
        self.availability_service.ensure_stay_length(property_obj, nights)

        if request.guests.total > room.max_guests * request.quantity:
            raise ValidationError(
                f"{request.quantity} x {room.room_type} sleeps at most {room.max_guests * request.quantity} guests"
            )

        await self.availability_service.ensure_room_available(
            room, request.check_in, request.check_out, request.quantity
        )

        price = await self._price(
            user, request, BookingType.PROPERTY, room.price_per_night, request.quantity, room.currency, nights
        )

        booking = await self._new_booking(
            user,
            request,
            BookingType.PROPERTY,
            price,
            request.guests,
            request.check_in,
            property_id=property_obj.id,
            room_id=room.id,
            check_out_date=request.check_out,
        )
        return booking

    async def create_flight_booking(self, user: User, request: CreateFlightBookingRequest) -> Booking:
        """
        Book seats on a flight.

        Seats are taken from the fare with a conditional decrement in the
        same transaction as the booking insert.

        Raises:
            NotFoundError: If the flight does not exist
            ValidationError: If the flight does not sell the cabin
            AvailabilityError: If not enough seats remain
        """
        flight = await FlightService(self.db).get_flight_by_id_or_raise(request.flight_id)
        fare = flight.fare_for(request.cabin_class.value)
        if fare is None:
            raise ValidationError(f"Flight {flight.flight_number} has no {request.cabin_class.value} cabin")

        guests = request.guests or Guests(adults=request.passengers)
        price = await self._price(user, request, BookingType.FLIGHT, fare.price, request.passengers, flight.currency)

        await self.availability_service.reserve_flight_seats(fare, request.passengers)

        return await self._new_booking(
            user,
            request,
            BookingType.FLIGHT,
            price,
            guests,
            flight.departure_time.date(),
            flight_id=flight.id,
            cabin_class=fare.cabin_class,
        )

    async def create_service_booking(self, user: User, request: CreateServiceBookingRequest) -> Booking:
        """
        Book places on a service for one date.

        Raises:
            NotFoundError: If the service does not exist
            ValidationError: If the service does not run that weekday
            AvailabilityError: If not enough places remain
        """
        service = await CatalogService(self.db).get_service_by_id_or_raise(request.service_id)
        await self.availability_service.ensure_service_available(service, request.service_date, request.participants)

        guests = request.guests or Guests(adults=request.participants)
        price = await self._price(
            user, request, BookingType.SERVICE, service.price, request.participants, service.currency
        )

        return await self._new_booking(
            user,
            request,
            BookingType.SERVICE,
            price,
            guests,
            request.service_date,
            service_id=service.id,
        )

    async def get_booking_by_id(self, booking_id: UUID) -> Optional[Booking]:
        return await self.db.get(Booking, booking_id)

    async def get_booking_by_id_or_raise(self, booking_id: str | UUID) -> Booking:
        booking = await self.get_booking_by_id(parse_uuid(booking_id, "booking"))
        if not booking:
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    @staticmethod
    def _operator_id(booking: Booking) -> Optional[UUID]:
        """Host who operates the booked resource; flights and services are run by admins."""
        if booking.property is not None:
            return booking.property.owner_id
        return None

    def _authorize_operator(self, requester: User, booking: Booking) -> None:
        authorize(requester, self._operator_id(booking))

    async def get_booking_for_requester(self, requester: User, booking_id: str) -> Booking:
        """
        Get a booking visible to the requester: its guest, the property host, or an admin.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the requester may not see it
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if booking.user_id != requester.id:
            self._authorize_operator(requester, booking)
        return booking

    async def _paginate(self, stmt, page: PageRequest) -> Tuple[List[Booking], int]:
        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        result = await self.db.execute(
            stmt.order_by(Booking.created_at.desc(), Booking.id.asc()).offset(page.offset).limit(page.limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    def _filter_status(stmt, status: Optional[str]):
        if status:
            if status not in {s.value for s in BookingStatus}:
                raise ValidationError(f"Unknown booking status: {status}")
            stmt = stmt.where(Booking.status == status)
        return stmt

    async def list_user_bookings(
        self, user: User, page: PageRequest, status: Optional[str] = None
    ) -> Tuple[List[Booking], int]:
        stmt = self._filter_status(select(Booking).where(Booking.user_id == user.id), status)
        return await self._paginate(stmt, page)

    async def list_all_bookings(
        self,
        requester: User,
        page: PageRequest,
        status: Optional[str] = None,
        booking_type: Optional[str] = None,
    ) -> Tuple[List[Booking], int]:
        authorize(requester, required_role=UserRole.ADMIN)
        stmt = self._filter_status(select(Booking), status)
        if booking_type:
            if booking_type not in {t.value for t in BookingType}:
                raise ValidationError(f"Unknown booking type: {booking_type}")
            stmt = stmt.where(Booking.booking_type == booking_type)
        return await self._paginate(stmt, page)

    async def list_host_bookings(
        self, host: User, page: PageRequest, status: Optional[str] = None
    ) -> Tuple[List[Booking], int]:
        """Bookings at properties owned by ``host``."""
        require_role(host, [UserRole.HOST])
        stmt = (
            select(Booking)
            .join(Property, Booking.property_id == Property.id)
            .where(Property.owner_id == host.id)
        )
        return await self._paginate(self._filter_status(stmt, status), page)

    def _set_status(self, booking: Booking, target: BookingStatus) -> None:
        previous = booking.status
        booking.status = target.value
        metrics_collector.record_status_transition(previous, target.value)

    async def _release_inventory(self, booking: Booking) -> None:
        # Rooms and service places are derived from active bookings; only fares hold a counter
        if booking.booking_type == BookingType.FLIGHT.value and booking.flight is not None:
            fare = booking.flight.fare_for(booking.cabin_class)
            if fare is not None:
                await self.availability_service.release_flight_seats(fare.id, booking.quantity)

    async def _cancel(self, booking: Booking, reason: Optional[str]) -> None:
        ensure_transition(booking.status, BookingStatus.CANCELLED.value)
        await self._release_inventory(booking)
        self._set_status(booking, BookingStatus.CANCELLED)
        booking.cancellation_reason = reason
        booking.cancelled_at = utcnow()

    def _complete(self, booking: Booking) -> None:
        """Complete a booking and credit the guest's loyalty account."""
        ensure_transition(booking.status, BookingStatus.COMPLETED.value, booking.check_in_status)
        self._set_status(booking, BookingStatus.COMPLETED)

        guest = booking.user
        points = loyalty_points_for(booking.total_amount)
        guest.loyalty_points += points
        guest.loyalty_tier = tier_for(guest.loyalty_points).value
        guest.completed_bookings += 1

        logger.info(
            "Loyalty points awarded",
            extra={
                "user_id": str(guest.id),
                "booking_id": str(booking.id),
                "points": points,
                "loyalty_points": guest.loyalty_points,
                "loyalty_tier": guest.loyalty_tier,
            },
        )

    async def cancel_booking(self, requester: User, booking_id: str, reason: Optional[str] = None) -> Booking:
        """
        Cancel a booking on behalf of its guest, the host or an admin.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the requester may not cancel it
            ConflictError: If the booking is already in a terminal status
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if booking.user_id != requester.id:
            self._authorize_operator(requester, booking)

        await self._cancel(booking, reason)
        await self.db.commit()

        logger.info(
            "Booking cancelled",
            extra={
                "booking_id": str(booking.id),
                "reservation_number": booking.reservation_number,
                "requester_id": str(requester.id),
                "reason": reason,
            },
        )
        return await self._reload(booking.id)

    async def update_status(self, requester: User, booking_id: str, request: UpdateBookingStatusRequest) -> Booking:
        """
        Move a booking through its lifecycle. Host or admin only.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the requester does not operate the resource
            ConflictError: If the transition is not allowed
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        self._authorize_operator(requester, booking)

        previous = booking.status
        target = request.status
        if target == BookingStatus.CANCELLED:
            await self._cancel(booking, request.reason)
        elif target == BookingStatus.COMPLETED:
            self._complete(booking)
        else:
            ensure_transition(booking.status, target.value, booking.check_in_status)
            self._set_status(booking, target)
            if target == BookingStatus.NO_SHOW:
                booking.check_in_status = CheckInStatus.NO_SHOW.value

        await self.db.commit()

        logger.info(
            "Booking status updated",
            extra={
                "booking_id": str(booking.id),
                "from_status": previous,
                "to_status": target.value,
                "requester_id": str(requester.id),
            },
        )
        return await self._reload(booking.id)

    async def check_in(self, requester: User, booking_id: str) -> Booking:
        """
        Record guest arrival. The booking must be confirmed.

        Arrivals after the booked date are recorded as ``late``.
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        self._authorize_operator(requester, booking)

        if booking.status != BookingStatus.CONFIRMED.value:
            raise ConflictError(
                f"Only confirmed bookings can be checked in (status is {booking.status})",
                code="INVALID_STATUS_TRANSITION",
            )
        if booking.check_in_status != CheckInStatus.NOT_CHECKED_IN.value:
            raise ConflictError("Guest has already checked in", code="ALREADY_CHECKED_IN")

        now = utcnow()
        late = now.date() > booking.check_in_date
        booking.check_in_status = (CheckInStatus.LATE if late else CheckInStatus.CHECKED_IN).value
        booking.checked_in_at = now
        await self.db.commit()

        logger.info(
            "Guest checked in",
            extra={"booking_id": str(booking.id), "check_in_status": booking.check_in_status},
        )
        return await self._reload(booking.id)

    async def check_out(self, requester: User, booking_id: str, request: CheckOutRequest) -> Booking:
        """
        Record guest departure and complete the booking.

        Raises:
            ConflictError: If the guest never checked in or already checked out
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        self._authorize_operator(requester, booking)

        if booking.check_in_status not in (CheckInStatus.CHECKED_IN.value, CheckInStatus.LATE.value):
            raise ConflictError("Guest has not checked in", code="NOT_CHECKED_IN")
        if booking.check_out_status != CheckOutStatus.NOT_CHECKED_OUT.value:
            raise ConflictError("Guest has already checked out", code="ALREADY_CHECKED_OUT")

        now = utcnow()
        late = booking.check_out_date is not None and now.date() > booking.check_out_date
        booking.check_out_status = (CheckOutStatus.LATE_CHECKOUT if late else CheckOutStatus.CHECKED_OUT).value
        booking.checked_out_at = now
        booking.damage_reported = request.damage_reported
        booking.damage_description = request.damage_description if request.damage_reported else None

        self._complete(booking)
        await self.db.commit()

        logger.info(
            "Guest checked out",
            extra={
                "booking_id": str(booking.id),
                "check_out_status": booking.check_out_status,
                "damage_reported": booking.damage_reported,
            },
        )
        return await self._reload(booking.id)

    def _set_payment_status(self, booking: Booking, target: PaymentStatus) -> None:
        booking.payment_status = target.value
        metrics_collector.record_payment_transition(target.value)

    async def record_payment(self, requester: User, booking_id: str, request: RecordPaymentRequest) -> Booking:
        """
        Record a payment against the remaining amount.

        Raises:
            ValidationError: If the amount exceeds what is still owed
            ConflictError: If the booking can no longer take payments
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        authorize(requester, booking.user_id)

        if booking.status in (BookingStatus.CANCELLED.value, BookingStatus.NO_SHOW.value):
            raise ConflictError(f"Cannot take payment for a {booking.status} booking", code="INVALID_PAYMENT_TRANSITION")

        if request.amount > booking.remaining_amount:
            raise ValidationError(
                f"Payment of {request.amount} exceeds the remaining amount of {booking.remaining_amount} {booking.currency}"
            )

        paid = booking.paid_amount + request.amount
        target = payment_status_after(booking.total_amount, paid)
        # A further instalment keeps a partial payment partial
        if not (target == PaymentStatus.PARTIAL and booking.payment_status == PaymentStatus.PARTIAL.value):
            ensure_payment_transition(booking.payment_status, target.value)

        booking.paid_amount = paid
        booking.remaining_amount = booking.total_amount - paid
        booking.payment_method = request.method.value
        booking.payment_reference = request.reference
        if target == PaymentStatus.PAID:
            booking.paid_at = utcnow()
        self._set_payment_status(booking, target)
        await self.db.commit()

        logger.info(
            "Payment recorded",
            extra={
                "booking_id": str(booking.id),
                "amount": str(request.amount),
                "payment_status": booking.payment_status,
                "remaining": str(booking.remaining_amount),
            },
        )
        return await self._reload(booking.id)

    async def refund(self, requester: User, booking_id: str, request: RefundRequest) -> Booking:
        """
        Refund a paid booking, in full unless an amount is given. Host or admin only.

        Raises:
            ValidationError: If the amount exceeds what was paid
            ConflictError: If the booking is not paid
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        self._authorize_operator(requester, booking)

        ensure_payment_transition(booking.payment_status, PaymentStatus.REFUNDED.value)

        amount = request.amount if request.amount is not None else booking.paid_amount
        if amount > booking.paid_amount:
            raise ValidationError(
                f"Refund of {amount} exceeds the paid amount of {booking.paid_amount} {booking.currency}"
            )

        booking.refund_amount = amount
        booking.refund_reason = request.reason
        booking.refunded_at = utcnow()
        self._set_payment_status(booking, PaymentStatus.REFUNDED)
        await self.db.commit()

        logger.info(
            "Booking refunded",
            extra={"booking_id": str(booking.id), "amount": str(amount), "requester_id": str(requester.id)},
        )
        return await self._reload(booking.id)

    async def mark_payment_failed(self, requester: User, booking_id: str, request: PaymentFailedRequest) -> Booking:
        booking = await self.get_booking_by_id_or_raise(booking_id)
        authorize(requester, booking.user_id)

        ensure_payment_transition(booking.payment_status, PaymentStatus.FAILED.value)
        self._set_payment_status(booking, PaymentStatus.FAILED)
        await self.db.commit()

        logger.warning(
            "Payment failed",
            extra={"booking_id": str(booking.id), "reason": request.reason},
        )
        return await self._reload(booking.id)
