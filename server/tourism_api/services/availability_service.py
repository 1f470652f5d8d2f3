"""Unit-count availability checks for rooms, flight fares and services."""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AvailabilityError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingType
from ..models.flight import FlightFare
from ..models.property import Property, Room
from ..models.service import Service, weekday_index

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service for inventory checks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def booked_room_units(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[UUID] = None,
    ) -> int:
        """Units of a room held by pending/confirmed bookings overlapping [check_in, check_out)."""
        stmt = select(func.coalesce(func.sum(Booking.quantity), 0)).where(
            Booking.room_id == room_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)

        return int(await self.db.scalar(stmt) or 0)

    async def remaining_room_units(self, room: Room, check_in: date, check_out: date) -> int:
        if not room.available:
            return 0
        booked = await self.booked_room_units(room.id, check_in, check_out)
        return max(room.count - booked, 0)

    async def ensure_room_available(self, room: Room, check_in: date, check_out: date, quantity: int) -> int:
        """
        Check that ``quantity`` units of ``room`` are free for the stay.

        Returns:
            Units remaining before this request

        Raises:
            AvailabilityError: If fewer than ``quantity`` units remain
        """
        remaining = await self.remaining_room_units(room, check_in, check_out)
        if quantity > remaining:
            logger.warning(
                "Room availability check failed",
                extra={
                    "room_id": str(room.id),
                    "check_in": check_in.isoformat(),
                    "check_out": check_out.isoformat(),
                    "requested": quantity,
                    "remaining": remaining,
                },
            )
            metrics_collector.record_availability_rejection(BookingType.PROPERTY.value)
            raise AvailabilityError(
                requested_quantity=quantity,
                available_quantity=remaining,
                unit=f"room type {room.room_type}",
            )
        return remaining

    @staticmethod
    def ensure_stay_length(property_obj: Property, nights: int) -> None:
        """
        Enforce the property's minimum and maximum stay.

        Raises:
            ValidationError: If ``nights`` is outside the allowed range
        """
        if nights < property_obj.minimum_stay:
            raise ValidationError(f"Minimum stay at this property is {property_obj.minimum_stay} night(s)")
        if property_obj.maximum_stay is not None and nights > property_obj.maximum_stay:
            raise ValidationError(f"Maximum stay at this property is {property_obj.maximum_stay} night(s)")

    async def reserve_flight_seats(self, fare: FlightFare, quantity: int) -> None:
        """
        Take seats from a fare with a single conditional UPDATE.

        The decrement only applies when enough seats remain, so concurrent
        bookings can never drive the count below zero.

        Raises:
            AvailabilityError: If fewer than ``quantity`` seats remain
        """
        result = await self.db.execute(
            update(FlightFare)
            .where(FlightFare.id == fare.id, FlightFare.seats_available >= quantity)
            .values(seats_available=FlightFare.seats_available - quantity)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            remaining = await self.db.scalar(
                select(FlightFare.seats_available).where(FlightFare.id == fare.id)
            )
            logger.warning(
                "Flight seat reservation failed",
                extra={
                    "fare_id": str(fare.id),
                    "cabin_class": fare.cabin_class,
                    "requested": quantity,
                    "remaining": remaining,
                },
            )
            metrics_collector.record_availability_rejection(BookingType.FLIGHT.value)
            raise AvailabilityError(
                requested_quantity=quantity,
                available_quantity=remaining or 0,
                unit=f"{fare.cabin_class} seats",
            )

        await self.db.refresh(fare)

    async def release_flight_seats(self, fare_id: UUID, quantity: int) -> None:
        await self.db.execute(
            update(FlightFare)
            .where(FlightFare.id == fare_id)
            .values(seats_available=FlightFare.seats_available + quantity)
            .execution_options(synchronize_session=False)
        )

    async def booked_service_places(self, service_id: UUID, day: date) -> int:
        stmt = select(func.coalesce(func.sum(Booking.quantity), 0)).where(
            Booking.service_id == service_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_in_date == day,
        )
        return int(await self.db.scalar(stmt) or 0)

    async def ensure_service_available(self, service: Service, day: date, quantity: int) -> int:
        """
        Check that a service runs on ``day`` and has ``quantity`` places left.

        Raises:
            ValidationError: If the service does not run on that weekday
            AvailabilityError: If fewer than ``quantity`` places remain
        """
        if not service.runs_on(day):
            raise ValidationError(
                f"{service.name} does not run on {day.strftime('%A')}",
                violations=[{"path": "date", "message": f"Weekday {weekday_index(day)} is not offered"}],
            )

        remaining = max(service.capacity - await self.booked_service_places(service.id, day), 0)
        if quantity > remaining:
            logger.warning(
                "Service availability check failed",
                extra={
                    "service_id": str(service.id),
                    "date": day.isoformat(),
                    "requested": quantity,
                    "remaining": remaining,
                },
            )
            metrics_collector.record_availability_rejection(BookingType.SERVICE.value)
            raise AvailabilityError(
                requested_quantity=quantity,
                available_quantity=remaining,
                unit=f"places on {service.name}",
            )
        return remaining
