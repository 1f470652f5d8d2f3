"""Unit tests for booking service."""

import re
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from tourism_api.core.exceptions import AuthorizationError, AvailabilityError, ConflictError, ValidationError
from tourism_api.models.booking import BookingStatus
from tourism_api.models.flight import FlightFare
from tourism_api.schemas.booking import (
    CheckOutRequest,
    CreateFlightBookingRequest,
    CreatePropertyBookingRequest,
    CreateServiceBookingRequest,
    RecordPaymentRequest,
    RefundRequest,
    UpdateBookingStatusRequest,
)
from tourism_api.services.booking_service import BookingService
from tourism_api.services.query_builder import PageRequest


def stay_request(property_obj, guest_details, check_in, check_out, quantity=1, **fields):
    return CreatePropertyBookingRequest(
        property_id=str(property_obj.id),
        room_id=str(property_obj.rooms[0].id),
        check_in=check_in,
        check_out=check_out,
        quantity=quantity,
        guest_details=guest_details,
        **fields,
    )


async def seats_left(session, fare_id) -> int:
    return await session.scalar(select(FlightFare.seats_available).where(FlightFare.id == fare_id))


@pytest.mark.asyncio
async def test_create_property_booking(test_session, customer, listed_property, guest_details, dates):
    """Test booking a three night stay."""
    check_in, check_out = dates(30, 3)

    booking = await BookingService(test_session).create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out)
    )

    assert booking.status == BookingStatus.PENDING.value
    assert booking.payment_status == "unpaid"
    assert booking.check_in_status == "not-checked-in"
    assert re.fullmatch(r"VU-\d{6}-\d{6}", booking.reservation_number)
    assert booking.nights == 3
    assert booking.subtotal == Decimal("600.00")
    assert booking.tax_amount == Decimal("90.00")
    assert booking.total_amount == Decimal("690.00")
    assert booking.remaining_amount == Decimal("690.00")
    assert booking.currency == "VUV"


@pytest.mark.asyncio
async def test_property_booking_respects_room_count(test_session, customer, listed_property, guest_details, dates):
    """Two units exist; a third overlapping unit must be refused."""
    service = BookingService(test_session)
    check_in, check_out = dates(30, 3)

    await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out, quantity=2)
    )

    with pytest.raises(AvailabilityError):
        await service.create_property_booking(
            customer,
            stay_request(listed_property, guest_details, check_in + timedelta(days=1), check_out + timedelta(days=1)),
        )

    # Back-to-back stay does not overlap
    following = await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_out, check_out + timedelta(days=2))
    )
    assert following.status == BookingStatus.PENDING.value


@pytest.mark.asyncio
async def test_cancelled_booking_frees_rooms(test_session, customer, listed_property, guest_details, dates):
    service = BookingService(test_session)
    check_in, check_out = dates(30, 3)

    booking = await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out, quantity=2)
    )
    await service.cancel_booking(customer, str(booking.id), "Change of plans")

    rebooked = await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out, quantity=2)
    )
    assert rebooked.quantity == 2


@pytest.mark.asyncio
async def test_party_larger_than_rooms_rejected(test_session, customer, listed_property, guest_details, dates):
    check_in, check_out = dates(30, 2)

    with pytest.raises(ValidationError):
        await BookingService(test_session).create_property_booking(
            customer,
            stay_request(listed_property, guest_details, check_in, check_out, guests={"adults": 3}),
        )


@pytest.mark.asyncio
async def test_flight_seats_never_negative(test_session, customer, scheduled_flight, guest_details):
    service = BookingService(test_session)
    fare_id = scheduled_flight.fares[0].id

    def seats_request(passengers):
        return CreateFlightBookingRequest(
            flight_id=str(scheduled_flight.id),
            passengers=passengers,
            guest_details=guest_details,
        )

    booking = await service.create_flight_booking(customer, seats_request(3))
    assert booking.total_amount == Decimal("41400.00")
    assert await seats_left(test_session, fare_id) == 2

    with pytest.raises(AvailabilityError):
        await service.create_flight_booking(customer, seats_request(3))
    assert await seats_left(test_session, fare_id) == 2

    await service.cancel_booking(customer, str(booking.id))
    assert await seats_left(test_session, fare_id) == 5


@pytest.mark.asyncio
async def test_service_booking_capacity(test_session, customer, bookable_service, guest_details):
    service = BookingService(test_session)
    day = date.today() + timedelta(days=10)

    def places_request(participants):
        return CreateServiceBookingRequest(
            service_id=str(bookable_service.id),
            service_date=day,
            participants=participants,
            guest_details=guest_details,
        )

    booking = await service.create_service_booking(customer, places_request(3))
    assert booking.check_in_date == day
    assert booking.subtotal == Decimal("13500.00")

    with pytest.raises(AvailabilityError):
        await service.create_service_booking(customer, places_request(2))


@pytest.mark.asyncio
async def test_confirm_check_in_and_out_awards_points(
    test_session, customer, host, listed_property, guest_details, dates
):
    service = BookingService(test_session)
    check_in, check_out = dates(30, 3)
    booking = await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out)
    )

    with pytest.raises(ConflictError):
        await service.check_in(host, str(booking.id))

    await service.update_status(host, str(booking.id), UpdateBookingStatusRequest(status=BookingStatus.CONFIRMED))
    checked_in = await service.check_in(host, str(booking.id))
    assert checked_in.check_in_status == "checked-in"

    with pytest.raises(ConflictError) as exc_info:
        await service.check_in(host, str(booking.id))
    assert exc_info.value.extensions["code"] == "ALREADY_CHECKED_IN"

    completed = await service.check_out(host, str(booking.id), CheckOutRequest())
    assert completed.status == BookingStatus.COMPLETED.value
    assert completed.check_out_status == "checked-out"
    assert customer.loyalty_points == 6
    assert customer.completed_bookings == 1


@pytest.mark.asyncio
async def test_terminal_booking_rejects_transitions(test_session, customer, host, listed_property, guest_details, dates):
    service = BookingService(test_session)
    check_in, check_out = dates(30, 3)
    booking = await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out)
    )
    await service.cancel_booking(customer, str(booking.id))

    for target in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingStatus.CANCELLED):
        with pytest.raises(ConflictError) as exc_info:
            await service.update_status(host, str(booking.id), UpdateBookingStatusRequest(status=target))
        assert exc_info.value.extensions["code"] == "INVALID_STATUS_TRANSITION"
        assert "already cancelled" in exc_info.value.message

    with pytest.raises(ConflictError) as exc_info:
        await service.cancel_booking(customer, str(booking.id))
    assert "already cancelled" in exc_info.value.message


@pytest.mark.asyncio
async def test_status_change_requires_operator(test_session, customer, listed_property, guest_details, dates):
    service = BookingService(test_session)
    check_in, check_out = dates(30, 3)
    booking = await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out)
    )

    with pytest.raises(AuthorizationError):
        await service.update_status(customer, str(booking.id), UpdateBookingStatusRequest(status=BookingStatus.CONFIRMED))


@pytest.mark.asyncio
async def test_payments_and_refund(test_session, customer, host, listed_property, guest_details, dates):
    service = BookingService(test_session)
    check_in, check_out = dates(30, 3)
    booking = await service.create_property_booking(
        customer, stay_request(listed_property, guest_details, check_in, check_out)
    )
    booking_id = str(booking.id)

    partial = await service.record_payment(customer, booking_id, RecordPaymentRequest(amount=Decimal("190.00"), method="card"))
    assert partial.payment_status == "partial"
    assert partial.remaining_amount == Decimal("500.00")

    with pytest.raises(ValidationError):
        await service.record_payment(customer, booking_id, RecordPaymentRequest(amount=Decimal("600.00"), method="card"))

    paid = await service.record_payment(customer, booking_id, RecordPaymentRequest(amount=Decimal("500.00"), method="card"))
    assert paid.payment_status == "paid"
    assert paid.remaining_amount == Decimal("0.00")
    assert paid.paid_at is not None

    with pytest.raises(AuthorizationError):
        await service.refund(customer, booking_id, RefundRequest(reason="Guest asked"))

    refunded = await service.refund(host, booking_id, RefundRequest(reason="Storm closure"))
    assert refunded.payment_status == "refunded"
    assert refunded.refund_amount == Decimal("690.00")


@pytest.mark.asyncio
async def test_list_user_bookings(test_session, customer, listed_property, guest_details, dates):
    service = BookingService(test_session)
    for offset in (30, 40, 50):
        check_in, check_out = dates(offset, 2)
        await service.create_property_booking(
            customer, stay_request(listed_property, guest_details, check_in, check_out)
        )

    bookings, total = await service.list_user_bookings(customer, PageRequest(page=1, limit=2))
    assert total == 3
    assert len(bookings) == 2

    _, cancelled_total = await service.list_user_bookings(customer, PageRequest(), "cancelled")
    assert cancelled_total == 0

    with pytest.raises(ValidationError):
        await service.list_user_bookings(customer, PageRequest(), "lost")
