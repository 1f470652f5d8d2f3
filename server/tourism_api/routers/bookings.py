"""Booking router for reservation lifecycle operations."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..models.user import User as UserModel
from ..schemas.booking import (
    Booking,
    BookingList,
    CancelBookingRequest,
    CheckOutRequest,
    CreateFlightBookingRequest,
    CreatePropertyBookingRequest,
    CreateServiceBookingRequest,
    PaymentFailedRequest,
    RecordPaymentRequest,
    RefundRequest,
    UpdateBookingStatusRequest,
)
from ..services.booking_service import BookingService
from ..services.query_builder import PageRequest
from .converters import booking_to_schema, pagination_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

STATUS_QUERY = Query(None, description="Only bookings in this status")
BOOKING_TYPE_QUERY = Query(None, alias="bookingType")


def _booking_response(booking, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=booking_to_schema(booking).to_json())


def _list_response(bookings, total: int, page: PageRequest) -> JSONResponse:
    response_data = BookingList(
        bookings=[booking_to_schema(booking) for booking in bookings],
        pagination=pagination_to_schema(total, page),
    )
    return JSONResponse(status_code=200, content=response_data.to_json())


def _internal_error(action: str, booking_id: Optional[str], error: Exception) -> InternalServerError:
    logger.error(
        f"Unexpected error in {action}",
        extra={"booking_id": booking_id, "error": str(error)},
        exc_info=True,
    )
    return InternalServerError()


@router.post("/property", response_model=Booking, status_code=201)
async def create_property_booking(
    request: CreatePropertyBookingRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Book rooms at a property.

    Fails with 400 when fewer rooms of the requested type are free for the
    whole stay than ``quantity``; nothing is written in that case.
    """
    try:
        booking = await BookingService(db).create_property_booking(current_user, request)
        return _booking_response(booking, 201)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("property booking", None, e)


@router.post("/flight", response_model=Booking, status_code=201)
async def create_flight_booking(
    request: CreateFlightBookingRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        booking = await BookingService(db).create_flight_booking(current_user, request)
        return _booking_response(booking, 201)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("flight booking", None, e)


@router.post("/service", response_model=Booking, status_code=201)
async def create_service_booking(
    request: CreateServiceBookingRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        booking = await BookingService(db).create_service_booking(current_user, request)
        return _booking_response(booking, 201)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("service booking", None, e)


@router.get("/my-bookings", response_model=BookingList)
async def my_bookings(
    request: Request,
    status: Optional[str] = STATUS_QUERY,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    page = PageRequest.from_params(request.query_params)
    bookings, total = await BookingService(db).list_user_bookings(current_user, page, status)
    return _list_response(bookings, total, page)


@router.get("/all", response_model=BookingList)
async def all_bookings(
    request: Request,
    status: Optional[str] = STATUS_QUERY,
    booking_type: Optional[str] = BOOKING_TYPE_QUERY,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Every booking in the system. Admins only."""
    page = PageRequest.from_params(request.query_params)
    bookings, total = await BookingService(db).list_all_bookings(current_user, page, status, booking_type)
    return _list_response(bookings, total, page)


@router.get("/host/bookings", response_model=BookingList)
async def host_bookings(
    request: Request,
    status: Optional[str] = STATUS_QUERY,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Bookings at the current host's properties."""
    page = PageRequest.from_params(request.query_params)
    bookings, total = await BookingService(db).list_host_bookings(current_user, page, status)
    return _list_response(bookings, total, page)


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    booking = await BookingService(db).get_booking_for_requester(current_user, booking_id)
    return _booking_response(booking)


@router.patch("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: str,
    request: Optional[CancelBookingRequest] = None,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    reason = request.reason if request else None

    try:
        booking = await BookingService(db).cancel_booking(current_user, booking_id, reason)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("booking cancellation", booking_id, e)


@router.patch("/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: str,
    request: UpdateBookingStatusRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Move a booking to a new status. Terminal bookings reject every change with 409."""
    try:
        booking = await BookingService(db).update_status(current_user, booking_id, request)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("booking status update", booking_id, e)


@router.post("/{booking_id}/check-in", response_model=Booking)
async def check_in(
    booking_id: str,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        booking = await BookingService(db).check_in(current_user, booking_id)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("check-in", booking_id, e)


@router.post("/{booking_id}/check-out", response_model=Booking)
async def check_out(
    booking_id: str,
    request: Optional[CheckOutRequest] = None,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        booking = await BookingService(db).check_out(current_user, booking_id, request or CheckOutRequest())
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("check-out", booking_id, e)


@router.post("/{booking_id}/payments", response_model=Booking)
async def record_payment(
    booking_id: str,
    request: RecordPaymentRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        booking = await BookingService(db).record_payment(current_user, booking_id, request)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("payment recording", booking_id, e)


@router.post("/{booking_id}/refund", response_model=Booking)
async def refund_booking(
    booking_id: str,
    request: RefundRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        booking = await BookingService(db).refund(current_user, booking_id, request)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("refund", booking_id, e)


@router.post("/{booking_id}/payment-failed", response_model=Booking)
async def payment_failed(
    booking_id: str,
    request: Optional[PaymentFailedRequest] = None,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        booking = await BookingService(db).mark_payment_failed(current_user, booking_id, request or PaymentFailedRequest())
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("payment failure", booking_id, e)
