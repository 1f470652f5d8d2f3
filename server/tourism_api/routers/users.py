"""User account router."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..core.identifiers import identity_of
from ..models.user import User as UserModel
from ..schemas.booking import BookingList
from ..schemas.common import MessageResponse
from ..schemas.user import (
    ChangePasswordRequest,
    CreatePaymentMethodRequest,
    CurrencyTotal,
    DeleteAccountRequest,
    PaymentMethod,
    UpdateProfileRequest,
    User,
    UserStats,
)
from ..services.booking_service import BookingService
from ..services.query_builder import PageRequest
from ..services.user_service import UserService
from .converters import booking_to_schema, pagination_to_schema, payment_method_to_schema, user_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

PREFERENCES_BODY = Body(..., description="Preference keys to merge into the stored document")


def _internal_error(action: str, user: UserModel, error: Exception) -> InternalServerError:
    logger.error(
        f"Unexpected error in {action}",
        extra={"user_id": identity_of(user), "error": str(error)},
        exc_info=True,
    )
    return InternalServerError()


@router.get("/profile", response_model=User)
async def get_profile(current_user: UserModel = RequiredAuth) -> JSONResponse:
    return JSONResponse(status_code=200, content=user_to_schema(current_user).to_json())


@router.put("/profile", response_model=User)
async def update_profile(
    request: UpdateProfileRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Update profile fields. Password, email and role in the body are ignored."""
    try:
        user = await UserService(db).update_profile(current_user, request)
        return JSONResponse(status_code=200, content=user_to_schema(user).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("profile update", current_user, e)


@router.put("/password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        await UserService(db).change_password(current_user, request.current_password, request.new_password)
        return JSONResponse(status_code=200, content=MessageResponse(message="Password updated").to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("password change", current_user, e)


@router.get("/bookings", response_model=BookingList)
async def booking_history(
    request: Request,
    status: Optional[str] = Query(None),
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    page = PageRequest.from_params(request.query_params)

    try:
        bookings, total = await BookingService(db).list_user_bookings(current_user, page, status)
        response_data = BookingList(
            bookings=[booking_to_schema(booking) for booking in bookings],
            pagination=pagination_to_schema(total, page),
        )
        return JSONResponse(status_code=200, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("booking history", current_user, e)


@router.get("/stats", response_model=UserStats)
async def stats(current_user: UserModel = RequiredAuth, db: AsyncSession = DatabaseSession) -> JSONResponse:
    try:
        counters = await UserService(db).booking_counters(current_user)
        response_data = UserStats(
            total_bookings=counters.total,
            completed_bookings=counters.completed,
            cancelled_bookings=counters.cancelled,
            active_bookings=counters.active,
            total_spent=[CurrencyTotal(currency=currency, amount=amount) for currency, amount in counters.spent],
            loyalty_points=current_user.loyalty_points,
            loyalty_tier=current_user.loyalty_tier,
        )
        return JSONResponse(status_code=200, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("user stats", current_user, e)


@router.post("/preferences", response_model=User)
async def update_preferences(
    preferences: Dict[str, Any] = PREFERENCES_BODY,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        user = await UserService(db).update_preferences(current_user, preferences)
        return JSONResponse(status_code=200, content=user_to_schema(user).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("preferences update", current_user, e)


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    request: DeleteAccountRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Deactivate the current account.

    Fails with 409 while the user holds pending or confirmed bookings.
    """
    try:
        await UserService(db).delete_account(current_user, request.password)
        return JSONResponse(status_code=200, content=MessageResponse(message="Account deactivated").to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("account deletion", current_user, e)


@router.get("/payment-methods", response_model=list[PaymentMethod])
async def list_payment_methods(
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    methods = await UserService(db).list_payment_methods(current_user)
    return JSONResponse(
        status_code=200,
        content=[payment_method_to_schema(method).to_json() for method in methods],
    )


@router.post("/payment-methods", response_model=PaymentMethod, status_code=201)
async def add_payment_method(
    request: CreatePaymentMethodRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        method = await UserService(db).add_payment_method(current_user, request)
        return JSONResponse(status_code=201, content=payment_method_to_schema(method).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("payment method creation", current_user, e)


@router.delete("/payment-methods/{method_id}", response_model=MessageResponse)
async def delete_payment_method(
    method_id: str,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        await UserService(db).delete_payment_method(current_user, method_id)
        return JSONResponse(status_code=200, content=MessageResponse(message="Payment method removed").to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("payment method removal", current_user, e)
