"""Discount code router."""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..core.permissions import authorize
from ..models.user import User as UserModel
from ..models.user import UserRole
from ..schemas.discount import CreateDiscountRequest, Discount, DiscountValidation
from ..services.discount_service import DiscountService
from ..services.pricing import quantize_money
from .converters import discount_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/discounts", tags=["discounts"])

CODE_QUERY = Query(..., min_length=1, max_length=32)
AMOUNT_QUERY = Query(..., ge=0, description="Amount the code would be applied to")
BOOKING_TYPE_QUERY = Query(None, alias="bookingType", pattern="^(property|flight|service)$")


@router.post("", response_model=Discount, status_code=201)
async def create_discount(
    request: CreateDiscountRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Create a discount code. Admins only."""
    authorize(current_user, required_role=UserRole.ADMIN)

    try:
        discount = await DiscountService(db).create_discount(request)
        return JSONResponse(status_code=201, content=discount_to_schema(discount).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in discount creation",
            extra={"discount_code": request.code, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.get("/validate", response_model=DiscountValidation)
async def validate_discount(
    code: str = CODE_QUERY,
    amount: Decimal = AMOUNT_QUERY,
    booking_type: Optional[str] = BOOKING_TYPE_QUERY,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Check a code against an amount without using it up. Always 200; see ``valid``."""
    valid, message, discount_amount = await DiscountService(db).validate_code(code, amount, booking_type)
    response_data = DiscountValidation(
        valid=valid,
        code=code.upper(),
        message=message,
        discount_amount=discount_amount,
        final_amount=quantize_money(amount - discount_amount) if discount_amount is not None else None,
    )
    return JSONResponse(status_code=200, content=response_data.to_json())
