"""Unit tests for discount codes."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from tourism_api.core.exceptions import ConflictError, ValidationError
from tourism_api.models.discount import Discount, DiscountUsage
from tourism_api.schemas.booking import CreatePropertyBookingRequest
from tourism_api.schemas.discount import CreateDiscountRequest
from tourism_api.services.booking_service import BookingService
from tourism_api.services.discount_service import DiscountService


def discount_request(code="BULA10", **overrides) -> CreateDiscountRequest:
    now = datetime.now(timezone.utc)
    data = dict(
        code=code,
        type="percentage",
        value=Decimal("10"),
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=60),
    )
    data.update(overrides)
    return CreateDiscountRequest(**data)


@pytest.mark.asyncio
async def test_create_discount_uppercases_code(test_session):
    discount = await DiscountService(test_session).create_discount(discount_request(code="bula10"))

    assert discount.code == "BULA10"
    assert discount.used_count == 0


@pytest.mark.asyncio
async def test_create_duplicate_code(test_session):
    service = DiscountService(test_session)
    await service.create_discount(discount_request())

    with pytest.raises(ConflictError) as exc_info:
        await service.create_discount(discount_request(code="bula10"))
    assert exc_info.value.extensions["code"] == "DUPLICATE_CODE"


def test_invalid_discount_terms():
    with pytest.raises(ValueError):
        discount_request(value=Decimal("150"))

    now = datetime.now(timezone.utc)
    with pytest.raises(ValueError):
        discount_request(valid_from=now, valid_until=now - timedelta(days=1))


@pytest.mark.asyncio
async def test_validate_code(test_session):
    service = DiscountService(test_session)
    await service.create_discount(
        discount_request(code="SAVE500", type="fixed", value=Decimal("500"), min_purchase_amount=Decimal("2000"))
    )

    valid, message, amount = await service.validate_code("save500", Decimal("3000"))
    assert valid is True
    assert amount == Decimal("500.00")

    valid, message, amount = await service.validate_code("SAVE500", Decimal("1000"))
    assert valid is False
    assert "Minimum purchase" in message
    assert amount is None

    valid, message, amount = await service.validate_code("NOPE", Decimal("3000"))
    assert valid is False
    assert amount is None


@pytest.mark.asyncio
async def test_expired_and_out_of_scope_codes(test_session):
    service = DiscountService(test_session)
    now = datetime.now(timezone.utc)
    await service.create_discount(
        discount_request(code="OLD", valid_from=now - timedelta(days=30), valid_until=now - timedelta(days=1))
    )
    await service.create_discount(discount_request(code="FLYNOW", applies_to="flight"))

    with pytest.raises(ValidationError):
        await service.resolve_for_booking("OLD", "property")

    with pytest.raises(ValidationError):
        await service.resolve_for_booking("FLYNOW", "property")

    spec = await service.resolve_for_booking("FLYNOW", "flight")
    assert spec.code == "FLYNOW"


@pytest.mark.asyncio
async def test_redeem_respects_usage_limit(test_session):
    service = DiscountService(test_session)
    await service.create_discount(discount_request(code="ONCE", max_uses=1))

    await service.redeem("ONCE")
    with pytest.raises(ValidationError):
        await service.redeem("once")

    used = await test_session.scalar(select(Discount.used_count).where(Discount.code == "ONCE"))
    assert used == 1


@pytest.mark.asyncio
async def test_booking_with_discount_code(test_session, customer, listed_property, guest_details, dates):
    await DiscountService(test_session).create_discount(discount_request())
    check_in, check_out = dates(30, 3)

    booking = await BookingService(test_session).create_property_booking(
        customer,
        CreatePropertyBookingRequest(
            property_id=str(listed_property.id),
            room_id=str(listed_property.rooms[0].id),
            check_in=check_in,
            check_out=check_out,
            guest_details=guest_details,
            discount_code="bula10",
        ),
    )

    assert booking.discount_code == "BULA10"
    assert booking.discount_amount == Decimal("60.00")
    assert booking.tax_amount == Decimal("81.00")
    assert booking.total_amount == Decimal("621.00")

    used = await test_session.scalar(select(Discount.used_count).where(Discount.code == "BULA10"))
    assert used == 1


def stay_request(property_obj, check_in, check_out, guest_details, code) -> CreatePropertyBookingRequest:
    return CreatePropertyBookingRequest(
        property_id=str(property_obj.id),
        room_id=str(property_obj.rooms[0].id),
        check_in=check_in,
        check_out=check_out,
        guest_details=guest_details,
        discount_code=code,
    )


@pytest.mark.asyncio
async def test_discounted_booking_records_usage(test_session, customer, listed_property, guest_details, dates):
    await DiscountService(test_session).create_discount(discount_request())
    check_in, check_out = dates(30, 3)

    booking = await BookingService(test_session).create_property_booking(
        customer, stay_request(listed_property, check_in, check_out, guest_details, "BULA10")
    )

    usage = (await test_session.execute(select(DiscountUsage))).scalar_one()
    assert usage.user_id == customer.id
    assert usage.booking_id == booking.id
    assert usage.discount_amount == Decimal("60.00")
    assert usage.original_amount == Decimal("600.00")
    assert usage.final_amount == Decimal("621.00")


@pytest.mark.asyncio
async def test_per_customer_limit(test_session, customer, make_user, listed_property, guest_details, dates):
    await DiscountService(test_session).create_discount(discount_request(code="WELCOME", max_uses_per_user=1))
    bookings = BookingService(test_session)

    first_in, first_out = dates(30, 2)
    await bookings.create_property_booking(
        customer, stay_request(listed_property, first_in, first_out, guest_details, "WELCOME")
    )

    second_in, second_out = dates(60, 2)
    with pytest.raises(ValidationError) as exc_info:
        await bookings.create_property_booking(
            customer, stay_request(listed_property, second_in, second_out, guest_details, "welcome")
        )
    assert "per customer" in exc_info.value.message

    other = await make_user(email="other.guest@example.com")
    booking = await bookings.create_property_booking(
        other, stay_request(listed_property, second_in, second_out, guest_details, "WELCOME")
    )
    assert booking.discount_code == "WELCOME"

    used = await test_session.scalar(select(Discount.used_count).where(Discount.code == "WELCOME"))
    assert used == 2


@pytest.mark.asyncio
async def test_codes_without_per_customer_limit(test_session, customer):
    service = DiscountService(test_session)
    discount = await service.create_discount(discount_request(code="OPEN"))

    assert discount.max_uses_per_user is None
    spec = await service.resolve_for_booking("OPEN", "property", user_id=customer.id)
    assert spec.code == "OPEN"
