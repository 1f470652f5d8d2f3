"""Unit tests for account services."""

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from tourism_api.core.exceptions import ConflictError, ValidationError
from tourism_api.core.identifiers import identity_of
from tourism_api.core.security import verify_password
from tourism_api.schemas.booking import CreatePropertyBookingRequest
from tourism_api.schemas.user import CreatePaymentMethodRequest, LoginRequest, RegisterRequest, UpdateProfileRequest
from tourism_api.services.auth_service import AuthService
from tourism_api.services.booking_service import BookingService
from tourism_api.services.user_service import UserService

PASSWORD = "secret123"


@pytest.mark.asyncio
async def test_register_normalises_email(test_session):
    user = await AuthService(test_session).register(
        RegisterRequest(email="Ana@Example.com", password="island-time", first_name="Ana", last_name="Tari")
    )

    assert user.email == "ana@example.com"
    assert user.role == "customer"
    assert user.loyalty_tier == "bronze"
    assert verify_password("island-time", user.password_hash)


@pytest.mark.asyncio
async def test_register_duplicate_email(test_session, customer):
    with pytest.raises(ConflictError) as exc_info:
        await AuthService(test_session).register(
            RegisterRequest(email=customer.email.upper(), password="another1", first_name="A", last_name="B")
        )
    assert exc_info.value.extensions["code"] == "DUPLICATE_EMAIL"


@pytest.mark.asyncio
async def test_login(test_session, customer):
    service = AuthService(test_session)

    user = await service.login(LoginRequest(email=customer.email, password=PASSWORD))
    assert user.id == customer.id

    with pytest.raises(ValidationError):
        await service.login(LoginRequest(email=customer.email, password="wrong-password"))

    with pytest.raises(ValidationError):
        await service.login(LoginRequest(email="nobody@example.com", password=PASSWORD))


@pytest.mark.asyncio
async def test_update_profile_ignores_protected_fields(test_session, customer):
    request = UpdateProfileRequest.model_validate(
        {"firstName": "Lisi", "role": "admin", "email": "hijack@example.com"}
    )

    user = await UserService(test_session).update_profile(customer, request)

    assert user.first_name == "Lisi"
    assert user.role == "customer"
    assert user.email != "hijack@example.com"


def test_profile_request_rejects_null_names():
    with pytest.raises(PydanticValidationError) as exc_info:
        UpdateProfileRequest.model_validate({"firstName": None})
    assert exc_info.value.errors()[0]["loc"] == ("firstName",)

    request = UpdateProfileRequest.model_validate({"phone": None})
    assert request.model_dump(exclude_unset=True) == {"phone": None}


@pytest.mark.asyncio
async def test_identity_survives_failed_flush(test_session, customer):
    expected = str(customer.id)
    customer.first_name = None

    with pytest.raises(IntegrityError):
        await test_session.flush()

    assert identity_of(customer) == expected
    await test_session.rollback()


@pytest.mark.asyncio
async def test_change_password(test_session, customer):
    service = UserService(test_session)

    with pytest.raises(ValidationError):
        await service.change_password(customer, "not-it", "new-secret")

    await service.change_password(customer, PASSWORD, "new-secret")
    assert verify_password("new-secret", customer.password_hash)


@pytest.mark.asyncio
async def test_delete_account_blocked_by_active_booking(
    test_session, customer, listed_property, guest_details, dates
):
    """Deletion fails while a booking is pending and succeeds after cancelling it."""
    check_in, check_out = dates(30, 2)
    bookings = BookingService(test_session)
    booking = await bookings.create_property_booking(
        customer,
        CreatePropertyBookingRequest(
            property_id=str(listed_property.id),
            room_id=str(listed_property.rooms[0].id),
            check_in=check_in,
            check_out=check_out,
            guest_details=guest_details,
        ),
    )
    service = UserService(test_session)

    with pytest.raises(ValidationError):
        await service.delete_account(customer, "wrong-password")

    with pytest.raises(ConflictError) as exc_info:
        await service.delete_account(customer, PASSWORD)
    assert exc_info.value.extensions["code"] == "ACTIVE_BOOKINGS"

    await bookings.cancel_booking(customer, str(booking.id))
    user = await service.delete_account(customer, PASSWORD)

    assert user.is_active is False
    assert user.deactivated_at is not None

    with pytest.raises(ValidationError):
        await AuthService(test_session).login(LoginRequest(email=customer.email, password=PASSWORD))


@pytest.mark.asyncio
async def test_booking_counters(test_session, customer, listed_property, guest_details, dates):
    bookings = BookingService(test_session)
    created = []
    for offset in (30, 40):
        check_in, check_out = dates(offset, 2)
        created.append(await bookings.create_property_booking(
            customer,
            CreatePropertyBookingRequest(
                property_id=str(listed_property.id),
                room_id=str(listed_property.rooms[0].id),
                check_in=check_in,
                check_out=check_out,
                guest_details=guest_details,
            ),
        ))
    await bookings.cancel_booking(customer, str(created[0].id))

    counters = await UserService(test_session).booking_counters(customer)

    assert counters.total == 2
    assert counters.cancelled == 1
    assert counters.active == 1
    assert counters.completed == 0
    assert counters.spent == []


@pytest.mark.asyncio
async def test_first_payment_method_becomes_default(test_session, customer):
    service = UserService(test_session)

    first = await service.add_payment_method(
        customer, CreatePaymentMethodRequest(provider="stripe", token="tok_visa", brand="visa", last_four="4242")
    )
    second = await service.add_payment_method(
        customer, CreatePaymentMethodRequest(provider="stripe", token="tok_mc", brand="mastercard", last_four="4444")
    )

    assert first.is_default is True
    assert second.is_default is False

    methods = await service.list_payment_methods(customer)
    assert [m.token for m in methods] == ["tok_visa", "tok_mc"]

    await service.delete_payment_method(customer, str(second.id))
    assert len(await service.list_payment_methods(customer)) == 1
