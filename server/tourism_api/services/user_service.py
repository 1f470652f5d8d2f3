"""User account service: profile, password, stats, preferences and payment methods."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import utcnow
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identifiers import parse_uuid
from ..core.security import hash_password, verify_password
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from ..models.user import SavedPaymentMethod, User
from ..schemas.user import CreatePaymentMethodRequest, UpdateProfileRequest

logger = logging.getLogger(__name__)

# Bookings whose total counts towards a user's spend
SPENDING_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)


@dataclass
class BookingCounters:
    total: int = 0
    completed: int = 0
    cancelled: int = 0
    active: int = 0
    spent: List[Tuple[str, Decimal]] = field(default_factory=list)


class UserService:
    """Service for account self-management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_profile(self, user: User, request: UpdateProfileRequest) -> User:
        """Apply profile changes. Email, role and password are never touched here."""
        changes = request.model_dump(exclude_unset=True, exclude={"address"})
        for name, value in changes.items():
            setattr(user, name, value)

        if request.address is not None:
            for name, value in request.address.model_dump(exclude_unset=True).items():
                setattr(user, name, value)

        await self.db.commit()

        logger.info("Profile updated", extra={"user_id": str(user.id), "fields": sorted(changes)})
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the password after checking the current one.

        Raises:
            ValidationError: If the current password is wrong
        """
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        await self.db.commit()
        logger.info("Password changed", extra={"user_id": str(user.id)})

    async def update_preferences(self, user: User, preferences: Dict[str, Any]) -> User:
        """Merge ``preferences`` into the stored preference document."""
        user.preferences = {**(user.preferences or {}), **preferences}
        await self.db.commit()
        return user

    async def booking_counters(self, user: User) -> BookingCounters:
        rows = await self.db.execute(
            select(Booking.status, func.count(Booking.id))
            .where(Booking.user_id == user.id)
            .group_by(Booking.status)
        )
        by_status = {status: count for status, count in rows.all()}

        spent = await self.db.execute(
            select(Booking.currency, func.sum(Booking.total_amount))
            .where(Booking.user_id == user.id, Booking.status.in_(SPENDING_STATUSES))
            .group_by(Booking.currency)
            .order_by(Booking.currency)
        )

        return BookingCounters(
            total=sum(by_status.values()),
            completed=by_status.get(BookingStatus.COMPLETED.value, 0),
            cancelled=by_status.get(BookingStatus.CANCELLED.value, 0),
            active=sum(by_status.get(status, 0) for status in ACTIVE_BOOKING_STATUSES),
            spent=[(currency, Decimal(amount)) for currency, amount in spent.all()],
        )

    async def delete_account(self, user: User, password: str) -> User:
        """
        Deactivate an account. The record and its history are retained.

        Raises:
            ValidationError: If the password is wrong
            ConflictError: If the user still has pending or confirmed bookings
        """
        if not verify_password(password, user.password_hash):
            raise ValidationError("Password is incorrect")

        active = await self.db.scalar(
            select(func.count(Booking.id)).where(
                Booking.user_id == user.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        if active:
            logger.warning(
                "Account deletion blocked by active bookings",
                extra={"user_id": str(user.id), "active_bookings": active},
            )
            raise ConflictError(
                "Cannot delete an account with pending or confirmed bookings",
                conflicting_resource={"active_bookings": active},
                code="ACTIVE_BOOKINGS",
            )

        user.is_active = False
        user.deactivated_at = utcnow()
        await self.db.commit()

        logger.info("Account deactivated", extra={"user_id": str(user.id)})
        return user

    async def list_payment_methods(self, user: User) -> List[SavedPaymentMethod]:
        result = await self.db.execute(
            select(SavedPaymentMethod)
            .where(SavedPaymentMethod.user_id == user.id)
            .order_by(SavedPaymentMethod.is_default.desc(), SavedPaymentMethod.created_at.asc())
        )
        return list(result.scalars().all())

    async def add_payment_method(self, user: User, request: CreatePaymentMethodRequest) -> SavedPaymentMethod:
        """Save a tokenised payment method; the first one saved becomes the default."""
        existing = await self.db.scalar(
            select(func.count(SavedPaymentMethod.id)).where(SavedPaymentMethod.user_id == user.id)
        )
        is_default = request.is_default or not existing
        if is_default and existing:
            await self.db.execute(
                update(SavedPaymentMethod)
                .where(SavedPaymentMethod.user_id == user.id)
                .values(is_default=False)
                .execution_options(synchronize_session=False)
            )

        method = SavedPaymentMethod(
            user_id=user.id,
            provider=request.provider,
            token=request.token,
            brand=request.brand,
            last_four=request.last_four,
            is_default=is_default,
        )
        self.db.add(method)
        await self.db.commit()

        logger.info(
            "Payment method saved",
            extra={"user_id": str(user.id), "provider": method.provider, "is_default": is_default},
        )
        return method

    async def delete_payment_method(self, user: User, method_id: str) -> None:
        method = await self.db.get(SavedPaymentMethod, parse_uuid(method_id, "payment method"))
        if method is None or method.user_id != user.id:
            raise NotFoundError(resource_type="payment method", resource_id=method_id)

        await self.db.delete(method)
        await self.db.commit()
        logger.info("Payment method removed", extra={"user_id": str(user.id), "payment_method_id": method_id})
