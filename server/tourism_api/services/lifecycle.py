"""Booking and payment state machines."""

from decimal import Decimal
from typing import Dict, Tuple

from ..core.exceptions import ConflictError
from ..models.booking import BookingStatus, CheckInStatus, PaymentStatus
from ..models.user import LoyaltyTier

BOOKING_TRANSITIONS: Dict[BookingStatus, Tuple[BookingStatus, ...]] = {
    BookingStatus.PENDING: (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    BookingStatus.CONFIRMED: (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW),
    BookingStatus.COMPLETED: (),
    BookingStatus.CANCELLED: (),
    BookingStatus.NO_SHOW: (),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, Tuple[PaymentStatus, ...]] = {
    PaymentStatus.UNPAID: (PaymentStatus.PARTIAL, PaymentStatus.PAID, PaymentStatus.FAILED),
    PaymentStatus.PARTIAL: (PaymentStatus.PAID, PaymentStatus.FAILED),
    PaymentStatus.PAID: (PaymentStatus.REFUNDED, PaymentStatus.FAILED),
    PaymentStatus.REFUNDED: (PaymentStatus.FAILED,),
    # Retry after a failed attempt
    PaymentStatus.FAILED: (PaymentStatus.PARTIAL, PaymentStatus.PAID),
}

TERMINAL_STATUSES = tuple(status for status, targets in BOOKING_TRANSITIONS.items() if not targets)

# One loyalty point per this many currency units of booking total
LOYALTY_POINT_UNIT = Decimal("100")


def is_terminal(status: str) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]


def ensure_transition(current: str, target: str, check_in_status: str = CheckInStatus.NOT_CHECKED_IN.value) -> BookingStatus:
    """
    Validate a booking status change.

    No-show is only possible while the guest has not checked in.

    Returns:
        The target status as an enum member

    Raises:
        ConflictError: If the transition is not allowed from ``current``
    """
    current_status = BookingStatus(current)
    target_status = BookingStatus(target)

    if is_terminal(current):
        raise ConflictError(
            f"Booking is already {current_status.value} and can no longer change status",
            code="INVALID_STATUS_TRANSITION",
        )

    if not can_transition(current, target):
        raise ConflictError(
            f"Cannot change booking status from {current_status.value} to {target_status.value}",
            code="INVALID_STATUS_TRANSITION",
        )

    if target_status == BookingStatus.NO_SHOW and CheckInStatus(check_in_status) != CheckInStatus.NOT_CHECKED_IN:
        raise ConflictError(
            "A guest who has checked in cannot be marked as a no-show",
            code="INVALID_STATUS_TRANSITION",
        )

    return target_status


def ensure_payment_transition(current: str, target: str) -> PaymentStatus:
    """
    Validate a payment status change.

    Raises:
        ConflictError: If the transition is not allowed from ``current``
    """
    current_status = PaymentStatus(current)
    target_status = PaymentStatus(target)

    if target_status not in PAYMENT_TRANSITIONS[current_status]:
        raise ConflictError(
            f"Cannot change payment status from {current_status.value} to {target_status.value}",
            code="INVALID_PAYMENT_TRANSITION",
        )
    return target_status


def payment_status_after(total: Decimal, paid: Decimal) -> PaymentStatus:
    """Status implied by the amount paid so far."""
    return PaymentStatus.PAID if paid >= total else PaymentStatus.PARTIAL


def loyalty_points_for(total: Decimal) -> int:
    return int(Decimal(total) // LOYALTY_POINT_UNIT)


# Minimum loyalty points per tier, highest first
LOYALTY_TIERS = (
    (5000, LoyaltyTier.PLATINUM),
    (2000, LoyaltyTier.GOLD),
    (500, LoyaltyTier.SILVER),
    (0, LoyaltyTier.BRONZE),
)


def tier_for(points: int) -> LoyaltyTier:
    for threshold, tier in LOYALTY_TIERS:
        if points >= threshold:
            return tier
    return LoyaltyTier.BRONZE
