"""Models module exporting all database models."""

from .booking import (
    Booking,
    BookingStatus,
    BookingType,
    CheckInStatus,
    CheckOutStatus,
    PaymentMethod,
    PaymentStatus,
)
from .discount import Discount, DiscountScope, DiscountType, DiscountUsage
from .flight import CabinClass, Flight, FlightFare, FlightStatus
from .property import CancellationPolicy, MealPlan, Property, PropertyAmenity, PropertyType, Room
from .review import Review, ReviewHelpfulVote, TravelerType
from .service import Service
from .user import LoyaltyTier, SavedPaymentMethod, User, UserRole

__all__ = [
    # Accounts
    "User",
    "UserRole",
    "LoyaltyTier",
    "SavedPaymentMethod",

    # Catalog entities
    "Property",
    "PropertyType",
    "PropertyAmenity",
    "Room",
    "MealPlan",
    "CancellationPolicy",
    "Flight",
    "FlightFare",
    "FlightStatus",
    "CabinClass",
    "Service",

    # Booking entities
    "Booking",
    "BookingType",
    "BookingStatus",
    "PaymentStatus",
    "PaymentMethod",
    "CheckInStatus",
    "CheckOutStatus",

    # Reviews
    "Review",
    "ReviewHelpfulVote",
    "TravelerType",

    # Promotions
    "Discount",
    "DiscountType",
    "DiscountScope",
    "DiscountUsage",
]
