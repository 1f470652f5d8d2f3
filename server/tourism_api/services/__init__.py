"""Service layer package."""

from .auth_service import AuthService
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .catalog_service import CatalogService
from .discount_service import DiscountService
from .flight_service import FlightService
from .property_service import PropertyService
from .review_service import ReviewService
from .user_service import UserService

__all__ = [
    "AuthService",
    "AvailabilityService",
    "BookingService",
    "CatalogService",
    "DiscountService",
    "FlightService",
    "PropertyService",
    "ReviewService",
    "UserService",
]
