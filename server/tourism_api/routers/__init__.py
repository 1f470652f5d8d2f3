"""FastAPI routers package."""

from .auth import router as auth_router
from .bookings import router as bookings_router
from .discounts import router as discounts_router
from .flights import router as flights_router
from .health import router as health_router
from .metrics import router as metrics_router
from .properties import router as properties_router
from .reviews import router as reviews_router
from .services import router as services_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "bookings_router",
    "discounts_router",
    "flights_router",
    "health_router",
    "metrics_router",
    "properties_router",
    "reviews_router",
    "services_router",
    "users_router",
]
