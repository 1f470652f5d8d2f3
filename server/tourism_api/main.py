"""Application factory and ASGI entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import close_db, engine, init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_VERSION,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import auth, bookings, discounts, flights, health, metrics, properties, reviews, services, users

setup_structured_logging()

logger = logging.getLogger(__name__)

# Operational endpoints first, then the public /api surface
ROUTERS = (
    health.router,
    metrics.router,
    auth.router,
    users.router,
    properties.router,
    flights.router,
    services.router,
    bookings.router,
    reviews.router,
    discounts.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Set up tracing and create the schema on startup; release the pool on shutdown."""
    logger.info(
        "Starting tourism booking API",
        extra={"environment": settings.environment, "tax_rate_percent": str(settings.tax_rate_percent)},
    )

    setup_tracing()
    setup_metrics()
    instrument_sqlalchemy(engine)

    await init_db()
    logger.info("Database schema ready")

    yield

    await close_db()
    logger.info("Tourism booking API stopped")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    app = FastAPI(
        title="Tourism Booking API",
        description="Accommodation, flight and activity bookings with search, payments, check-in/out and reviews",
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    setup_middleware(app, enable_logging=True)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    instrument_fastapi(app)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tourism_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
