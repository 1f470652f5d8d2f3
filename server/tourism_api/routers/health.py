"""Liveness, readiness and service description endpoints."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.dependencies import get_db
from ..core.observability import SERVICE_NAME, SERVICE_VERSION
from ..models.booking import BookingType
from ..schemas.health import BookingSettings, HealthResponse, HealthStatus, ReadinessResponse, ServiceInfo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _health() -> HealthResponse:
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        environment=settings.environment,
        timestamp=utcnow(),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> JSONResponse:
    """Liveness check. Never touches the database."""
    return JSONResponse(status_code=status.HTTP_200_OK, content=_health().to_json())


@router.post("/v1/health/ping", response_model=HealthResponse)
async def health_ping() -> JSONResponse:
    """RPC-style liveness check used by the load balancer."""
    response_data = _health()
    logger.debug("Health ping", extra={"timestamp": response_data.timestamp.isoformat()})
    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data.to_json())


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Readiness check.

    Runs ``SELECT 1`` against the bookings database; answers 503 while the
    database is unreachable so the instance is taken out of rotation.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        body = ReadinessResponse(
            status=HealthStatus.UNAVAILABLE, service=SERVICE_NAME, checks={"database": "error"}
        )
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.to_json())

    body = ReadinessResponse(status=HealthStatus.READY, service=SERVICE_NAME, checks={"database": "ok"})
    return JSONResponse(status_code=status.HTTP_200_OK, content=body.to_json())


@router.get("/info", response_model=ServiceInfo)
async def service_info() -> ServiceInfo:
    """Describe the deployment and the booking defaults clients should assume."""
    docs = "/docs" if settings.debug else None
    return ServiceInfo(
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        description="Accommodation, flight and activity bookings for Vanuatu",
        environment=settings.environment,
        booking=BookingSettings(
            booking_types=[booking_type.value for booking_type in BookingType],
            default_currency=settings.default_currency,
            tax_rate_percent=settings.tax_rate_percent,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
        ),
        features={
            "geoSearch": True,
            "discountCodes": True,
            "reviews": True,
            "loyalty": True,
            "tracing": settings.otlp_endpoint is not None,
        },
        endpoints={
            "health": "/health",
            "readiness": "/ready",
            "metrics": "/metrics",
            "docs": docs,
        },
    )
