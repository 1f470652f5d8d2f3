"""Liveness, readiness and service description schemas."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from .common import ApiModel, Percentage


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class HealthResponse(ApiModel):
    """Liveness check response."""

    status: HealthStatus = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")


class ReadinessResponse(ApiModel):
    """Readiness check response; ``checks`` maps dependency name to ``ok`` or ``error``."""

    status: HealthStatus
    service: str
    checks: Dict[str, str] = Field(default_factory=dict)


class BookingSettings(ApiModel):
    """Pricing and paging defaults clients need to render quotes and result pages."""

    booking_types: List[str]
    default_currency: str
    tax_rate_percent: Percentage
    default_page_size: int
    max_page_size: int


class ServiceInfo(ApiModel):
    service: str
    version: str
    description: str
    environment: str
    booking: BookingSettings
    features: Dict[str, bool]
    endpoints: Dict[str, Optional[str]]
