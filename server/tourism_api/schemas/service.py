"""Bookable service schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from .common import ApiModel, MoneyAmount, Pagination

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AvailableHours(ApiModel):
    start: str = Field(..., pattern=TIME_PATTERN)
    end: str = Field(..., pattern=TIME_PATTERN)

    @model_validator(mode="after")
    def check_order(self) -> "AvailableHours":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class CreateServiceRequest(ApiModel):
    """Request schema for publishing a service."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    category: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    duration_minutes: int = Field(..., gt=0)
    capacity: int = Field(1, ge=1)
    location: str = Field(..., min_length=1, max_length=255)
    images: List[str] = Field(default_factory=list)
    available_days: List[int] = Field(..., min_length=1, description="Days of week, 0 = Sunday")
    available_hours: AvailableHours
    amenities: List[str] = Field(default_factory=list)

    @field_validator("available_days")
    @classmethod
    def validate_days(cls, v: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("Days of week must be between 0 and 6")
        return sorted(set(v))


class Service(ApiModel):
    """Service response schema."""

    id: str
    name: str
    description: str
    category: str
    price: MoneyAmount
    currency: str
    duration_minutes: int
    capacity: int
    location: str
    images: List[str]
    available_days: List[int]
    available_hours: AvailableHours
    amenities: List[str]
    is_active: bool


class ServiceSearchResponse(ApiModel):
    services: List[Service]
    pagination: Pagination
