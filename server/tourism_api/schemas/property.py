"""Property and room schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field, ValidationInfo, field_validator, model_validator

from ..models.property import PROPERTY_FEATURES, CancellationPolicy, MealPlan, PropertyType
from .common import ApiModel, MoneyAmount, Pagination, Percentage, reject_null

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class PropertyAddress(ApiModel):
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field("Vanuatu", max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CancellationPolicyTerms(ApiModel):
    type: CancellationPolicy = CancellationPolicy.MODERATE
    free_cancellation_days: int = Field(1, ge=0, le=365)
    penalty_percentage: Percentage = Field(Decimal("0"), ge=0, le=100)


class RoomInput(ApiModel):
    """Room type supplied on property create/update."""

    room_type: str = Field(..., min_length=1, max_length=100, alias="type")
    description: Optional[str] = None
    max_guests: int = Field(..., ge=1, le=50)
    beds: int = Field(..., ge=0, le=50)
    bathrooms: int = Field(..., ge=0, le=50)
    price_per_night: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    available: bool = True
    count: int = Field(1, ge=0, le=1000)
    amenities: List[str] = Field(default_factory=list)
    meal_plan: MealPlan = MealPlan.NONE
    size_sqm: Optional[int] = Field(None, ge=1)
    bed_type: Optional[str] = Field(None, max_length=50)
    view_type: Optional[str] = Field(None, max_length=50)


class Room(ApiModel):
    id: str
    room_type: str = Field(..., serialization_alias="type")
    description: Optional[str] = None
    max_guests: int
    beds: int
    bathrooms: int
    price_per_night: MoneyAmount
    currency: str
    available: bool
    count: int
    amenities: List[str]
    meal_plan: str
    size_sqm: Optional[int] = None
    bed_type: Optional[str] = None
    view_type: Optional[str] = None


class OwnerSummary(ApiModel):
    id: str
    first_name: str
    last_name: str
    profile_image: Optional[str] = None
    verified: bool


def _check_feature_names(features: Optional[Dict[str, bool]]) -> Optional[Dict[str, bool]]:
    if features:
        unknown = sorted(set(features) - set(PROPERTY_FEATURES))
        if unknown:
            raise ValueError(f"Unknown property features: {', '.join(unknown)}")
    return features


class CreatePropertyRequest(ApiModel):
    """Request schema for listing a property."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    property_type: PropertyType
    star_rating: Optional[int] = Field(None, ge=1, le=5)
    address: PropertyAddress
    images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    rooms: List[RoomInput] = Field(..., min_length=1)
    check_in_time: str = Field("14:00", pattern=TIME_PATTERN)
    check_out_time: str = Field("11:00", pattern=TIME_PATTERN)
    cancellation_policy: CancellationPolicyTerms = Field(default_factory=CancellationPolicyTerms)
    house_rules: List[str] = Field(default_factory=list)
    instant_confirmation: bool = True
    features: Dict[str, bool] = Field(default_factory=dict)
    sustainability_certified: bool = False
    minimum_stay: int = Field(1, ge=1, le=365)
    maximum_stay: Optional[int] = Field(None, ge=1, le=365)

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: Optional[Dict[str, bool]]) -> Optional[Dict[str, bool]]:
        return _check_feature_names(v)

    @model_validator(mode="after")
    def check_stay_bounds(self) -> "CreatePropertyRequest":
        if self.maximum_stay is not None and self.maximum_stay < self.minimum_stay:
            raise ValueError("maximumStay must be greater than or equal to minimumStay")
        return self


class UpdatePropertyRequest(ApiModel):
    """Partial property update. A supplied room list replaces the existing rooms."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    property_type: Optional[PropertyType] = None
    star_rating: Optional[int] = Field(None, ge=1, le=5)
    address: Optional[PropertyAddress] = None
    images: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    rooms: Optional[List[RoomInput]] = Field(None, min_length=1)
    check_in_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    check_out_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    cancellation_policy: Optional[CancellationPolicyTerms] = None
    house_rules: Optional[List[str]] = None
    instant_confirmation: Optional[bool] = None
    features: Optional[Dict[str, bool]] = None
    sustainability_certified: Optional[bool] = None
    minimum_stay: Optional[int] = Field(None, ge=1, le=365)
    maximum_stay: Optional[int] = Field(None, ge=1, le=365)
    featured: Optional[bool] = Field(None, description="Administrators only")
    is_active: Optional[bool] = None

    # starRating and maximumStay may be cleared; everything else is required on the record
    @field_validator(
        "name", "description", "property_type", "address", "images", "amenities", "rooms",
        "check_in_time", "check_out_time", "cancellation_policy", "house_rules",
        "instant_confirmation", "features", "sustainability_certified", "minimum_stay",
        "featured", "is_active",
    )
    @classmethod
    def validate_not_null(cls, v, info: ValidationInfo):
        return reject_null(v, info)

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: Optional[Dict[str, bool]]) -> Optional[Dict[str, bool]]:
        return _check_feature_names(v)


class Property(ApiModel):
    """Property response schema."""

    id: str
    name: str
    description: str
    property_type: str
    star_rating: Optional[int] = None
    address: PropertyAddress
    owner: Optional[OwnerSummary] = None
    images: List[str]
    amenities: List[str]
    rooms: List[Room]
    rating: float
    review_count: int
    check_in_time: str
    check_out_time: str
    cancellation_policy: CancellationPolicyTerms
    house_rules: List[str]
    is_active: bool
    featured: bool
    instant_confirmation: bool
    features: Dict[str, bool]
    sustainability_certified: bool
    minimum_stay: int
    maximum_stay: Optional[int] = None
    price_from: Optional[MoneyAmount] = Field(None, description="Cheapest nightly room price")
    currency: Optional[str] = None
    distance_km: Optional[float] = Field(None, description="Distance from the search point, when geo search is used")
    created_at: datetime


class AppliedFilters(ApiModel):
    applied: List[str]


class PropertySearchResponse(ApiModel):
    properties: List[Property]
    pagination: Pagination
    filters: AppliedFilters


class PropertyList(ApiModel):
    properties: List[Property]


class QuoteRequest(ApiModel):
    """Price a stay without booking it."""

    room_id: str
    check_in: date
    check_out: date
    quantity: int = Field(1, ge=1, le=20)
    discount_code: Optional[str] = Field(None, max_length=32)

    @model_validator(mode="after")
    def check_dates(self) -> "QuoteRequest":
        if self.check_out <= self.check_in:
            raise ValueError("checkOut must be after checkIn")
        return self
