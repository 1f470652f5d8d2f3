"""Property, room and amenity model definitions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .user import User


class PropertyType(str, Enum):
    """Property type enumeration."""
    HOTEL = "hotel"
    APARTMENT = "apartment"
    RESORT = "resort"
    VILLA = "villa"
    HOSTEL = "hostel"
    GUESTHOUSE = "guesthouse"
    BED_AND_BREAKFAST = "bed-and-breakfast"
    MOTEL = "motel"
    BOUTIQUE_HOTEL = "boutique-hotel"


class CancellationPolicy(str, Enum):
    """Cancellation policy enumeration."""
    FLEXIBLE = "flexible"
    MODERATE = "moderate"
    STRICT = "strict"
    NON_REFUNDABLE = "non-refundable"


class MealPlan(str, Enum):
    """Room meal plan enumeration."""
    NONE = "none"
    BREAKFAST = "breakfast"
    HALF_BOARD = "half-board"
    FULL_BOARD = "full-board"
    ALL_INCLUSIVE = "all-inclusive"


# Public feature name -> Property column attribute
PROPERTY_FEATURES = {
    "parking": "parking",
    "wifi": "wifi",
    "pool": "pool",
    "gym": "gym",
    "spa": "spa",
    "restaurant": "restaurant",
    "bar": "bar",
    "airConditioning": "air_conditioning",
    "petsAllowed": "pets_allowed",
    "smokingAllowed": "smoking_allowed",
    "wheelchairAccessible": "wheelchair_accessible",
    "familyFriendly": "family_friendly",
    "beach": "beach",
    "kitchen": "kitchen",
    "laundry": "laundry",
    "elevator": "elevator",
    "reception24h": "reception_24h",
}


class Property(Base):
    """Accommodation listing owned by a host."""

    __tablename__ = "properties"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    property_type: Mapped[PropertyType] = mapped_column(String(32), nullable=False, index=True)
    star_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Address
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="Vanuatu")
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    house_rules: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    check_in_time: Mapped[str] = mapped_column(String(5), nullable=False, default="14:00")
    check_out_time: Mapped[str] = mapped_column(String(5), nullable=False, default="11:00")

    # Denormalised review aggregate, maintained by the review service
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Cancellation policy
    cancellation_policy: Mapped[CancellationPolicy] = mapped_column(
        String(20), nullable=False, default=CancellationPolicy.MODERATE
    )
    free_cancellation_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    cancellation_penalty_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)

    # Stay constraints
    minimum_stay: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    maximum_stay: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Flags
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    instant_confirmation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sustainability_certified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Property features
    parking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    wifi: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pool: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gym: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    spa: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    restaurant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bar: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    air_conditioning: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pets_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    smoking_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    wheelchair_accessible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    family_friendly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    beach: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    kitchen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    laundry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    elevator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reception_24h: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_property_rating_range"),
        CheckConstraint("review_count >= 0", name="ck_property_review_count_non_negative"),
        CheckConstraint("star_rating IS NULL OR (star_rating >= 1 AND star_rating <= 5)", name="ck_property_star_rating_range"),
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="ck_property_latitude_range"),
        CheckConstraint("longitude >= -180 AND longitude <= 180", name="ck_property_longitude_range"),
        CheckConstraint("minimum_stay >= 1", name="ck_property_minimum_stay_positive"),
        Index("ix_properties_coordinates", "latitude", "longitude"),
    )

    owner: Mapped["User"] = relationship("User", back_populates="properties", lazy="selectin")
    rooms: Mapped[list["Room"]] = relationship(
        "Room",
        back_populates="property",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Room.price_per_night",
    )
    amenity_links: Mapped[list["PropertyAmenity"]] = relationship(
        "PropertyAmenity",
        back_populates="property",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def amenities(self) -> list[str]:
        return sorted(link.name for link in self.amenity_links)

    @property
    def features(self) -> dict[str, bool]:
        return {name: getattr(self, attr) for name, attr in PROPERTY_FEATURES.items()}

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name='{self.name}', type={self.property_type}, city='{self.city}')>"


class Room(Base):
    """Room type offered by a property; lives and dies with its property."""

    __tablename__ = "rooms"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    property_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )

    room_type: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    beds: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, index=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    meal_plan: Mapped[MealPlan] = mapped_column(String(20), nullable=False, default=MealPlan.NONE)
    size_sqm: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bed_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    view_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        CheckConstraint("count >= 0", name="ck_room_count_non_negative"),
        CheckConstraint("max_guests > 0", name="ck_room_max_guests_positive"),
        CheckConstraint("price_per_night >= 0", name="ck_room_price_non_negative"),
        UniqueConstraint("property_id", "room_type", name="uq_room_property_type"),
    )

    property: Mapped["Property"] = relationship("Property", back_populates="rooms")

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, type='{self.room_type}', price={self.price_per_night} {self.currency}, count={self.count})>"


class PropertyAmenity(Base):
    """One amenity offered by a property."""

    __tablename__ = "property_amenities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("property_id", "name", name="uq_property_amenity"),
    )

    property: Mapped["Property"] = relationship("Property", back_populates="amenity_links")
