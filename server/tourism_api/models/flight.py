"""Flight and fare class model definitions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow


class CabinClass(str, Enum):
    """Fare cabin enumeration."""
    ECONOMY = "economy"
    BUSINESS = "business"
    FIRST = "first"


class FlightStatus(str, Enum):
    """Flight operational status enumeration."""
    SCHEDULED = "scheduled"
    DELAYED = "delayed"
    CANCELLED = "cancelled"
    BOARDING = "boarding"
    DEPARTED = "departed"
    ARRIVED = "arrived"


class Flight(Base):
    """Scheduled flight with per-cabin fare classes."""

    __tablename__ = "flights"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    flight_number: Mapped[str] = mapped_column(String(16), nullable=False, unique=True, index=True)
    airline_code: Mapped[str] = mapped_column(String(8), nullable=False)
    airline_name: Mapped[str] = mapped_column(String(100), nullable=False)
    airline_logo: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Departure leg
    departure_airport_code: Mapped[str] = mapped_column(String(8), nullable=False)
    departure_airport_name: Mapped[str] = mapped_column(String(255), nullable=False)
    departure_city: Mapped[str] = mapped_column(String(100), nullable=False)
    departure_country: Mapped[str] = mapped_column(String(100), nullable=False)
    departure_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Arrival leg
    arrival_airport_code: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    arrival_airport_name: Mapped[str] = mapped_column(String(255), nullable=False)
    arrival_city: Mapped[str] = mapped_column(String(100), nullable=False)
    arrival_country: Mapped[str] = mapped_column(String(100), nullable=False)
    arrival_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    aircraft_type: Mapped[str] = mapped_column(String(50), nullable=False)
    aircraft_model: Mapped[str] = mapped_column(String(50), nullable=False)
    stops: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[FlightStatus] = mapped_column(String(20), nullable=False, default=FlightStatus.SCHEDULED)
    is_international: Mapped[bool] = mapped_column(Boolean, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_flight_duration_positive"),
        CheckConstraint("stops >= 0", name="ck_flight_stops_non_negative"),
        CheckConstraint("arrival_time > departure_time", name="ck_flight_arrival_after_departure"),
        Index("ix_flights_route_departure", "departure_airport_code", "arrival_airport_code", "departure_time"),
    )

    fares: Mapped[list["FlightFare"]] = relationship(
        "FlightFare",
        back_populates="flight",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def fare_for(self, cabin_class: CabinClass | str) -> "FlightFare | None":
        """Return the fare row for a cabin, if the flight sells it."""
        for fare in self.fares:
            if fare.cabin_class == cabin_class:
                return fare
        return None

    def __repr__(self) -> str:
        return (
            f"<Flight(id={self.id}, number='{self.flight_number}', "
            f"{self.departure_airport_code}->{self.arrival_airport_code}, departs={self.departure_time})>"
        )


class FlightFare(Base):
    """Seat inventory and price for one cabin on one flight."""

    __tablename__ = "flight_fares"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    flight_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("flights.id", ondelete="CASCADE"), nullable=False, index=True
    )

    cabin_class: Mapped[CabinClass] = mapped_column(String(20), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    seats_available: Mapped[int] = mapped_column(Integer, nullable=False)
    cabin_baggage: Mapped[str] = mapped_column(String(32), nullable=False)
    checked_baggage: Mapped[str] = mapped_column(String(32), nullable=False)
    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("seats_available >= 0", name="ck_fare_seats_non_negative"),
        CheckConstraint("price >= 0", name="ck_fare_price_non_negative"),
        UniqueConstraint("flight_id", "cabin_class", name="uq_fare_flight_cabin"),
    )

    flight: Mapped["Flight"] = relationship("Flight", back_populates="fares")

    def __repr__(self) -> str:
        return f"<FlightFare(flight_id={self.flight_id}, cabin={self.cabin_class}, seats={self.seats_available})>"
