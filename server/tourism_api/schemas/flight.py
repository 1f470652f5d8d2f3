"""Flight and fare schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from ..models.flight import CabinClass, FlightStatus
from .common import ApiModel, MoneyAmount, Pagination


class AirportLeg(ApiModel):
    """One end of a flight."""

    airport_code: str = Field(..., min_length=3, max_length=8)
    airport_name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    date_time: datetime


class Airline(ApiModel):
    code: str = Field(..., min_length=2, max_length=8)
    name: str = Field(..., min_length=1, max_length=100)
    logo: Optional[str] = None


class Aircraft(ApiModel):
    type: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)


class FareInput(ApiModel):
    cabin_class: CabinClass
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    seats_available: int = Field(..., ge=0)
    cabin_baggage: str = Field(..., min_length=1, max_length=32)
    checked_baggage: str = Field(..., min_length=1, max_length=32)
    amenities: List[str] = Field(default_factory=list)


class CreateFlightRequest(ApiModel):
    """Request schema for scheduling a flight."""

    flight_number: str = Field(..., min_length=2, max_length=16)
    airline: Airline
    departure: AirportLeg
    arrival: AirportLeg
    duration_minutes: int = Field(..., gt=0)
    aircraft: Aircraft
    fares: List[FareInput] = Field(..., min_length=1)
    stops: int = Field(0, ge=0)
    status: FlightStatus = FlightStatus.SCHEDULED
    is_international: bool
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    @model_validator(mode="after")
    def check_fares_and_times(self) -> "CreateFlightRequest":
        cabins = [fare.cabin_class for fare in self.fares]
        if CabinClass.ECONOMY not in cabins:
            raise ValueError("An economy fare is required")
        if len(set(cabins)) != len(cabins):
            raise ValueError("Each cabin class may appear only once")
        if self.arrival.date_time <= self.departure.date_time:
            raise ValueError("Arrival must be after departure")
        return self


class Fare(ApiModel):
    cabin_class: str
    price: MoneyAmount
    currency: str
    seats_available: int
    cabin_baggage: str
    checked_baggage: str
    amenities: List[str]


class Flight(ApiModel):
    """Flight response schema."""

    id: str
    flight_number: str
    airline: Airline
    departure: AirportLeg
    arrival: AirportLeg
    duration_minutes: int
    aircraft: Aircraft
    stops: int
    status: str
    is_international: bool
    currency: str
    is_active: bool
    fares: List[Fare]


class FlightSearchResponse(ApiModel):
    flights: List[Flight]
    pagination: Pagination
