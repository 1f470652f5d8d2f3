"""Flight service for schedule and fare operations."""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import to_naive_utc
from ..core.exceptions import ConflictError, NotFoundError
from ..core.identifiers import parse_uuid
from ..core.observability import metrics_collector
from ..models.flight import Flight, FlightFare
from ..schemas.flight import CreateFlightRequest
from .query_builder import FlightSearchFilters, build_flight_conditions, flight_ordering

logger = logging.getLogger(__name__)


class FlightService:
    """Service for flight-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search_flights(self, filters: FlightSearchFilters) -> Tuple[List[Flight], int]:
        """
        Search scheduled flights with a fare in the requested cabin.

        Args:
            filters: Parsed search filters

        Returns:
            (page of flights, total match count)
        """
        conditions = build_flight_conditions(filters)
        metrics_collector.record_search("flight")

        total = await self.db.scalar(select(func.count(Flight.id)).where(*conditions)) or 0
        result = await self.db.execute(
            select(Flight)
            .where(*conditions)
            .order_by(*flight_ordering(filters))
            .offset(filters.page.offset)
            .limit(filters.page.limit)
        )
        flights = list(result.scalars().all())

        logger.info(
            "Flight search completed",
            extra={
                "origin": filters.origin,
                "destination": filters.destination,
                "cabin_class": filters.cabin_class.value,
                "passengers": filters.passengers,
                "total": total,
            },
        )
        return flights, total

    async def get_flight_by_id(self, flight_id: UUID) -> Optional[Flight]:
        return await self.db.get(Flight, flight_id)

    async def get_flight_by_id_or_raise(self, flight_id: str | UUID) -> Flight:
        flight = await self.get_flight_by_id(parse_uuid(flight_id, "flight"))
        if not flight or not flight.is_active:
            raise NotFoundError(resource_type="flight", resource_id=str(flight_id))
        return flight

    async def create_flight(self, request: CreateFlightRequest) -> Flight:
        """
        Schedule a flight with its fares.

        Raises:
            ConflictError: If the flight number is already in use
        """
        flight_number = request.flight_number.upper()
        existing = await self.db.scalar(select(Flight.id).where(Flight.flight_number == flight_number))
        if existing:
            raise ConflictError(f"Flight {flight_number} already exists", code="DUPLICATE_FLIGHT")

        flight = Flight(
            flight_number=flight_number,
            airline_code=request.airline.code.upper(),
            airline_name=request.airline.name,
            airline_logo=request.airline.logo,
            departure_airport_code=request.departure.airport_code.upper(),
            departure_airport_name=request.departure.airport_name,
            departure_city=request.departure.city,
            departure_country=request.departure.country,
            departure_time=to_naive_utc(request.departure.date_time),
            arrival_airport_code=request.arrival.airport_code.upper(),
            arrival_airport_name=request.arrival.airport_name,
            arrival_city=request.arrival.city,
            arrival_country=request.arrival.country,
            arrival_time=to_naive_utc(request.arrival.date_time),
            duration_minutes=request.duration_minutes,
            aircraft_type=request.aircraft.type,
            aircraft_model=request.aircraft.model,
            stops=request.stops,
            status=request.status.value,
            is_international=request.is_international,
            currency=(request.currency or settings.default_currency).upper(),
            fares=[
                FlightFare(
                    cabin_class=fare.cabin_class.value,
                    price=fare.price,
                    seats_available=fare.seats_available,
                    cabin_baggage=fare.cabin_baggage,
                    checked_baggage=fare.checked_baggage,
                    amenities=list(fare.amenities),
                )
                for fare in request.fares
            ],
        )
        self.db.add(flight)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"Flight {flight_number} already exists", code="DUPLICATE_FLIGHT")

        logger.info(
            "Flight created",
            extra={
                "flight_id": str(flight.id),
                "flight_number": flight.flight_number,
                "route": f"{flight.departure_airport_code}-{flight.arrival_airport_code}",
                "fares": len(request.fares),
            },
        )
        return flight
