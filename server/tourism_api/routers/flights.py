"""Flight router."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..core.permissions import authorize
from ..models.user import User as UserModel
from ..models.user import UserRole
from ..schemas.flight import CreateFlightRequest, Flight, FlightSearchResponse
from ..services.flight_service import FlightService
from ..services.query_builder import FlightSearchFilters
from .converters import flight_to_schema, pagination_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/flights", tags=["flights"])


@router.get("/search", response_model=FlightSearchResponse)
async def search_flights(request: Request, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """
    Search scheduled flights.

    Only flights selling ``cabinClass`` (default economy) with at least
    ``passengers`` seats left are returned.
    """
    filters = FlightSearchFilters.from_params(request.query_params)

    try:
        flights, total = await FlightService(db).search_flights(filters)
        response_data = FlightSearchResponse(
            flights=[flight_to_schema(flight) for flight in flights],
            pagination=pagination_to_schema(total, filters.page),
        )
        return JSONResponse(status_code=200, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in flight search",
            extra={"query": str(request.query_params), "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.get("/{flight_id}", response_model=Flight)
async def get_flight(flight_id: str, db: AsyncSession = DatabaseSession) -> JSONResponse:
    flight = await FlightService(db).get_flight_by_id_or_raise(flight_id)
    return JSONResponse(status_code=200, content=flight_to_schema(flight).to_json())


@router.post("", response_model=Flight, status_code=201)
async def create_flight(
    request: CreateFlightRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Schedule a flight. Admins only."""
    authorize(current_user, required_role=UserRole.ADMIN)

    try:
        flight = await FlightService(db).create_flight(request)
        return JSONResponse(status_code=201, content=flight_to_schema(flight).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in flight creation",
            extra={"flight_number": request.flight_number, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()
