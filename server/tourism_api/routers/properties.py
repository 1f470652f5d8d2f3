"""Property router: search, listing management and quotes."""

import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException, ValidationError
from ..core.identifiers import identity_of
from ..models.user import User as UserModel
from ..schemas.booking import PriceBreakdown
from ..schemas.common import MessageResponse
from ..schemas.property import (
    AppliedFilters,
    CreatePropertyRequest,
    Property,
    PropertyList,
    PropertySearchResponse,
    QuoteRequest,
    UpdatePropertyRequest,
)
from ..services.property_service import PropertyService
from ..services.query_builder import PropertySearchFilters
from .converters import pagination_to_schema, property_to_schema, quote_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/properties", tags=["properties"])

FEATURED_LIMIT_QUERY = Query(8, ge=1, le=50)
NEARBY_RADIUS_QUERY = Query(10.0, gt=0, le=20000, description="Search radius in km")
NEARBY_LIMIT_QUERY = Query(20, ge=1, le=100)


@router.get("/search", response_model=PropertySearchResponse)
async def search_properties(request: Request, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """
    Search active properties.

    All supplied filters must hold at once. ``amenities`` requires every
    listed amenity; ``propertyType`` and ``mealPlan`` match any listed value.
    With ``lat``/``lng``/``radius`` results are limited to that circle and
    sorted nearest first unless another ``sortBy`` is given.
    """
    filters = PropertySearchFilters.from_params(request.query_params)

    try:
        ranked, total = await PropertyService(db).search_properties(filters)
        response_data = PropertySearchResponse(
            properties=[property_to_schema(prop, distance) for prop, distance in ranked],
            pagination=pagination_to_schema(total, filters.page),
            filters=AppliedFilters(applied=filters.applied()),
        )
        return JSONResponse(status_code=200, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in property search",
            extra={"query": str(request.query_params), "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.get("/featured/list", response_model=PropertyList)
async def featured_properties(
    limit: int = FEATURED_LIMIT_QUERY,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    properties = await PropertyService(db).list_featured(limit)
    response_data = PropertyList(properties=[property_to_schema(prop) for prop in properties])
    return JSONResponse(status_code=200, content=response_data.to_json())


@router.get("/nearby/{lat}/{lng}", response_model=PropertyList)
async def nearby_properties(
    lat: float,
    lng: float,
    radius: float = NEARBY_RADIUS_QUERY,
    limit: int = NEARBY_LIMIT_QUERY,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Active properties within ``radius`` km of a point, nearest first."""
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError("Coordinates are out of range")

    ranked = await PropertyService(db).list_nearby(lat, lng, radius, limit)
    response_data = PropertyList(properties=[property_to_schema(prop, distance) for prop, distance in ranked])
    return JSONResponse(status_code=200, content=response_data.to_json())


@router.get("/host/my-properties", response_model=PropertyList)
async def my_properties(
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    properties = await PropertyService(db).list_for_owner(current_user)
    response_data = PropertyList(properties=[property_to_schema(prop) for prop in properties])
    return JSONResponse(status_code=200, content=response_data.to_json())


@router.get("/{property_id}", response_model=Property)
async def get_property(property_id: str, db: AsyncSession = DatabaseSession) -> JSONResponse:
    property_obj = await PropertyService(db).get_property_by_id_or_raise(property_id)
    return JSONResponse(status_code=200, content=property_to_schema(property_obj).to_json())


@router.post("", response_model=Property, status_code=201)
async def create_property(
    request: CreatePropertyRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List a new property. Hosts and admins only."""
    try:
        property_obj = await PropertyService(db).create_property(current_user, request)
        return JSONResponse(status_code=201, content=property_to_schema(property_obj).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in property creation",
            extra={"owner_id": identity_of(current_user), "name": request.name, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.put("/{property_id}", response_model=Property)
async def update_property(
    property_id: str,
    request: UpdatePropertyRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Update a property. Owner or admin only."""
    try:
        property_obj = await PropertyService(db).update_property(current_user, property_id, request)
        return JSONResponse(status_code=200, content=property_to_schema(property_obj).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in property update",
            extra={"property_id": property_id, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.delete("/{property_id}", response_model=MessageResponse)
async def delete_property(
    property_id: str,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Deactivate a property. Owner or admin only; refused while bookings are open."""
    try:
        await PropertyService(db).delete_property(current_user, property_id)
        return JSONResponse(status_code=200, content=MessageResponse(message="Property deleted").to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in property deletion",
            extra={"property_id": property_id, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.post("/{property_id}/quote", response_model=PriceBreakdown)
async def quote_stay(
    property_id: str,
    request: QuoteRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Price a stay without booking it."""
    price = await PropertyService(db).quote(property_id, request)
    return JSONResponse(status_code=200, content=quote_to_schema(price).to_json())
