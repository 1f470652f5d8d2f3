"""Activity and tour service router."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..core.permissions import authorize
from ..models.user import User as UserModel
from ..models.user import UserRole
from ..schemas.service import CreateServiceRequest, Service, ServiceSearchResponse
from ..services.catalog_service import CatalogService
from ..services.query_builder import ServiceSearchFilters
from .converters import pagination_to_schema, service_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/services", tags=["services"])


@router.get("", response_model=ServiceSearchResponse)
async def search_services(request: Request, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """List active services, optionally filtered by category, location, price, weekday and capacity."""
    filters = ServiceSearchFilters.from_params(request.query_params)

    try:
        services, total = await CatalogService(db).search_services(filters)
        response_data = ServiceSearchResponse(
            services=[service_to_schema(service) for service in services],
            pagination=pagination_to_schema(total, filters.page),
        )
        return JSONResponse(status_code=200, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in service search",
            extra={"query": str(request.query_params), "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.get("/{service_id}", response_model=Service)
async def get_service(service_id: str, db: AsyncSession = DatabaseSession) -> JSONResponse:
    service = await CatalogService(db).get_service_by_id_or_raise(service_id)
    return JSONResponse(status_code=200, content=service_to_schema(service).to_json())


@router.post("", response_model=Service, status_code=201)
async def create_service(
    request: CreateServiceRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Publish a service. Admins only."""
    authorize(current_user, required_role=UserRole.ADMIN)

    try:
        service = await CatalogService(db).create_service(request)
        return JSONResponse(status_code=201, content=service_to_schema(service).to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in service creation",
            extra={"name": request.name, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()
