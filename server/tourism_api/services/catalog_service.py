"""Catalog service for bookable activities and tours."""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import NotFoundError
from ..core.identifiers import parse_uuid
from ..core.observability import metrics_collector
from ..models.service import Service
from ..schemas.service import CreateServiceRequest
from .query_builder import ServiceSearchFilters, build_service_conditions, service_ordering

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for activity and tour operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search_services(self, filters: ServiceSearchFilters) -> Tuple[List[Service], int]:
        """
        Search active services.

        Available days are stored as a JSON list, so a weekday filter is
        applied after loading and the page is cut in memory.
        """
        conditions = build_service_conditions(filters)
        metrics_collector.record_search("service")

        if filters.day is not None:
            result = await self.db.execute(select(Service).where(*conditions).order_by(*service_ordering()))
            matches = [service for service in result.scalars().all() if filters.day in service.available_days]
            total = len(matches)
            services = filters.page.slice(matches)
        else:
            total = await self.db.scalar(select(func.count(Service.id)).where(*conditions)) or 0
            result = await self.db.execute(
                select(Service)
                .where(*conditions)
                .order_by(*service_ordering())
                .offset(filters.page.offset)
                .limit(filters.page.limit)
            )
            services = list(result.scalars().all())

        logger.info(
            "Service search completed",
            extra={"category": filters.category, "day": filters.day, "total": total},
        )
        return services, total

    async def get_service_by_id(self, service_id: UUID) -> Optional[Service]:
        return await self.db.get(Service, service_id)

    async def get_service_by_id_or_raise(self, service_id: str | UUID) -> Service:
        service = await self.get_service_by_id(parse_uuid(service_id, "service"))
        if not service or not service.is_active:
            raise NotFoundError(resource_type="service", resource_id=str(service_id))
        return service

    async def create_service(self, request: CreateServiceRequest) -> Service:
        service = Service(
            name=request.name,
            description=request.description,
            category=request.category.lower(),
            price=request.price,
            currency=(request.currency or settings.default_currency).upper(),
            duration_minutes=request.duration_minutes,
            capacity=request.capacity,
            location=request.location,
            images=list(request.images),
            available_days=list(request.available_days),
            start_time=request.available_hours.start,
            end_time=request.available_hours.end,
            amenities=list(request.amenities),
        )
        self.db.add(service)
        await self.db.commit()

        logger.info(
            "Service created",
            extra={"service_id": str(service.id), "category": service.category, "capacity": service.capacity},
        )
        return service
