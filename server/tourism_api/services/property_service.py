"""Property service for catalog and listing operations."""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identifiers import parse_uuid
from ..core.observability import metrics_collector
from ..core.permissions import authorize, require_role
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking
from ..models.property import PROPERTY_FEATURES, Property, PropertyAmenity, Room
from ..models.user import User, UserRole
from ..schemas.property import CreatePropertyRequest, QuoteRequest, RoomInput, UpdatePropertyRequest
from .availability_service import AvailabilityService
from .discount_service import DiscountService
from .pricing import PriceBreakdown, PricingCalculator, nights_between
from .query_builder import (
    GeoPoint,
    PropertySearchFilters,
    bounding_box_conditions,
    build_property_conditions,
    haversine_km,
    property_ordering,
)

logger = logging.getLogger(__name__)

# (property, distance from the search point in km or None)
RankedProperty = Tuple[Property, Optional[float]]


def _distance(property_obj: Property, point: GeoPoint) -> float:
    return haversine_km(point.latitude, point.longitude, property_obj.latitude, property_obj.longitude)


class PropertyService:
    """Service for property-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability_service = AvailabilityService(db)

    async def search_properties(self, filters: PropertySearchFilters) -> Tuple[List[RankedProperty], int]:
        """
        Search active properties.

        With a geo point, candidates inside the bounding box are loaded,
        filtered by exact great-circle distance and paginated in memory;
        otherwise counting and paging happen in SQL.

        Args:
            filters: Parsed search filters

        Returns:
            (page of properties with distances, total match count)
        """
        conditions = build_property_conditions(filters)
        ordering = property_ordering(filters.sort_by)
        metrics_collector.record_search("property")

        if filters.geo:
            result = await self.db.execute(select(Property).where(*conditions).order_by(*ordering))
            ranked = [
                (prop, distance)
                for prop in result.scalars().all()
                if (distance := _distance(prop, filters.geo)) <= filters.geo.radius_km
            ]
            if filters.sorts_by_distance:
                ranked.sort(key=lambda item: item[1])
            total = len(ranked)
            page = filters.page.slice(ranked)
        else:
            total = await self.db.scalar(select(func.count(Property.id)).where(*conditions)) or 0
            result = await self.db.execute(
                select(Property)
                .where(*conditions)
                .order_by(*ordering)
                .offset(filters.page.offset)
                .limit(filters.page.limit)
            )
            page = [(prop, None) for prop in result.scalars().all()]

        logger.info(
            "Property search completed",
            extra={
                "applied_filters": filters.applied(),
                "sort_by": filters.sort_by,
                "page": filters.page.page,
                "limit": filters.page.limit,
                "total": total,
            },
        )
        return page, total

    async def get_property_by_id(self, property_id: UUID) -> Optional[Property]:
        return await self.db.get(Property, property_id)

    async def get_property_by_id_or_raise(self, property_id: str | UUID, include_inactive: bool = False) -> Property:
        """
        Get a property or raise NotFoundError.

        Deactivated properties are hidden unless ``include_inactive`` is set.
        """
        property_uuid = parse_uuid(property_id, "property")
        property_obj = await self.get_property_by_id(property_uuid)
        if not property_obj or (not property_obj.is_active and not include_inactive):
            raise NotFoundError(resource_type="property", resource_id=str(property_id))
        return property_obj

    async def list_featured(self, limit: int = 8) -> List[Property]:
        result = await self.db.execute(
            select(Property)
            .where(Property.is_active.is_(True), Property.featured.is_(True))
            .order_by(Property.rating.desc(), Property.review_count.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_nearby(
        self, latitude: float, longitude: float, radius_km: float = 10.0, limit: int = 20
    ) -> List[RankedProperty]:
        """Active properties within ``radius_km``, nearest first."""
        point = GeoPoint(latitude=latitude, longitude=longitude, radius_km=radius_km)
        result = await self.db.execute(
            select(Property).where(Property.is_active.is_(True), *bounding_box_conditions(point))
        )
        ranked = [
            (prop, distance)
            for prop in result.scalars().all()
            if (distance := _distance(prop, point)) <= radius_km
        ]
        ranked.sort(key=lambda item: item[1])
        return ranked[:limit]

    async def list_for_owner(self, owner: User) -> List[Property]:
        require_role(owner, [UserRole.HOST])
        result = await self.db.execute(
            select(Property).where(Property.owner_id == owner.id).order_by(Property.created_at.desc())
        )
        return list(result.scalars().all())

    def _build_room(self, room_input: RoomInput, room: Optional[Room] = None) -> Room:
        room = room or Room(room_type=room_input.room_type)
        room.description = room_input.description
        room.max_guests = room_input.max_guests
        room.beds = room_input.beds
        room.bathrooms = room_input.bathrooms
        room.price_per_night = room_input.price_per_night
        room.currency = (room_input.currency or settings.default_currency).upper()
        room.available = room_input.available
        room.count = room_input.count
        room.amenities = list(room_input.amenities)
        room.meal_plan = room_input.meal_plan.value
        room.size_sqm = room_input.size_sqm
        room.bed_type = room_input.bed_type
        room.view_type = room_input.view_type
        return room

    def _sync_rooms(self, property_obj: Property, room_inputs: List[RoomInput]) -> None:
        """Update rooms matched by type, add new types, drop types no longer listed."""
        existing = {room.room_type: room for room in property_obj.rooms}
        wanted = []
        for room_input in room_inputs:
            wanted.append(self._build_room(room_input, existing.get(room_input.room_type)))
        property_obj.rooms = wanted

    @staticmethod
    def _sync_amenities(property_obj: Property, names: List[str]) -> None:
        cleaned = []
        for name in names:
            name = name.strip()
            if name and name.lower() not in {n.lower() for n in cleaned}:
                cleaned.append(name)

        keep = [link for link in property_obj.amenity_links if link.name in cleaned]
        present = {link.name for link in keep}
        keep.extend(PropertyAmenity(name=name) for name in cleaned if name not in present)
        property_obj.amenity_links = keep

    @staticmethod
    def _apply_features(property_obj: Property, features: dict) -> None:
        for name, enabled in features.items():
            setattr(property_obj, PROPERTY_FEATURES[name], bool(enabled))

    @staticmethod
    def _apply_address(property_obj: Property, address) -> None:
        property_obj.street = address.street
        property_obj.city = address.city
        property_obj.state = address.state
        property_obj.country = address.country
        property_obj.zip_code = address.zip_code
        property_obj.latitude = address.latitude
        property_obj.longitude = address.longitude

    @staticmethod
    def _apply_cancellation(property_obj: Property, terms) -> None:
        property_obj.cancellation_policy = terms.type.value
        property_obj.free_cancellation_days = terms.free_cancellation_days
        property_obj.cancellation_penalty_percent = terms.penalty_percentage

    async def _reload(self, property_id: UUID) -> Property:
        result = await self.db.execute(
            select(Property).where(Property.id == property_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def create_property(self, owner: User, request: CreatePropertyRequest) -> Property:
        """
        List a new property owned by ``owner``.

        Raises:
            AuthorizationError: If the requester is neither host nor admin
        """
        require_role(owner, [UserRole.HOST])

        property_obj = Property(
            owner_id=owner.id,
            name=request.name,
            description=request.description,
            property_type=request.property_type.value,
            star_rating=request.star_rating,
            images=list(request.images),
            house_rules=list(request.house_rules),
            check_in_time=request.check_in_time,
            check_out_time=request.check_out_time,
            instant_confirmation=request.instant_confirmation,
            sustainability_certified=request.sustainability_certified,
            minimum_stay=request.minimum_stay,
            maximum_stay=request.maximum_stay,
            rooms=[],
            amenity_links=[],
        )
        self._apply_address(property_obj, request.address)
        self._apply_cancellation(property_obj, request.cancellation_policy)
        self._apply_features(property_obj, request.features)
        self._sync_rooms(property_obj, request.rooms)
        self._sync_amenities(property_obj, request.amenities)

        self.db.add(property_obj)
        await self.db.commit()

        logger.info(
            "Property created",
            extra={
                "property_id": str(property_obj.id),
                "owner_id": str(owner.id),
                "property_type": property_obj.property_type,
                "rooms": len(request.rooms),
            },
        )
        return await self._reload(property_obj.id)

    async def update_property(self, requester: User, property_id: str, request: UpdatePropertyRequest) -> Property:
        """
        Apply a partial update.

        Raises:
            NotFoundError: If the property does not exist
            AuthorizationError: If the requester is neither owner nor admin
        """
        property_obj = await self.get_property_by_id_or_raise(property_id, include_inactive=True)
        authorize(requester, property_obj.owner_id)

        changes = request.model_dump(exclude_unset=True)
        simple_fields = (
            "name", "description", "star_rating", "images", "house_rules", "check_in_time",
            "check_out_time", "instant_confirmation", "sustainability_certified",
            "minimum_stay", "maximum_stay", "is_active",
        )
        for field_name in simple_fields:
            if field_name in changes:
                setattr(property_obj, field_name, changes[field_name])

        if request.property_type is not None:
            property_obj.property_type = request.property_type.value
        if request.address is not None:
            self._apply_address(property_obj, request.address)
        if request.cancellation_policy is not None:
            self._apply_cancellation(property_obj, request.cancellation_policy)
        if request.features is not None:
            self._apply_features(property_obj, request.features)
        if request.rooms is not None:
            self._sync_rooms(property_obj, request.rooms)
        if request.amenities is not None:
            self._sync_amenities(property_obj, request.amenities)
        if request.featured is not None:
            # Featured placement is an editorial decision
            authorize(requester, required_role=UserRole.ADMIN)
            property_obj.featured = request.featured

        if property_obj.maximum_stay is not None and property_obj.maximum_stay < property_obj.minimum_stay:
            raise ValidationError("maximumStay must be greater than or equal to minimumStay")

        await self.db.commit()

        logger.info(
            "Property updated",
            extra={
                "property_id": str(property_obj.id),
                "requester_id": str(requester.id),
                "fields": sorted(changes),
            },
        )
        return await self._reload(property_obj.id)

    async def delete_property(self, requester: User, property_id: str) -> Property:
        """
        Deactivate a property. Booking and review history is retained.

        Raises:
            NotFoundError: If the property does not exist
            AuthorizationError: If the requester is neither owner nor admin
            ConflictError: If pending or confirmed bookings still reference it
        """
        property_obj = await self.get_property_by_id_or_raise(property_id)
        authorize(requester, property_obj.owner_id)

        active_bookings = await self.db.scalar(
            select(func.count(Booking.id)).where(
                Booking.property_id == property_obj.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        if active_bookings:
            raise ConflictError(
                "Property has pending or confirmed bookings",
                conflicting_resource={"property_id": str(property_obj.id), "active_bookings": active_bookings},
                code="ACTIVE_BOOKINGS",
            )

        property_obj.is_active = False
        await self.db.commit()

        logger.info(
            "Property deactivated",
            extra={"property_id": str(property_obj.id), "requester_id": str(requester.id)},
        )
        return property_obj

    def get_room_or_raise(self, property_obj: Property, room_id: str | UUID) -> Room:
        room_uuid = parse_uuid(room_id, "room")
        for room in property_obj.rooms:
            if room.id == room_uuid:
                return room
        raise NotFoundError(resource_type="room", resource_id=str(room_id))

    async def quote(self, property_id: str, request: QuoteRequest) -> PriceBreakdown:
        """
        Price a stay without writing anything.

        Raises:
            NotFoundError: If the property or room does not exist
            ValidationError: If the stay length or discount code is not acceptable
            AvailabilityError: If not enough units are free for the dates
        """
        property_obj = await self.get_property_by_id_or_raise(property_id)
        room = self.get_room_or_raise(property_obj, request.room_id)

        nights = nights_between(request.check_in, request.check_out)
        self.availability_service.ensure_stay_length(property_obj, nights)
        await self.availability_service.ensure_room_available(
            room, request.check_in, request.check_out, request.quantity
        )

        discount = None
        if request.discount_code:
            discount = await DiscountService(self.db).resolve_for_booking(request.discount_code, "property")

        return PricingCalculator().quote(
            unit_price=room.price_per_night,
            quantity=request.quantity,
            nights=nights,
            currency=room.currency,
            discount=discount,
        )
