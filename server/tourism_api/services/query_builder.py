"""
Search parameter parsing and SQL predicate construction.

Raw query parameters are parsed into typed filter objects first; the
predicate builders below only ever see validated values. Nothing here
touches the database.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from ..core.config import settings
from ..core.exceptions import ValidationError
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking
from ..models.flight import CabinClass, Flight, FlightFare, FlightStatus
from ..models.property import (
    PROPERTY_FEATURES,
    CancellationPolicy,
    MealPlan,
    Property,
    PropertyAmenity,
    PropertyType,
    Room,
)
from ..models.service import Service

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
# Slightly under the true 111.19 so the box always encloses the search circle
KM_PER_DEGREE_LATITUDE = 111.0

TRUTHY_VALUES = ("true", "1", "yes")

PROPERTY_SORT_KEYS = ("price-low", "price-high", "rating", "popular", "newest", "distance")
FLIGHT_SORT_KEYS = ("price", "duration", "departure")


# ---------------------------------------------------------------------------
# Raw value parsing. Malformed numbers and dates are dropped, not rejected.
# ---------------------------------------------------------------------------

def _raw(params: Mapping[str, Any], key: str) -> Optional[str]:
    value = params.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        parsed = Decimal(value)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def parse_bool(value: Optional[str]) -> bool:
    return value is not None and value.lower() in TRUTHY_VALUES


def parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_list(params: Mapping[str, Any], key: str) -> List[str]:
    """Comma separated values; repeated keys are merged when the mapping supports it."""
    if hasattr(params, "getlist"):
        raw_values = params.getlist(key)
    else:
        raw = params.get(key)
        raw_values = raw if isinstance(raw, (list, tuple)) else ([raw] if raw is not None else [])

    items: List[str] = []
    for raw in raw_values:
        for item in str(raw).split(","):
            item = item.strip()
            if item and item not in items:
                items.append(item)
    return items


def _parse_enum_list(params: Mapping[str, Any], key: str, enum_cls) -> list:
    values = parse_list(params, key)
    valid = {member.value: member for member in enum_cls}
    unknown = [v for v in values if v not in valid]
    if unknown:
        raise ValidationError(
            f"Unknown {key} value(s): {', '.join(unknown)}",
            violations=[{"path": key, "message": f"Must be one of: {', '.join(valid)}"}],
        )
    return [valid[v] for v in values]


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PageRequest:
    """1-based page and clamped page size."""

    page: int = 1
    limit: int = 20

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "PageRequest":
        page = parse_int(_raw(params, "page"))
        limit = parse_int(_raw(params, "limit"))
        if page is None or page < 1:
            page = 1
        if limit is None:
            limit = settings.default_page_size
        limit = min(max(limit, 1), settings.max_page_size)
        return cls(page=page, limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def slice(self, items: Sequence) -> list:
        return list(items[self.offset:self.offset + self.limit])


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


# ---------------------------------------------------------------------------
# Geo helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    radius_km: float


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def bounding_box_conditions(point: GeoPoint) -> List[ColumnElement[bool]]:
    """
    Coarse SQL pre-filter: a lat/lng box enclosing the search circle.

    The exact distance check happens in Python afterwards. Longitude is left
    unconstrained when the box would cross a pole or the antimeridian.
    """
    lat_delta = point.radius_km / KM_PER_DEGREE_LATITUDE
    conditions = [
        Property.latitude >= point.latitude - lat_delta,
        Property.latitude <= point.latitude + lat_delta,
    ]

    cos_lat = math.cos(math.radians(point.latitude))
    if cos_lat > 1e-6:
        lng_delta = point.radius_km / (KM_PER_DEGREE_LATITUDE * cos_lat)
        west, east = point.longitude - lng_delta, point.longitude + lng_delta
        if lng_delta < 180 and west >= -180 and east <= 180:
            conditions.extend([Property.longitude >= west, Property.longitude <= east])

    return conditions


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

@dataclass
class PropertySearchFilters:
    """Validated property search criteria."""

    destination: Optional[str] = None
    geo: Optional[GeoPoint] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    min_rating: Optional[float] = None
    guest_capacity: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    star_rating: Optional[int] = None
    amenities: List[str] = field(default_factory=list)
    property_types: List[PropertyType] = field(default_factory=list)
    meal_plans: List[MealPlan] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    instant_confirmation: bool = False
    free_cancellation: bool = False
    sustainable: bool = False
    pet_friendly: bool = False
    wheelchair_accessible: bool = False
    family_friendly: bool = False
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    sort_by: Optional[str] = None
    page: PageRequest = field(default_factory=PageRequest)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "PropertySearchFilters":
        """
        Parse flat query parameters.

        Malformed numeric or date values leave their filter unset. Unknown
        property types or meal plans raise ValidationError.
        """
        filters = cls(
            destination=_raw(params, "destination"),
            min_price=parse_decimal(_raw(params, "minPrice")),
            max_price=parse_decimal(_raw(params, "maxPrice")),
            min_rating=parse_float(_raw(params, "rating")),
            bedrooms=parse_int(_raw(params, "bedrooms")),
            bathrooms=parse_int(_raw(params, "bathrooms")),
            star_rating=parse_int(_raw(params, "starRating")),
            amenities=parse_list(params, "amenities"),
            property_types=_parse_enum_list(params, "propertyType", PropertyType),
            meal_plans=_parse_enum_list(params, "mealPlan", MealPlan),
            features=[
                PROPERTY_FEATURES[name]
                for name in parse_list(params, "propertyFeatures")
                if name in PROPERTY_FEATURES
            ],
            instant_confirmation=parse_bool(_raw(params, "instantConfirmation")),
            free_cancellation=parse_bool(_raw(params, "freeCancellation")),
            sustainable=parse_bool(_raw(params, "sustainable")),
            pet_friendly=parse_bool(_raw(params, "petFriendly")),
            wheelchair_accessible=parse_bool(_raw(params, "wheelchairAccessible")),
            family_friendly=parse_bool(_raw(params, "familyFriendly")),
            sort_by=_raw(params, "sortBy"),
            page=PageRequest.from_params(params),
        )

        capacity = parse_int(_raw(params, "guestCapacity"))
        if capacity is None:
            adults = parse_int(_raw(params, "adults"))
            children = parse_int(_raw(params, "children"))
            if adults is not None or children is not None:
                capacity = (adults or 0) + (children or 0)
        filters.guest_capacity = capacity if capacity and capacity > 0 else None

        lat = parse_float(_raw(params, "lat"))
        lng = parse_float(_raw(params, "lng"))
        radius = parse_float(_raw(params, "radius"))
        if (
            lat is not None and lng is not None and radius is not None
            and -90 <= lat <= 90 and -180 <= lng <= 180 and radius > 0
        ):
            filters.geo = GeoPoint(latitude=lat, longitude=lng, radius_km=radius)

        check_in = parse_date(_raw(params, "checkIn"))
        check_out = parse_date(_raw(params, "checkOut"))
        if check_in and check_out and check_in < check_out:
            filters.check_in, filters.check_out = check_in, check_out

        logger.debug("Parsed property search filters", extra={"applied": filters.applied()})
        return filters

    @property
    def sorts_by_distance(self) -> bool:
        return self.geo is not None and self.sort_by in (None, "distance")

    def applied(self) -> List[str]:
        """Names of the filters that will constrain the result set."""
        applied = []
        checks = [
            ("destination", self.destination),
            ("geo", self.geo),
            ("minPrice", self.min_price is not None),
            ("maxPrice", self.max_price is not None),
            ("rating", self.min_rating is not None),
            ("guestCapacity", self.guest_capacity),
            ("bedrooms", self.bedrooms is not None),
            ("bathrooms", self.bathrooms is not None),
            ("starRating", self.star_rating is not None),
            ("amenities", self.amenities),
            ("propertyType", self.property_types),
            ("mealPlan", self.meal_plans),
            ("propertyFeatures", self.features),
            ("instantConfirmation", self.instant_confirmation),
            ("freeCancellation", self.free_cancellation),
            ("sustainable", self.sustainable),
            ("petFriendly", self.pet_friendly),
            ("wheelchairAccessible", self.wheelchair_accessible),
            ("familyFriendly", self.family_friendly),
            ("dates", self.check_in),
        ]
        for name, value in checks:
            if value:
                applied.append(name)
        return applied


def _contains(column, text: str) -> ColumnElement[bool]:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def booked_room_units(check_in: date, check_out: date):
    """Correlated subquery: units of a room held by overlapping active bookings."""
    return (
        select(func.coalesce(func.sum(Booking.quantity), 0))
        .where(
            Booking.room_id == Room.id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
        )
        .correlate(Room)
        .scalar_subquery()
    )


def build_property_conditions(filters: PropertySearchFilters) -> List[ColumnElement[bool]]:
    """Translate filters into a conjunctive list of SQL predicates."""
    conditions: List[ColumnElement[bool]] = [Property.is_active.is_(True)]

    if filters.destination:
        conditions.append(or_(
            _contains(Property.city, filters.destination),
            _contains(Property.state, filters.destination),
            _contains(Property.name, filters.destination),
        ))

    if filters.geo:
        conditions.extend(bounding_box_conditions(filters.geo))

    if filters.min_price is not None or filters.max_price is not None:
        price_conditions = []
        if filters.min_price is not None:
            price_conditions.append(Room.price_per_night >= filters.min_price)
        if filters.max_price is not None:
            price_conditions.append(Room.price_per_night <= filters.max_price)
        conditions.append(Property.rooms.any(and_(*price_conditions)))

    if filters.min_rating is not None:
        conditions.append(Property.rating >= filters.min_rating)

    if filters.guest_capacity:
        conditions.append(Property.rooms.any(Room.max_guests >= filters.guest_capacity))

    if filters.bedrooms is not None:
        conditions.append(Property.rooms.any(Room.beds >= filters.bedrooms))

    if filters.bathrooms is not None:
        conditions.append(Property.rooms.any(Room.bathrooms >= filters.bathrooms))

    if filters.star_rating is not None:
        conditions.append(Property.star_rating == filters.star_rating)

    # Every listed amenity must be present
    for amenity in filters.amenities:
        conditions.append(Property.amenity_links.any(func.lower(PropertyAmenity.name) == amenity.lower()))

    # Any listed type matches
    if filters.property_types:
        conditions.append(Property.property_type.in_([t.value for t in filters.property_types]))

    if filters.meal_plans:
        conditions.append(Property.rooms.any(Room.meal_plan.in_([m.value for m in filters.meal_plans])))

    for attr in filters.features:
        conditions.append(getattr(Property, attr).is_(True))

    if filters.instant_confirmation:
        conditions.append(Property.instant_confirmation.is_(True))

    if filters.free_cancellation:
        conditions.append(and_(
            Property.cancellation_policy.in_([CancellationPolicy.FLEXIBLE.value, CancellationPolicy.MODERATE.value]),
            Property.free_cancellation_days >= 1,
        ))

    if filters.sustainable:
        conditions.append(Property.sustainability_certified.is_(True))
    if filters.pet_friendly:
        conditions.append(Property.pets_allowed.is_(True))
    if filters.wheelchair_accessible:
        conditions.append(Property.wheelchair_accessible.is_(True))
    if filters.family_friendly:
        conditions.append(Property.family_friendly.is_(True))

    if filters.check_in and filters.check_out:
        conditions.append(Property.rooms.any(and_(
            Room.available.is_(True),
            Room.count > booked_room_units(filters.check_in, filters.check_out),
        )))

    return conditions


def _room_price(aggregate):
    return (
        select(aggregate(Room.price_per_night))
        .where(Room.property_id == Property.id)
        .correlate(Property)
        .scalar_subquery()
    )


def property_ordering(sort_by: Optional[str]) -> list:
    """ORDER BY clauses for a property sort key. Unknown keys fall back to featured, then rating."""
    if sort_by == "price-low":
        order = [_room_price(func.min).asc()]
    elif sort_by == "price-high":
        order = [_room_price(func.max).desc()]
    elif sort_by == "rating":
        order = [Property.rating.desc(), Property.review_count.desc()]
    elif sort_by == "popular":
        order = [Property.review_count.desc(), Property.rating.desc()]
    elif sort_by == "newest":
        order = [Property.created_at.desc()]
    else:
        order = [Property.featured.desc(), Property.rating.desc()]

    # Stable pagination across equal sort keys
    order.append(Property.id.asc())
    return order


# ---------------------------------------------------------------------------
# Flights
# ---------------------------------------------------------------------------

@dataclass
class FlightSearchFilters:
    origin: Optional[str] = None
    destination: Optional[str] = None
    departure_date: Optional[date] = None
    passengers: int = 1
    cabin_class: CabinClass = CabinClass.ECONOMY
    max_price: Optional[Decimal] = None
    sort_by: Optional[str] = None
    page: PageRequest = field(default_factory=PageRequest)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "FlightSearchFilters":
        cabin_raw = _raw(params, "cabinClass")
        if cabin_raw is None:
            cabin = CabinClass.ECONOMY
        else:
            cabins = _parse_enum_list({"cabinClass": cabin_raw}, "cabinClass", CabinClass)
            cabin = cabins[0]

        passengers = parse_int(_raw(params, "passengers"))
        origin = _raw(params, "from")
        destination = _raw(params, "to")

        return cls(
            origin=origin.upper() if origin else None,
            destination=destination.upper() if destination else None,
            departure_date=parse_date(_raw(params, "date")),
            passengers=passengers if passengers and passengers > 0 else 1,
            cabin_class=cabin,
            max_price=parse_decimal(_raw(params, "maxPrice")),
            sort_by=_raw(params, "sortBy"),
            page=PageRequest.from_params(params),
        )


def build_flight_conditions(filters: FlightSearchFilters) -> List[ColumnElement[bool]]:
    conditions: List[ColumnElement[bool]] = [
        Flight.is_active.is_(True),
        Flight.status != FlightStatus.CANCELLED.value,
    ]

    if filters.origin:
        conditions.append(Flight.departure_airport_code == filters.origin)
    if filters.destination:
        conditions.append(Flight.arrival_airport_code == filters.destination)

    if filters.departure_date:
        day_start = datetime.combine(filters.departure_date, time.min)
        conditions.append(Flight.departure_time >= day_start)
        conditions.append(Flight.departure_time < day_start + timedelta(days=1))

    fare_conditions = [
        FlightFare.cabin_class == filters.cabin_class.value,
        FlightFare.seats_available >= filters.passengers,
    ]
    if filters.max_price is not None:
        fare_conditions.append(FlightFare.price <= filters.max_price)
    conditions.append(Flight.fares.any(and_(*fare_conditions)))

    return conditions


def flight_ordering(filters: FlightSearchFilters) -> list:
    if filters.sort_by == "price":
        fare_price = (
            select(FlightFare.price)
            .where(FlightFare.flight_id == Flight.id, FlightFare.cabin_class == filters.cabin_class.value)
            .correlate(Flight)
            .scalar_subquery()
        )
        order = [fare_price.asc()]
    elif filters.sort_by == "duration":
        order = [Flight.duration_minutes.asc()]
    else:
        order = [Flight.departure_time.asc()]

    order.append(Flight.id.asc())
    return order


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@dataclass
class ServiceSearchFilters:
    category: Optional[str] = None
    location: Optional[str] = None
    max_price: Optional[Decimal] = None
    day: Optional[int] = None
    min_capacity: Optional[int] = None
    page: PageRequest = field(default_factory=PageRequest)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ServiceSearchFilters":
        day = parse_int(_raw(params, "day"))
        return cls(
            category=_raw(params, "category"),
            location=_raw(params, "location"),
            max_price=parse_decimal(_raw(params, "maxPrice")),
            day=day if day is not None and 0 <= day <= 6 else None,
            min_capacity=parse_int(_raw(params, "minCapacity")),
            page=PageRequest.from_params(params),
        )


def build_service_conditions(filters: ServiceSearchFilters) -> List[ColumnElement[bool]]:
    """SQL predicates; the weekday filter is applied by the caller on the JSON day list."""
    conditions: List[ColumnElement[bool]] = [Service.is_active.is_(True)]

    if filters.category:
        conditions.append(func.lower(Service.category) == filters.category.lower())
    if filters.location:
        conditions.append(_contains(Service.location, filters.location))
    if filters.max_price is not None:
        conditions.append(Service.price <= filters.max_price)
    if filters.min_capacity is not None:
        conditions.append(Service.capacity >= filters.min_capacity)

    return conditions


def service_ordering() -> list:
    return [Service.price.asc(), Service.name.asc(), Service.id.asc()]
