"""Unit tests for search parameter parsing."""

from datetime import date

import pytest

from tourism_api.core.exceptions import ValidationError
from tourism_api.models.flight import CabinClass
from tourism_api.models.property import PropertyType
from tourism_api.services.query_builder import (
    FlightSearchFilters,
    PageRequest,
    PropertySearchFilters,
    ServiceSearchFilters,
    haversine_km,
    page_count,
)


@pytest.mark.parametrize(
    "params,page,limit",
    [
        ({}, 1, 20),
        ({"page": "3", "limit": "5"}, 3, 5),
        ({"page": "0"}, 1, 20),
        ({"page": "-2"}, 1, 20),
        ({"page": "abc", "limit": "xyz"}, 1, 20),
        ({"limit": "1000"}, 1, 100),
        ({"limit": "0"}, 1, 1),
    ],
)
def test_page_request_from_params(params, page, limit):
    request = PageRequest.from_params(params)
    assert (request.page, request.limit) == (page, limit)


def test_page_request_slice():
    request = PageRequest(page=2, limit=3)
    assert request.offset == 3
    assert request.slice(list(range(10))) == [3, 4, 5]
    assert PageRequest(page=5, limit=3).slice(list(range(10))) == []


def test_page_count():
    assert page_count(0, 20) == 0
    assert page_count(20, 20) == 1
    assert page_count(21, 20) == 2


def test_haversine_port_vila_to_luganville():
    distance = haversine_km(-17.7334, 168.3273, -15.5125, 167.1766)
    assert 270 < distance < 285
    assert haversine_km(-17.7334, 168.3273, -17.7334, 168.3273) == pytest.approx(0.0)


def test_property_filters_ignore_malformed_numbers():
    filters = PropertySearchFilters.from_params({"minPrice": "cheap", "rating": "five", "bedrooms": "2.5"})

    assert filters.min_price is None
    assert filters.min_rating is None
    assert filters.bedrooms is None
    assert filters.applied() == []


def test_property_filters_reject_unknown_type():
    with pytest.raises(ValidationError):
        PropertySearchFilters.from_params({"propertyType": "castle"})


def test_property_filters_reject_unknown_meal_plan():
    with pytest.raises(ValidationError):
        PropertySearchFilters.from_params({"mealPlan": "buffet-forever"})


def test_property_filters_parse_lists():
    filters = PropertySearchFilters.from_params(
        {
            "propertyType": "hotel,resort",
            "amenities": "WiFi, Pool",
            "propertyFeatures": "wifi,teleporter,airConditioning",
        }
    )

    assert filters.property_types == [PropertyType.HOTEL, PropertyType.RESORT]
    assert filters.amenities == ["WiFi", "Pool"]
    assert filters.features == ["wifi", "air_conditioning"]
    assert filters.meal_plans == []


def test_property_filters_guest_capacity_from_adults_and_children():
    filters = PropertySearchFilters.from_params({"adults": "2", "children": "1"})
    assert filters.guest_capacity == 3

    explicit = PropertySearchFilters.from_params({"guestCapacity": "4", "adults": "1"})
    assert explicit.guest_capacity == 4


def test_property_filters_geo_requires_all_parts_in_range():
    assert PropertySearchFilters.from_params({"lat": "-17.7", "lng": "168.3"}).geo is None
    assert PropertySearchFilters.from_params({"lat": "95", "lng": "168.3", "radius": "10"}).geo is None
    assert PropertySearchFilters.from_params({"lat": "-17.7", "lng": "168.3", "radius": "0"}).geo is None

    filters = PropertySearchFilters.from_params({"lat": "-17.7", "lng": "168.3", "radius": "10"})
    assert filters.geo is not None
    assert filters.geo.radius_km == 10
    assert filters.sorts_by_distance
    assert "geo" in filters.applied()


def test_property_filters_dates_only_when_ordered():
    filters = PropertySearchFilters.from_params({"checkIn": "2026-03-01", "checkOut": "2026-03-04"})
    assert filters.check_in == date(2026, 3, 1)
    assert filters.check_out == date(2026, 3, 4)

    reversed_stay = PropertySearchFilters.from_params({"checkIn": "2026-03-04", "checkOut": "2026-03-01"})
    assert reversed_stay.check_in is None
    assert reversed_stay.check_out is None


def test_flight_filters():
    filters = FlightSearchFilters.from_params({"from": "vli", "to": "son", "passengers": "0", "cabinClass": "business"})

    assert filters.origin == "VLI"
    assert filters.destination == "SON"
    assert filters.passengers == 1
    assert filters.cabin_class == CabinClass.BUSINESS


def test_flight_filters_default_cabin_and_unknown_cabin():
    assert FlightSearchFilters.from_params({}).cabin_class == CabinClass.ECONOMY
    with pytest.raises(ValidationError):
        FlightSearchFilters.from_params({"cabinClass": "cargo"})


def test_service_filters_day_range():
    assert ServiceSearchFilters.from_params({"day": "3"}).day == 3
    assert ServiceSearchFilters.from_params({"day": "7"}).day is None
    assert ServiceSearchFilters.from_params({"day": "monday"}).day is None
