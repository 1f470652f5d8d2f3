"""Unit tests for property service."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from tourism_api.core.exceptions import AuthorizationError, NotFoundError
from tourism_api.schemas.booking import CreatePropertyBookingRequest
from tourism_api.schemas.property import CancellationPolicyTerms, PropertyAddress, QuoteRequest, UpdatePropertyRequest
from tourism_api.services.booking_service import BookingService
from tourism_api.services.property_service import PropertyService
from tourism_api.services.query_builder import PropertySearchFilters


@pytest.mark.asyncio
async def test_create_property(make_property, host):
    """Test listing a property with rooms and amenities."""
    property_obj = await make_property()

    assert property_obj.id is not None
    assert property_obj.owner_id == host.id
    assert property_obj.city == "Port Vila"
    assert property_obj.is_active is True
    assert property_obj.rating == 0
    assert len(property_obj.rooms) == 1
    assert property_obj.rooms[0].count == 2
    assert sorted(link.name for link in property_obj.amenity_links) == ["Pool", "WiFi"]


@pytest.mark.asyncio
async def test_create_property_requires_host(make_property, customer):
    with pytest.raises(AuthorizationError):
        await make_property(owner=customer)


@pytest.mark.asyncio
async def test_get_property_not_found(test_session):
    service = PropertyService(test_session)

    with pytest.raises(NotFoundError):
        await service.get_property_by_id_or_raise(uuid4())

    with pytest.raises(NotFoundError):
        await service.get_property_by_id_or_raise("not-a-uuid")


@pytest.mark.asyncio
async def test_amenities_are_conjunctive(test_session, make_property):
    both = await make_property(name="Both", amenities=["WiFi", "Pool"])
    await make_property(name="WiFi Only", amenities=["WiFi"])
    await make_property(name="Pool Only", amenities=["Pool"])

    filters = PropertySearchFilters.from_params({"amenities": "wifi,POOL"})
    results, total = await PropertyService(test_session).search_properties(filters)

    assert total == 1
    assert [prop.id for prop, _ in results] == [both.id]


@pytest.mark.asyncio
async def test_property_types_are_disjunctive(test_session, make_property):
    await make_property(name="Hotel", property_type="hotel")
    await make_property(name="Resort", property_type="resort")
    await make_property(name="Villa", property_type="villa")

    filters = PropertySearchFilters.from_params({"propertyType": "hotel,resort"})
    results, total = await PropertyService(test_session).search_properties(filters)

    assert total == 2
    assert sorted(prop.name for prop, _ in results) == ["Hotel", "Resort"]


@pytest.mark.asyncio
async def test_search_pagination(test_session, make_property):
    for i in range(5):
        await make_property(name=f"Bungalow {i}")

    service = PropertyService(test_session)
    first, total = await service.search_properties(PropertySearchFilters.from_params({"page": "1", "limit": "2"}))
    last, _ = await service.search_properties(PropertySearchFilters.from_params({"page": "3", "limit": "2"}))
    beyond, beyond_total = await service.search_properties(
        PropertySearchFilters.from_params({"page": "4", "limit": "2"})
    )

    assert total == 5
    assert len(first) == 2
    assert len(last) == 1
    assert beyond == []
    assert beyond_total == 5


@pytest.mark.asyncio
async def test_geo_search_filters_by_distance(test_session, make_property):
    near = await make_property(name="Port Vila Lodge")
    await make_property(
        name="Santo Beach House",
        address=PropertyAddress(
            street="Main Street",
            city="Luganville",
            state="Sanma",
            latitude=-15.5125,
            longitude=167.1766,
        ),
    )

    filters = PropertySearchFilters.from_params({"lat": "-17.74", "lng": "168.32", "radius": "25"})
    results, total = await PropertyService(test_session).search_properties(filters)

    assert total == 1
    prop, distance = results[0]
    assert prop.id == near.id
    assert distance is not None and distance < 25


@pytest.mark.asyncio
async def test_price_filter_matches_a_room(test_session, make_property):
    await make_property(name="Budget")
    await make_property(name="Luxury", rooms=[
        {"room_type": "Suite", "max_guests": 4, "beds": 2, "bathrooms": 1, "price_per_night": Decimal("900.00"), "count": 1},
    ])

    filters = PropertySearchFilters.from_params({"minPrice": "500"})
    results, total = await PropertyService(test_session).search_properties(filters)

    assert total == 1
    assert results[0][0].name == "Luxury"


@pytest.mark.asyncio
async def test_update_property_by_other_host_forbidden(test_session, listed_property, make_user):
    from tourism_api.models.user import UserRole

    intruder = await make_user(UserRole.HOST)

    with pytest.raises(AuthorizationError):
        await PropertyService(test_session).update_property(
            intruder, str(listed_property.id), UpdatePropertyRequest(name="Mine Now")
        )


@pytest.mark.asyncio
async def test_delete_property_hides_it(test_session, host, listed_property):
    service = PropertyService(test_session)

    await service.delete_property(host, str(listed_property.id))

    with pytest.raises(NotFoundError):
        await service.get_property_by_id_or_raise(listed_property.id)
    _, total = await service.search_properties(PropertySearchFilters.from_params({}))
    assert total == 0


@pytest.mark.asyncio
async def test_quote(test_session, listed_property, dates):
    check_in, check_out = dates(30, 3)
    quote = await PropertyService(test_session).quote(
        str(listed_property.id),
        QuoteRequest(room_id=str(listed_property.rooms[0].id), check_in=check_in, check_out=check_out),
    )

    assert quote.nights == 3
    assert quote.subtotal == Decimal("600.00")
    assert quote.tax_amount == Decimal("90.00")
    assert quote.total == Decimal("690.00")


def suite(price: str, room_type: str = "Suite") -> dict:
    return {"room_type": room_type, "max_guests": 2, "beds": 1, "bathrooms": 1, "price_per_night": Decimal(price), "count": 1}


async def search_names(session, params: dict) -> list:
    results, _ = await PropertyService(session).search_properties(PropertySearchFilters.from_params(params))
    return [prop.name for prop, _ in results]


@pytest.mark.asyncio
async def test_sort_by_room_price(test_session, make_property):
    await make_property(name="Mid", rooms=[suite("200")])
    await make_property(name="Cheap", rooms=[suite("90", "Dorm"), suite("950")])
    await make_property(name="Dear", rooms=[suite("600")])

    # Cheapest room ranks price-low, dearest room ranks price-high
    assert await search_names(test_session, {"sortBy": "price-low"}) == ["Cheap", "Mid", "Dear"]
    assert await search_names(test_session, {"sortBy": "price-high"}) == ["Cheap", "Dear", "Mid"]


@pytest.mark.asyncio
async def test_sort_by_popularity_recency_and_default(test_session, make_property):
    quiet = await make_property(name="Quiet")
    busy = await make_property(name="Busy")
    starred = await make_property(name="Starred")

    quiet.rating, quiet.review_count, quiet.created_at = 4.9, 3, datetime(2024, 3, 1)
    busy.rating, busy.review_count, busy.created_at = 4.1, 40, datetime(2024, 1, 1)
    starred.rating, starred.review_count, starred.created_at = 3.5, 10, datetime(2024, 2, 1)
    starred.featured = True
    await test_session.commit()

    assert await search_names(test_session, {"sortBy": "popular"}) == ["Busy", "Starred", "Quiet"]
    assert await search_names(test_session, {"sortBy": "newest"}) == ["Quiet", "Starred", "Busy"]
    assert await search_names(test_session, {"sortBy": "rating"}) == ["Quiet", "Busy", "Starred"]
    assert await search_names(test_session, {}) == ["Starred", "Quiet", "Busy"]
    assert await search_names(test_session, {"sortBy": "cheapest-first"}) == ["Starred", "Quiet", "Busy"]


PLAIN_TERMS = dict(
    instant_confirmation=False,
    cancellation_policy=CancellationPolicyTerms(type="strict", free_cancellation_days=0),
)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "param, overrides",
    [
        ("petFriendly", {"features": {"petsAllowed": True}}),
        ("wheelchairAccessible", {"features": {"wheelchairAccessible": True}}),
        ("familyFriendly", {"features": {"familyFriendly": True}}),
        ("sustainable", {"sustainability_certified": True}),
        ("freeCancellation", {"cancellation_policy": CancellationPolicyTerms(type="flexible", free_cancellation_days=2)}),
        ("instantConfirmation", {"instant_confirmation": True}),
    ],
)
async def test_boolean_filters(test_session, make_property, param, overrides):
    await make_property(name="Plain", **PLAIN_TERMS)
    await make_property(name="Match", **{**PLAIN_TERMS, **overrides})

    assert await search_names(test_session, {param: "true"}) == ["Match"]
    assert sorted(await search_names(test_session, {param: "false"})) == ["Match", "Plain"]


@pytest.mark.asyncio
async def test_date_filter_excludes_fully_booked(
    test_session, make_property, listed_property, customer, guest_details, dates
):
    await make_property(name="Spare Rooms")
    check_in, check_out = dates(30, 3)
    await BookingService(test_session).create_property_booking(
        customer,
        CreatePropertyBookingRequest(
            property_id=str(listed_property.id),
            room_id=str(listed_property.rooms[0].id),
            check_in=check_in,
            check_out=check_out,
            quantity=2,
            guest_details=guest_details,
        ),
    )

    overlapping = {"checkIn": (check_in + timedelta(days=1)).isoformat(), "checkOut": (check_out + timedelta(days=2)).isoformat()}
    assert await search_names(test_session, overlapping) == ["Spare Rooms"]

    # Check-out day is free for the next arrival
    after = {"checkIn": check_out.isoformat(), "checkOut": (check_out + timedelta(days=2)).isoformat()}
    assert sorted(await search_names(test_session, after)) == ["Harbour View Hotel", "Spare Rooms"]


@pytest.mark.asyncio
async def test_geo_search_orders_nearest_first(test_session, make_property):
    await make_property(
        name="Mele Bay Retreat",
        address=PropertyAddress(street="Mele Road", city="Mele", state="Shefa", latitude=-17.69, longitude=168.26),
    )
    await make_property(name="Harbour View Hotel")

    results, total = await PropertyService(test_session).search_properties(
        PropertySearchFilters.from_params({"lat": "-17.74", "lng": "168.32", "radius": "50"})
    )

    assert total == 2
    assert [prop.name for prop, _ in results] == ["Harbour View Hotel", "Mele Bay Retreat"]
    assert results[0][1] < results[1][1]


@pytest.mark.asyncio
async def test_price_and_type_filters_combine(test_session, make_property):
    await make_property(name="Lagoon Resort", property_type="resort", rooms=[suite("150")])
    await make_property(name="Backpacker Resort", property_type="resort", rooms=[suite("80")])
    await make_property(name="City Hotel", property_type="hotel", rooms=[suite("200")])

    filters = PropertySearchFilters.from_params({"minPrice": "100", "propertyType": "resort"})
    results, total = await PropertyService(test_session).search_properties(filters)

    assert total == 1
    assert [prop.name for prop, _ in results] == ["Lagoon Resort"]
    assert filters.applied() == ["minPrice", "propertyType"]
