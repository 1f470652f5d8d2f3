"""Integration tests for API endpoints."""

from datetime import datetime, timedelta, timezone

import pytest

PROPERTY_PAYLOAD = {
    "name": "Reef Bungalows",
    "description": "Beachfront bungalows on Erakor lagoon",
    "propertyType": "resort",
    "starRating": 4,
    "address": {
        "street": "Erakor Road",
        "city": "Port Vila",
        "state": "Shefa",
        "latitude": -17.76,
        "longitude": 168.31,
    },
    "amenities": ["WiFi", "Kayaks"],
    "rooms": [
        {
            "type": "Bungalow",
            "maxGuests": 2,
            "beds": 1,
            "bathrooms": 1,
            "pricePerNight": 200,
            "currency": "VUV",
            "count": 2,
        }
    ],
    "features": {"wifi": True},
}


def stay_payload(property_data, guest_details, check_in, check_out, **fields):
    return {
        "propertyId": property_data["id"],
        "roomId": property_data["rooms"][0]["id"],
        "checkIn": check_in.isoformat(),
        "checkOut": check_out.isoformat(),
        "guestDetails": {
            "firstName": guest_details["first_name"],
            "lastName": guest_details["last_name"],
            "email": guest_details["email"],
        },
        **fields,
    }


@pytest.mark.asyncio
async def test_register_and_login(test_client):
    """Test the registration and login endpoints."""
    response = await test_client.post(
        "/api/auth/register",
        json={"email": "Tavi@Example.com", "password": "lagoon1", "firstName": "Tavi", "lastName": "Moli"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["user"]["email"] == "tavi@example.com"
    assert data["user"]["role"] == "customer"
    assert "passwordHash" not in data["user"]

    response = await test_client.post("/api/auth/login", json={"email": "tavi@example.com", "password": "lagoon1"})
    assert response.status_code == 200
    token = response.json()["token"]

    response = await test_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["firstName"] == "Tavi"


@pytest.mark.asyncio
async def test_register_duplicate_email(test_client, customer):
    response = await test_client.post(
        "/api/auth/register",
        json={"email": customer.email, "password": "lagoon1", "firstName": "A", "lastName": "B"},
    )

    assert response.status_code == 409
    data = response.json()
    assert data["status"] == 409
    assert data["code"] == "DUPLICATE_EMAIL"


@pytest.mark.asyncio
async def test_login_wrong_password(test_client, customer):
    response = await test_client.post("/api/auth/login", json={"email": customer.email, "password": "nope-nope"})

    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_missing_auth(test_client):
    """Test a protected endpoint without credentials."""
    response = await test_client.get("/api/bookings/my-bookings")

    assert response.status_code == 401
    data = response.json()
    assert data["status"] == 401
    assert "message" in data
    assert response.headers["content-type"] == "application/problem+json"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_token(test_client):
    response = await test_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_validation_error_lists_violations(test_client):
    """Test request validation failures."""
    response = await test_client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "123", "firstName": "", "lastName": "B"},
    )

    assert response.status_code == 400
    data = response.json()
    assert data["status"] == 400
    assert "violations" in data
    assert len(data["violations"]) >= 2


@pytest.mark.asyncio
async def test_create_property_as_host(test_client, host, headers_for):
    response = await test_client.post("/api/properties", json=PROPERTY_PAYLOAD, headers=headers_for(host))

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Reef Bungalows"
    assert data["propertyType"] == "resort"
    assert data["rooms"][0]["type"] == "Bungalow"
    assert data["priceFrom"] == 200.0
    assert data["owner"]["id"] == str(host.id)
    assert data["features"]["wifi"] is True

    response = await test_client.get(f"/api/properties/{data['id']}")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_create_property_as_customer_forbidden(test_client, customer, headers_for):
    response = await test_client.post("/api/properties", json=PROPERTY_PAYLOAD, headers=headers_for(customer))

    assert response.status_code == 403
    assert response.json()["status"] == 403


@pytest.mark.asyncio
async def test_unknown_property_is_404(test_client):
    response = await test_client.get("/api/properties/not-a-uuid")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_property_rejects_null_required_field(test_client, host, listed_property, headers_for):
    url = f"/api/properties/{listed_property.id}"

    response = await test_client.put(url, json={"name": None}, headers=headers_for(host))

    assert response.status_code == 400
    assert [v["path"] for v in response.json()["violations"]] == ["name"]

    response = await test_client.put(url, json={"starRating": None, "maximumStay": None}, headers=headers_for(host))

    assert response.status_code == 200
    assert response.json()["starRating"] is None
    assert response.json()["name"] == listed_property.name


@pytest.mark.asyncio
async def test_update_profile_rejects_null_name(test_client, customer, headers_for):
    response = await test_client.put("/api/users/profile", json={"firstName": None}, headers=headers_for(customer))

    assert response.status_code == 400
    assert [v["path"] for v in response.json()["violations"]] == ["firstName"]

    response = await test_client.put(
        "/api/users/profile", json={"lastName": "Kalo", "phone": None}, headers=headers_for(customer)
    )

    assert response.status_code == 200
    assert response.json()["firstName"] == "Test"
    assert response.json()["lastName"] == "Kalo"


@pytest.mark.asyncio
async def test_search_properties_by_location(test_client, make_property):
    await make_property(name="Harbour View Hotel")

    response = await test_client.get(
        "/api/properties/search",
        params={"lat": "-17.74", "lng": "168.32", "radius": "25", "amenities": "wifi"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["pagination"]["total"] == 1
    assert data["pagination"]["pages"] == 1
    assert data["properties"][0]["distanceKm"] < 25
    assert set(data["filters"]["applied"]) == {"geo", "amenities"}


@pytest.mark.asyncio
async def test_search_rejects_unknown_property_type(test_client):
    response = await test_client.get("/api/properties/search", params={"propertyType": "castle"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_quote_stay(test_client, listed_property, dates):
    check_in, check_out = dates(30, 3)

    response = await test_client.post(
        f"/api/properties/{listed_property.id}/quote",
        json={
            "roomId": str(listed_property.rooms[0].id),
            "checkIn": check_in.isoformat(),
            "checkOut": check_out.isoformat(),
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["subtotal"] == 600.0
    assert data["taxAmount"] == 90.0
    assert data["total"] == 690.0


@pytest.mark.asyncio
async def test_booking_create_and_cancel_flow(test_client, customer, host, listed_property, guest_details, headers_for, dates):
    check_in, check_out = dates(30, 3)
    property_data = (await test_client.get(f"/api/properties/{listed_property.id}")).json()

    response = await test_client.post(
        "/api/bookings/property",
        json=stay_payload(property_data, guest_details, check_in, check_out),
        headers=headers_for(customer),
    )
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "pending"
    assert booking["payment"]["status"] == "unpaid"
    assert booking["pricing"]["total"] == 690.0
    assert booking["reservationNumber"].startswith("VU-")

    response = await test_client.get("/api/bookings/my-bookings", headers=headers_for(customer))
    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 1

    response = await test_client.get(f"/api/bookings/{booking['id']}", headers=headers_for(host))
    assert response.status_code == 200

    response = await test_client.patch(f"/api/bookings/{booking['id']}/cancel", headers=headers_for(customer))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await test_client.patch(f"/api/bookings/{booking['id']}/cancel", headers=headers_for(customer))
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_STATUS_TRANSITION"


@pytest.mark.asyncio
async def test_booking_over_capacity(test_client, customer, listed_property, guest_details, headers_for, dates):
    check_in, check_out = dates(30, 2)
    property_data = (await test_client.get(f"/api/properties/{listed_property.id}")).json()

    response = await test_client.post(
        "/api/bookings/property",
        json=stay_payload(property_data, guest_details, check_in, check_out, quantity=3, guests={"adults": 2}),
        headers=headers_for(customer),
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "UNAVAILABLE"
    assert data["available_quantity"] == 2


@pytest.mark.asyncio
async def test_booking_of_another_guest_is_forbidden(
    test_client, customer, make_user, listed_property, guest_details, headers_for, dates
):
    check_in, check_out = dates(30, 2)
    property_data = (await test_client.get(f"/api/properties/{listed_property.id}")).json()
    booking = (await test_client.post(
        "/api/bookings/property",
        json=stay_payload(property_data, guest_details, check_in, check_out),
        headers=headers_for(customer),
    )).json()
    other = await make_user()

    response = await test_client.get(f"/api/bookings/{booking['id']}", headers=headers_for(other))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_booking_list(test_client, customer, admin, headers_for):
    response = await test_client.get("/api/bookings/all", headers=headers_for(customer))
    assert response.status_code == 403

    response = await test_client.get("/api/bookings/all", params={"bookingType": "flight"}, headers=headers_for(admin))
    assert response.status_code == 200
    assert response.json()["bookings"] == []


@pytest.mark.asyncio
async def test_property_reviews_empty(test_client, listed_property):
    response = await test_client.get(f"/api/reviews/property/{listed_property.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["reviews"] == []
    assert data["stats"]["total"] == 0
    assert data["stats"]["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}
    assert data["pagination"]["pages"] == 0


@pytest.mark.asyncio
async def test_flight_search(test_client, scheduled_flight):
    response = await test_client.get("/api/flights/search", params={"from": "vli", "to": "SON", "passengers": "2"})

    assert response.status_code == 200
    data = response.json()
    assert data["pagination"]["total"] == 1

    response = await test_client.get("/api/flights/search", params={"from": "VLI", "passengers": "6"})
    assert response.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_discount_create_and_validate(test_client, admin, customer, headers_for):
    now = datetime.now(timezone.utc)
    payload = {
        "code": "bula10",
        "type": "percentage",
        "value": 10,
        "validFrom": (now - timedelta(days=1)).isoformat(),
        "validUntil": (now + timedelta(days=30)).isoformat(),
    }

    response = await test_client.post("/api/discounts", json=payload, headers=headers_for(customer))
    assert response.status_code == 403

    response = await test_client.post("/api/discounts", json=payload, headers=headers_for(admin))
    assert response.status_code == 201

    response = await test_client.get("/api/discounts/validate", params={"code": "BULA10", "amount": "600"})
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["discountAmount"] == 60.0
    assert data["finalAmount"] == 540.0

    response = await test_client.get("/api/discounts/validate", params={"code": "MISSING", "amount": "600"})
    assert response.status_code == 200
    assert response.json()["valid"] is False


@pytest.mark.asyncio
async def test_metrics_endpoint(test_client):
    """Test the Prometheus metrics endpoint."""
    response = await test_client.get("/metrics")

    assert response.status_code == 200
