"""Test configuration and fixtures."""

import os

# Settings are read at import time; point the module-level engine at SQLite
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date, datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tourism_api.core.database import Base  # noqa: E402
from tourism_api.core.dependencies import get_db  # noqa: E402
from tourism_api.core.security import create_access_token, hash_password  # noqa: E402
from tourism_api.models import *  # noqa: E402,F403 - Import all models
from tourism_api.models.user import User, UserRole  # noqa: E402
from tourism_api.schemas.flight import Aircraft, Airline, AirportLeg, CreateFlightRequest, FareInput  # noqa: E402
from tourism_api.schemas.property import CreatePropertyRequest, PropertyAddress, RoomInput  # noqa: E402
from tourism_api.schemas.service import AvailableHours, CreateServiceRequest  # noqa: E402
from tourism_api.services.catalog_service import CatalogService  # noqa: E402
from tourism_api.services.flight_service import FlightService  # noqa: E402
from tourism_api.services.property_service import PropertyService  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "secret123"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session configured like the application's."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Application wired like create_app but bound to the per-test session and without a lifespan."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError

    from tourism_api.core.exceptions import (
        ProblemDetailsException,
        generic_exception_handler,
        problem_details_handler,
        request_validation_handler,
    )
    from tourism_api.main import ROUTERS

    app = FastAPI(
        title="Tourism Booking API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    for router in ROUTERS:
        app.include_router(router)

    # Every request shares the fixture session so tests can inspect its writes
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    from httpx import ASGITransport
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_headers(user: User) -> dict:
    """Bearer header for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(str(user.id), user.role)}"}


@pytest.fixture
def make_user(test_session):
    """Factory creating active users directly in the database."""
    counter = {"n": 0}

    async def _make_user(role: UserRole = UserRole.CUSTOMER, email: str | None = None, **fields) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role.value}{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", role.value.title()),
            role=role.value,
            preferences={},
            payment_methods=[],
            **fields,
        )
        test_session.add(user)
        await test_session.commit()
        return user

    return _make_user


@pytest_asyncio.fixture
async def customer(make_user):
    return await make_user(UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def host(make_user):
    return await make_user(UserRole.HOST)


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN)


def property_request(**overrides) -> CreatePropertyRequest:
    """A Port Vila hotel with one double room type (2 units at 200 VUV/night)."""
    data = dict(
        name="Harbour View Hotel",
        description="Waterfront rooms overlooking the harbour",
        property_type="hotel",
        star_rating=4,
        address=PropertyAddress(
            street="Lini Highway",
            city="Port Vila",
            state="Shefa",
            latitude=-17.7334,
            longitude=168.3273,
        ),
        amenities=["WiFi", "Pool"],
        rooms=[
            RoomInput(
                room_type="Double",
                max_guests=2,
                beds=1,
                bathrooms=1,
                price_per_night=Decimal("200.00"),
                currency="VUV",
                count=2,
            )
        ],
        features={"wifi": True, "pool": True},
    )
    data.update(overrides)
    return CreatePropertyRequest(**data)


@pytest.fixture
def make_property(test_session, host):
    """Factory listing properties owned by the ``host`` fixture."""

    async def _make_property(owner: User | None = None, **overrides):
        return await PropertyService(test_session).create_property(owner or host, property_request(**overrides))

    return _make_property


@pytest_asyncio.fixture
async def listed_property(make_property):
    return await make_property()


def flight_request(**overrides) -> CreateFlightRequest:
    departs = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=30)
    data = dict(
        flight_number="NF10",
        airline=Airline(code="NF", name="Air Vanuatu"),
        departure=AirportLeg(
            airport_code="VLI",
            airport_name="Bauerfield International",
            city="Port Vila",
            country="Vanuatu",
            date_time=departs,
        ),
        arrival=AirportLeg(
            airport_code="SON",
            airport_name="Santo-Pekoa International",
            city="Luganville",
            country="Vanuatu",
            date_time=departs + timedelta(minutes=50),
        ),
        duration_minutes=50,
        aircraft=Aircraft(type="Turboprop", model="ATR 72-600"),
        fares=[
            FareInput(
                cabin_class="economy",
                price=Decimal("12000.00"),
                seats_available=5,
                cabin_baggage="7kg",
                checked_baggage="20kg",
            ),
        ],
        is_international=False,
        currency="VUV",
    )
    data.update(overrides)
    return CreateFlightRequest(**data)


@pytest_asyncio.fixture
async def scheduled_flight(test_session):
    return await FlightService(test_session).create_flight(flight_request())


def service_request(**overrides) -> CreateServiceRequest:
    data = dict(
        name="Mele Cascades Tour",
        description="Guided walk to the cascades with a swim stop",
        category="Tour",
        price=Decimal("4500.00"),
        currency="VUV",
        duration_minutes=180,
        capacity=4,
        location="Mele, Efate",
        available_days=[0, 1, 2, 3, 4, 5, 6],
        available_hours=AvailableHours(start="09:00", end="12:00"),
    )
    data.update(overrides)
    return CreateServiceRequest(**data)


@pytest_asyncio.fixture
async def bookable_service(test_session):
    return await CatalogService(test_session).create_service(service_request())


def stay_dates(offset_days: int = 30, nights: int = 3) -> tuple[date, date]:
    """Future check-in/check-out pair."""
    check_in = date.today() + timedelta(days=offset_days)
    return check_in, check_in + timedelta(days=nights)


@pytest.fixture
def guest_details():
    return {"first_name": "Mere", "last_name": "Kalo", "email": "mere@example.com"}


@pytest.fixture
def headers_for():
    """``headers_for(user)`` builds a bearer header."""
    return auth_headers


@pytest.fixture
def dates():
    """``dates(offset_days, nights)`` builds a future stay."""
    return stay_dates
