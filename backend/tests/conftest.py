"""
Pytest fixtures for test database, client, clock and authentication.

Runs against an in-memory SQLite database (one shared connection via
StaticPool) that is created and dropped around every test. Redis is
disabled, so the catalog cache degrades to misses.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import itertools
from datetime import date, datetime, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.clock import FixedClock, get_clock
from app.core.security import create_access_token, hash_password
from app.db.base import Base
from app.db.session import get_db
from app.domain.rental_period import rental_days
from app.models.booking import Booking
from app.models.enums import BookingStatus, CoverageType, Currency, VehicleStatus
from app.models.user import User
from app.models.vehicle import Vehicle

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Pinned "now" for everything that reads the clock
FROZEN_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Per-request session with the same commit/rollback contract as get_db."""
    async with TestSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield a session for fixture data, then drop tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FROZEN_NOW)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database and the frozen clock."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    user = User(
        email="admin@example.com",
        first_name="Ana",
        last_name="Horvat",
        hashed_password=hash_password("adminpassword123"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def auth_headers(admin_user: User) -> dict:
    """Authorization headers with Bearer token."""
    token = create_access_token(data={"sub": str(admin_user.id)})
    return {"Authorization": f"Bearer {token}"}


_plates = itertools.count(1)
_references = itertools.count(1)


@pytest.fixture
def make_vehicle(db_session: AsyncSession):
    """Factory that inserts a vehicle and returns it."""

    async def _make(
        make: str = "Volkswagen",
        model: str = "Golf",
        status: VehicleStatus = VehicleStatus.AVAILABLE,
        daily_rate: float = 40.0,
        category: str = "compact",
        location: str = "Split Airport",
        **overrides,
    ) -> Vehicle:
        vehicle = Vehicle(
            make=make,
            model=model,
            year=2023,
            color="White",
            license_plate=f"ST{next(_plates):04d}AB",
            category=category,
            transmission="manual",
            passenger_capacity=5,
            door_count=5,
            features=["Air Conditioning", "Bluetooth"],
            images=[],
            daily_rate=daily_rate,
            currency=Currency.EUR,
            status=status,
            location=location,
            **overrides,
        )
        db_session.add(vehicle)
        await db_session.commit()
        await db_session.refresh(vehicle)
        return vehicle

    return _make


@pytest.fixture
def make_booking(db_session: AsyncSession):
    """Factory that inserts a booking directly, bypassing the conflict check."""

    async def _make(
        vehicle: Vehicle,
        pickup_date: date,
        return_date: date,
        status: BookingStatus = BookingStatus.CONFIRMED,
        total_cost: Optional[float] = None,
        created_at: datetime = FROZEN_NOW,
        email: str = "marko@example.com",
        first_name: str = "Marko",
        last_name: str = "Kovac",
    ) -> Booking:
        days = rental_days(pickup_date, return_date)
        cost = total_cost if total_cost is not None else vehicle.daily_rate * days
        booking = Booking(
            booking_reference=f"CART{next(_references):08d}",
            client_info={
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "country_code": "+385",
                "phone_number": "911234567",
            },
            client_email=email,
            vehicle_id=vehicle.id,
            vehicle_info={
                "make": vehicle.make,
                "model": vehicle.model,
                "category": vehicle.category,
                "daily_rate": vehicle.daily_rate,
                "currency": "EUR",
            },
            pickup_date=pickup_date,
            return_date=return_date,
            pickup_location="Split Airport",
            rental_days=days,
            cdw_coverage=CoverageType.BASIC,
            add_ons={},
            base_daily_rate=vehicle.daily_rate,
            cdw_cost=0.0,
            add_ons_cost=0.0,
            total_daily_rate=vehicle.daily_rate,
            total_cost=cost,
            status=status,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(booking)
        await db_session.commit()
        await db_session.refresh(booking)
        return booking

    return _make


@pytest.fixture
def booking_payload():
    """Builder for the camelCase body of POST /bookings/."""

    def _build(vehicle_id: int, pickup: str, return_: str, **overrides) -> dict:
        payload = {
            "clientInfo": {
                "firstName": "Ivana",
                "lastName": "Babic",
                "email": "Ivana.Babic@example.com",
                "countryCode": "+385",
                "phoneNumber": "981112223",
            },
            "vehicleId": vehicle_id,
            "pickupDate": pickup,
            "returnDate": return_,
            "pickupLocation": "Split Airport",
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def session_factory(db_session: AsyncSession):
    """Opens sessions that see only what requests have committed."""
    return TestSessionLocal
