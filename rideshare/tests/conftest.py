"""
Centralized Test Configuration.

Each test gets its own file-backed SQLite database. Sessions use separate
connections (NullPool) so concurrent joins behave like concurrent requests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from rideshare.app.main import app
from rideshare.app.db.session import get_db, Base
from rideshare.app.core.jwt import create_access_token
from rideshare.app.models.booking import Booking
from rideshare.app.models.enums import BookingStatus, RideStatus, VehicleType
from rideshare.app.models.ride import Ride
from rideshare.app.models.user import User
from rideshare.app.services.ride_locking import ride_locks


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign keys and WAL for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


@pytest.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'rideshare.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    event.listen(test_engine.sync_engine, "connect", set_sqlite_pragma)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def apply_overrides(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
def reset_ride_locks():
    yield
    assert not ride_locks._locks, "ride locks leaked"


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


def location(address: str, lat: float = 12.97, lng: float = 77.59) -> dict:
    return {"address": address, "coordinates": {"lat": lat, "lng": lng}}


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    async def _make_user(name: str = None, is_driver: bool = False, is_active: bool = True) -> User:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        async with session_factory() as session:
            user = User(
                name=name,
                email=f"{name}.{counter['n']}@example.com",
                phone=f"+91-90000{counter['n']:05d}",
                is_driver=is_driver,
                is_active=is_active,
                rating=4.5,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


@pytest.fixture
def make_ride(session_factory):
    async def _make_ride(
        driver: User,
        capacity: int = 4,
        seats: int = None,
        vehicle_type: VehicleType = VehicleType.CAR,
        departure: datetime = None,
        status: RideStatus = RideStatus.SCHEDULED,
    ) -> Ride:
        departure = departure or datetime.now(timezone.utc) + timedelta(days=1)
        async with session_factory() as session:
            ride = Ride(
                driver_id=driver.id,
                start_location=location("Koramangala"),
                end_location=location("Whitefield", 12.97, 77.75),
                departure_time=departure,
                arrival_time=departure + timedelta(hours=1),
                price=Decimal("150.00"),
                vehicle_type=vehicle_type,
                vehicle_model="Swift",
                vehicle_color="White",
                license_plate="KA01AB1234",
                vehicle_capacity=capacity,
                available_seats=capacity if seats is None else seats,
                status=status,
            )
            session.add(ride)
            await session.commit()
            await session.refresh(ride)
            return ride

    return _make_ride


@pytest.fixture
def fetch(session_factory):
    """Read a fresh copy of a row through a new session."""
    async def _fetch(model, pk):
        async with session_factory() as session:
            return await session.get(model, pk)

    return _fetch


@pytest.fixture
def insert_booking(session_factory):
    """Write a booking row without touching the ride's seat counter."""
    async def _insert_booking(ride: Ride, user: User, status: BookingStatus = BookingStatus.PENDING) -> Booking:
        async with session_factory() as session:
            booking = Booking(
                ride_id=ride.id,
                user_id=user.id,
                pickup_location=location("Gate 2"),
                status=status,
            )
            session.add(booking)
            await session.commit()
            await session.refresh(booking)
            return booking

    return _insert_booking
