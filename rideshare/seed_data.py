"""
Database seeding script for demo data.

Creates two drivers, three passengers and a few scheduled rides, then
prints a bearer token per user for trying the API locally.
Run this script after the database is set up.
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from rideshare.app.core.jwt import create_access_token
from rideshare.app.db.session import AsyncSessionLocal, engine, Base
from rideshare.app.models.enums import VehicleType
from rideshare.app.models.user import User
from rideshare.app.models.ride import Ride  # noqa: F401  (registers table)
from rideshare.app.models.booking import Booking  # noqa: F401
from rideshare.app.models.ride_completion_event import RideCompletionEvent  # noqa: F401
from rideshare.app.models.audit_log import AuditLog  # noqa: F401
from rideshare.app.schemas.ride import Coordinates, Location, RideCreate
from rideshare.app.services import ride_catalog


DRIVERS = [
    ("Asha Rao", "asha@rideshare.dev", "+91-9000000001"),
    ("Vikram Shah", "vikram@rideshare.dev", "+91-9000000002"),
]

PASSENGERS = [
    ("Meera Iyer", "meera@rideshare.dev", "+91-9000000011"),
    ("Rahul Nair", "rahul@rideshare.dev", "+91-9000000012"),
    ("Kavya Das", "kavya@rideshare.dev", "+91-9000000013"),
]

PLACES = {
    "koramangala": Location(address="Koramangala 5th Block", coordinates=Coordinates(lat=12.9352, lng=77.6245)),
    "whitefield": Location(address="Whitefield Main Road", coordinates=Coordinates(lat=12.9698, lng=77.7500)),
    "airport": Location(address="Kempegowda International Airport", coordinates=Coordinates(lat=13.1986, lng=77.7066)),
}


async def seed_data():
    """
    Seed demo users and rides.

    Creates:
    - 2 drivers, each publishing rides (one car, one bike)
    - 3 passengers
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting demo seeding...")

        result = await db.execute(select(User).where(User.email == DRIVERS[0][1]))
        if result.scalar_one_or_none():
            print("ℹ️  Demo users already exist, skipping seeding")
            return

        users = []
        for name, email, phone in DRIVERS:
            users.append(User(name=name, email=email, phone=phone, is_driver=True, rating=4.8))
        for name, email, phone in PASSENGERS:
            users.append(User(name=name, email=email, phone=phone, is_driver=False))

        db.add_all(users)
        await db.commit()

        drivers = users[:len(DRIVERS)]
        tomorrow = datetime.now(timezone.utc).replace(hour=8, minute=0, second=0, microsecond=0) + timedelta(days=1)

        car_ride = await ride_catalog.create_ride(db, drivers[0].id, RideCreate(
            start_location=PLACES["koramangala"],
            end_location=PLACES["airport"],
            departure_time=tomorrow,
            arrival_time=tomorrow + timedelta(hours=1, minutes=15),
            price=Decimal("450.00"),
            description="Airport drop, one large bag per passenger",
            vehicle_type=VehicleType.CAR,
            vehicle_model="Maruti Dzire",
            vehicle_color="Silver",
            license_plate="KA03MN4521",
            vehicle_capacity=4,
        ))
        print(f"✅ Created car ride {car_ride.id} ({car_ride.available_seats} seats)")

        bike_ride = await ride_catalog.create_ride(db, drivers[1].id, RideCreate(
            start_location=PLACES["whitefield"],
            end_location=PLACES["koramangala"],
            departure_time=tomorrow + timedelta(hours=10),
            arrival_time=tomorrow + timedelta(hours=11),
            price=Decimal("120.00"),
            vehicle_type=VehicleType.BIKE,
            vehicle_model="Honda Activa",
            vehicle_color="Black",
            license_plate="KA53HX0917",
            vehicle_capacity=2,
            available_seats=1,
        ))
        print(f"✅ Created bike ride {bike_ride.id} ({bike_ride.available_seats} seat)")

        print("\n🎉 Demo seeding completed successfully!")
        print("\nBearer tokens:")
        for user in users:
            role = "driver" if user.is_driver else "passenger"
            print(f"  - {user.email} ({role}): {create_access_token(user.id)}")


if __name__ == "__main__":
    asyncio.run(seed_data())
