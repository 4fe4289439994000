"""
Ride catalog service.

Publishing rides and read-only ride queries. Reads take no locks.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.core.exceptions import InvalidRideError, NotADriverError, RideNotFoundError
from rideshare.app.domain.rides.capacity_policy import resolve_seats
from rideshare.app.models.enums import RideStatus
from rideshare.app.models.ride import Ride
from rideshare.app.schemas.ride import RideCreate
from rideshare.app.services import ride_ledger, user_ledger
from rideshare.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def create_ride(db: AsyncSession, driver_id: int, data: RideCreate) -> Ride:
    """
    Publish a new scheduled ride.

    Validates:
    - Caller is a driver
    - Departure is in the future and arrival is after departure
    - Vehicle capacity within the vehicle-type ceiling
    - Available seats (defaults to capacity) within vehicle capacity

    Raises:
        NotADriverError: If the caller cannot drive
        InvalidRideError: If schedule or capacity values are out of range
    """
    driver = await user_ledger.get_user(db, driver_id)
    if not driver or not driver.is_driver:
        raise NotADriverError()

    departure_time = as_utc(data.departure_time)
    arrival_time = as_utc(data.arrival_time)

    if departure_time <= datetime.now(timezone.utc):
        raise InvalidRideError("Departure time must be in the future")

    if arrival_time <= departure_time:
        raise InvalidRideError("Arrival time must be after departure time")

    available_seats = resolve_seats(data.vehicle_type, data.vehicle_capacity, data.available_seats)

    ride = Ride(
        driver_id=driver_id,
        start_location=data.start_location.to_document(),
        end_location=data.end_location.to_document(),
        departure_time=departure_time,
        arrival_time=arrival_time,
        price=data.price,
        description=data.description,
        vehicle_type=data.vehicle_type,
        vehicle_model=data.vehicle_model,
        vehicle_color=data.vehicle_color,
        license_plate=data.license_plate,
        vehicle_capacity=data.vehicle_capacity,
        available_seats=available_seats,
        status=RideStatus.SCHEDULED
    )

    await ride_ledger.create_ride(db, ride)

    await log_event(
        db=db,
        action=AuditAction.RIDE_CREATED,
        actor_id=driver_id,
        ride_id=ride.id,
        metadata={
            "vehicle_type": data.vehicle_type.value,
            "vehicle_capacity": data.vehicle_capacity,
            "available_seats": available_seats
        }
    )

    await db.commit()
    await db.refresh(ride)

    logger.info("Driver %s published ride %s with %d seats", driver_id, ride.id, available_seats)

    return ride


async def list_scheduled_rides(
    db: AsyncSession,
    on_date: Optional[date] = None,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None
) -> list[Ride]:
    """
    List scheduled rides, earliest departure first.

    With a date, only rides departing that day (UTC). With a date and both
    start and end times, only rides departing within that window of the day.
    Times without a date are ignored.
    """
    departure_from = departure_to = None

    if on_date is not None:
        if start_time is not None and end_time is not None:
            departure_from = datetime.combine(on_date, start_time.replace(tzinfo=None), tzinfo=timezone.utc)
            departure_to = datetime.combine(on_date, end_time.replace(tzinfo=None), tzinfo=timezone.utc)
        else:
            departure_from = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
            departure_to = datetime.combine(on_date, time.max, tzinfo=timezone.utc)

    return await ride_ledger.find_scheduled_rides(db, departure_from, departure_to)


async def get_ride_detail(db: AsyncSession, ride_id: int) -> Ride:
    """
    Get a ride with its driver and passengers.

    Raises:
        RideNotFoundError: If the ride does not exist
    """
    ride = await ride_ledger.get_ride_detail(db, ride_id)
    if not ride:
        raise RideNotFoundError(ride_id)
    return ride


async def list_user_rides(db: AsyncSession, user_id: int) -> list[Ride]:
    """Rides the user drives or has booked, latest departure first."""
    return await ride_ledger.find_rides_for_user(db, user_id)
