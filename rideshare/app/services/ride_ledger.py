"""
Ride ledger.

Storage access for rides and their seat counters. These functions do not
enforce cross-entity invariants; callers hold the ride lock.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, or_
from sqlalchemy.orm import selectinload

from rideshare.app.models.ride import Ride
from rideshare.app.models.booking import Booking
from rideshare.app.models.enums import RideStatus


async def create_ride(db: AsyncSession, ride: Ride) -> Ride:
    """
    Add a new ride to the current transaction.
    
    Returns:
        The ride with its id assigned
    """
    db.add(ride)
    await db.flush()
    return ride


async def get_ride_for_update(db: AsyncSession, ride_id: int) -> Optional[Ride]:
    """
    Get a ride by id, taking an exclusive row lock where the engine supports it.
    
    The lock is held until the surrounding transaction commits or rolls back.
    """
    result = await db.execute(
        select(Ride)
        .where(Ride.id == ride_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_ride_detail(db: AsyncSession, ride_id: int) -> Optional[Ride]:
    """
    Get a ride with its driver and all bookings (with each booking's user).
    """
    result = await db.execute(
        select(Ride)
        .options(
            selectinload(Ride.driver),
            selectinload(Ride.passengers).selectinload(Booking.user)
        )
        .where(Ride.id == ride_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def decrement_available_seats(db: AsyncSession, ride_id: int, count: int = 1) -> bool:
    """
    Take seats from a ride's counter.
    
    Writes only available_seats, guarded so the counter never goes negative.
    
    Returns:
        True if the seats were taken, False if not enough seats remained
    """
    result = await db.execute(
        update(Ride)
        .where(Ride.id == ride_id, Ride.available_seats >= count)
        .values(available_seats=Ride.available_seats - count)
    )
    return result.rowcount == 1


async def increment_available_seats(db: AsyncSession, ride_id: int, count: int = 1) -> bool:
    """
    Return seats to a ride's counter.
    
    Guarded so the counter never exceeds the vehicle capacity.
    
    Returns:
        True if the seats were returned, False if the counter was already full
    """
    result = await db.execute(
        update(Ride)
        .where(Ride.id == ride_id, Ride.available_seats + count <= Ride.vehicle_capacity)
        .values(available_seats=Ride.available_seats + count)
    )
    return result.rowcount == 1


async def find_scheduled_rides(
    db: AsyncSession,
    departure_from: Optional[datetime] = None,
    departure_to: Optional[datetime] = None
) -> list[Ride]:
    """
    List scheduled rides, earliest departure first, with driver loaded.
    """
    query = select(Ride).options(selectinload(Ride.driver)).where(
        Ride.status == RideStatus.SCHEDULED
    )
    
    if departure_from is not None:
        query = query.where(Ride.departure_time >= departure_from)
    
    if departure_to is not None:
        query = query.where(Ride.departure_time <= departure_to)
    
    result = await db.execute(query.order_by(Ride.departure_time.asc()))
    return result.scalars().all()


async def find_rides_for_user(db: AsyncSession, user_id: int) -> list[Ride]:
    """
    List rides a user drives or holds a booking on, latest departure first.
    """
    booked_ride_ids = select(Booking.ride_id).where(Booking.user_id == user_id)
    
    result = await db.execute(
        select(Ride)
        .options(
            selectinload(Ride.driver),
            selectinload(Ride.passengers).selectinload(Booking.user)
        )
        .where(or_(Ride.driver_id == user_id, Ride.id.in_(booked_ride_ids)))
        .order_by(Ride.departure_time.desc())
    )
    return result.scalars().all()
