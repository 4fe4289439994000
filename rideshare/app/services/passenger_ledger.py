"""
Passenger ledger.

Storage access for bookings. The (ride, user) uniqueness of non-cancelled
bookings is backed by a partial unique index; flushing a duplicate raises
IntegrityError.
"""

from typing import Any, Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from rideshare.app.models.booking import Booking
from rideshare.app.models.enums import BookingStatus, SEAT_HOLDING_STATUSES


async def create_booking(
    db: AsyncSession,
    ride_id: int,
    user_id: int,
    pickup_location: Dict[str, Any]
) -> Booking:
    """
    Add a pending booking to the current transaction.
    
    Raises:
        IntegrityError: If the user already has a non-cancelled booking on the ride
    """
    booking = Booking(
        ride_id=ride_id,
        user_id=user_id,
        pickup_location=pickup_location,
        status=BookingStatus.PENDING
    )
    
    db.add(booking)
    await db.flush()  # Will raise IntegrityError if unique index violated
    
    return booking


async def get_booking(db: AsyncSession, booking_id: int, ride_id: int) -> Optional[Booking]:
    """Get a booking by id, scoped to its ride."""
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id, Booking.ride_id == ride_id)
    )
    return result.scalar_one_or_none()


async def find_active_booking(db: AsyncSession, ride_id: int, user_id: int) -> Optional[Booking]:
    """
    Find the user's non-cancelled booking on a ride, if any.
    """
    result = await db.execute(
        select(Booking).where(
            Booking.ride_id == ride_id,
            Booking.user_id == user_id,
            Booking.status != BookingStatus.CANCELLED
        )
    )
    return result.scalar_one_or_none()


async def list_bookings_for_ride(
    db: AsyncSession,
    ride_id: int,
    statuses: Optional[Iterable[BookingStatus]] = None
) -> list[Booking]:
    """
    List bookings on a ride, optionally filtered by status.
    """
    query = select(Booking).where(Booking.ride_id == ride_id)
    
    if statuses is not None:
        query = query.where(Booking.status.in_(list(statuses)))
    
    result = await db.execute(query.order_by(Booking.id))
    return result.scalars().all()


async def count_seat_holding_bookings(db: AsyncSession, ride_id: int) -> int:
    """
    Count bookings currently occupying a seat on the ride.
    """
    result = await db.execute(
        select(func.count(Booking.id)).where(
            Booking.ride_id == ride_id,
            Booking.status.in_(SEAT_HOLDING_STATUSES)
        )
    )
    return result.scalar()
