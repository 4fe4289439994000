"""
Booking transaction coordinator.

Owns every write to a ride's seat counter:
- join_ride takes a seat and records a pending booking
- leave_ride cancels the caller's booking and returns the seat
- review_booking lets the driver accept or reject a pending booking

Each runs as one atomic unit under the ride lock (see ride_locking).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from rideshare.app.core.exceptions import (
    AlreadyBookedError,
    BookingNotFoundError,
    BookingStateError,
    InvalidStatusError,
    NoSeatsAvailableError,
    NotAuthorizedError,
    RideNotFoundError,
    RideUnavailableError,
    SeatCounterConflictError,
    SelfJoinForbiddenError,
)
from rideshare.app.domain.booking.pickup_location import normalize_pickup_location
from rideshare.app.models.booking import Booking
from rideshare.app.models.enums import BookingStatus, RideStatus, RELEASABLE_STATUSES
from rideshare.app.models.ride import Ride
from rideshare.app.services import passenger_ledger, ride_ledger
from rideshare.app.services.audit import log_event, AuditAction
from rideshare.app.services.ride_locking import run_ride_transaction

logger = logging.getLogger(__name__)


@dataclass
class JoinRideResult:
    """Result of a successful join."""
    booking: Booking
    ride: Optional[Ride] = None  # None when the post-commit read failed


async def join_ride(
    db: AsyncSession,
    ride_id: int,
    user_id: int,
    pickup_location: Any
) -> JoinRideResult:
    """
    Reserve one seat on a ride for the caller.

    The pickup location is normalized before any lock is taken. Then, under
    the ride lock and in this order:
    1. Ride exists
    2. Caller is not the driver
    3. Ride is scheduled
    4. At least one seat is available
    5. Caller has no non-cancelled booking on the ride

    The booking insert and the seat decrement commit together or not at all.

    Args:
        db: Database session
        ride_id: Ride to join
        user_id: Authenticated caller
        pickup_location: Raw pickup location (flat or nested coordinates)

    Returns:
        JoinRideResult with the new booking and the refreshed ride

    Raises:
        InvalidPickupLocationError, RideNotFoundError, SelfJoinForbiddenError,
        RideUnavailableError, NoSeatsAvailableError, AlreadyBookedError,
        StorageUnavailableError
    """
    location = normalize_pickup_location(pickup_location)

    async def reserve_seat() -> Booking:
        ride = await ride_ledger.get_ride_for_update(db, ride_id)

        if not ride:
            raise RideNotFoundError(ride_id)

        if ride.driver_id == user_id:
            raise SelfJoinForbiddenError()

        if ride.status != RideStatus.SCHEDULED:
            raise RideUnavailableError()

        if ride.available_seats < 1:
            raise NoSeatsAvailableError()

        if await passenger_ledger.find_active_booking(db, ride_id, user_id):
            raise AlreadyBookedError()

        try:
            booking = await passenger_ledger.create_booking(
                db,
                ride_id=ride_id,
                user_id=user_id,
                pickup_location=location.to_document()
            )
        except IntegrityError:
            raise AlreadyBookedError()

        # Trusted under the lock that just confirmed the preconditions
        if not await ride_ledger.decrement_available_seats(db, ride_id):
            raise NoSeatsAvailableError()

        await log_event(
            db=db,
            action=AuditAction.RIDE_JOINED,
            actor_id=user_id,
            ride_id=ride_id,
            booking_id=booking.id,
            metadata={"pickup_address": location.address}
        )

        return booking

    booking = await run_ride_transaction(db, ride_id, reserve_seat)
    logger.info("User %s joined ride %s (booking %s)", user_id, ride_id, booking.id)

    return JoinRideResult(booking=booking, ride=await _load_ride_detail(db, ride_id))


async def _load_ride_detail(db: AsyncSession, ride_id: int) -> Optional[Ride]:
    # Best effort: the booking is already committed
    try:
        return await ride_ledger.get_ride_detail(db, ride_id)
    except Exception:
        logger.warning("Could not reload ride %s after commit", ride_id, exc_info=True)
        return None


async def leave_ride(db: AsyncSession, ride_id: int, user_id: int) -> Booking:
    """
    Cancel the caller's pending or accepted booking and return its seat.

    Raises:
        RideNotFoundError: If the ride does not exist
        RideUnavailableError: If the ride is no longer scheduled
        BookingNotFoundError: If the caller holds no releasable booking
        SeatCounterConflictError: If the seat cannot be returned without exceeding capacity
    """
    async def release_seat() -> Booking:
        ride = await ride_ledger.get_ride_for_update(db, ride_id)

        if not ride:
            raise RideNotFoundError(ride_id)

        if ride.status != RideStatus.SCHEDULED:
            raise RideUnavailableError("Bookings can only be cancelled before departure")

        booking = await passenger_ledger.find_active_booking(db, ride_id, user_id)
        if not booking or booking.status not in RELEASABLE_STATUSES:
            raise BookingNotFoundError("You have no active booking on this ride")

        previous_status = booking.status
        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.now(timezone.utc)
        await db.flush()

        if not await ride_ledger.increment_available_seats(db, ride_id):
            raise SeatCounterConflictError(ride_id)

        await log_event(
            db=db,
            action=AuditAction.RIDE_LEFT,
            actor_id=user_id,
            ride_id=ride_id,
            booking_id=booking.id,
            metadata={"previous_status": previous_status.value}
        )

        return booking

    booking = await run_ride_transaction(db, ride_id, release_seat)
    logger.info("User %s left ride %s (booking %s)", user_id, ride_id, booking.id)

    return booking


async def review_booking(
    db: AsyncSession,
    ride_id: int,
    booking_id: int,
    driver_id: int,
    decision: BookingStatus
) -> Booking:
    """
    Accept or reject a pending booking (driver only).

    A rejected booking returns its seat to the ride in the same transaction.

    Raises:
        InvalidStatusError, RideNotFoundError, NotAuthorizedError, BookingNotFoundError,
        BookingStateError, SeatCounterConflictError
    """
    if decision not in (BookingStatus.ACCEPTED, BookingStatus.REJECTED):
        raise InvalidStatusError(getattr(decision, "value", decision))

    async def apply_decision() -> Booking:
        ride = await ride_ledger.get_ride_for_update(db, ride_id)

        if not ride:
            raise RideNotFoundError(ride_id)

        if ride.driver_id != driver_id:
            raise NotAuthorizedError()

        booking = await passenger_ledger.get_booking(db, booking_id, ride_id)
        if not booking:
            raise BookingNotFoundError()

        if booking.status != BookingStatus.PENDING:
            raise BookingStateError(f"Only pending bookings can be reviewed, current status: {booking.status.value}")

        booking.status = decision
        await db.flush()

        if decision == BookingStatus.REJECTED:
            if not await ride_ledger.increment_available_seats(db, ride_id):
                raise SeatCounterConflictError(ride_id)

        await log_event(
            db=db,
            action=AuditAction.BOOKING_ACCEPTED if decision == BookingStatus.ACCEPTED else AuditAction.BOOKING_REJECTED,
            actor_id=driver_id,
            ride_id=ride_id,
            booking_id=booking.id
        )

        return booking

    booking = await run_ride_transaction(db, ride_id, apply_decision)
    logger.info("Driver %s %s booking %s on ride %s", driver_id, decision.value, booking_id, ride_id)

    return booking
