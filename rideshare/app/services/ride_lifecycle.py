"""
Ride lifecycle manager.

Drives ride status through the transition table in
domain/rides/ride_transitions.py. Completing a ride appends a
RideCompletionEvent and applies it to the completed-ride counters in the
same transaction as the status write, so the counters move all at once
or not at all.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.core.exceptions import NotAuthorizedError, RideNotFoundError, SeatCounterConflictError
from rideshare.app.domain.rides.ride_transitions import RideTransitions
from rideshare.app.models.enums import BookingStatus, RideStatus, RELEASABLE_STATUSES
from rideshare.app.models.ride import Ride
from rideshare.app.models.ride_completion_event import RideCompletionEvent
from rideshare.app.services import passenger_ledger, ride_ledger, user_ledger
from rideshare.app.services.audit import log_event, AuditAction
from rideshare.app.services.ride_locking import run_ride_transaction

logger = logging.getLogger(__name__)


async def set_ride_status(
    db: AsyncSession,
    ride_id: int,
    user_id: int,
    new_status: Any
) -> Ride:
    """
    Change a ride's status (driver only).

    Requesting the current status is a no-op and returns the ride unchanged.

    Side effects:
    - cancelled: every pending/accepted booking is cancelled and its seat returned
    - completed (from scheduled or in_progress): the completion event is
      recorded and applied to user counters
    - scheduled (from cancelled): the ride reopens with the seats released on cancel

    Raises:
        InvalidStatusError: Unknown status value
        RideNotFoundError: Ride does not exist
        NotAuthorizedError: Caller is not the ride's driver
        InvalidStatusTransitionError: Edge not in the transition table
    """
    requested = RideTransitions.parse_status(new_status)

    async def transition() -> Ride:
        ride = await ride_ledger.get_ride_for_update(db, ride_id)

        if not ride:
            raise RideNotFoundError(ride_id)

        if ride.driver_id != user_id:
            raise NotAuthorizedError()

        previous = ride.status
        if previous == requested:
            logger.info("Ride %s already %s, nothing to do", ride_id, requested.value)
            return ride

        RideTransitions.ensure_allowed(previous, requested)

        ride.status = requested

        if requested == RideStatus.CANCELLED:
            await _release_bookings(db, ride)
        elif requested == RideStatus.COMPLETED:
            ride.completed_at = datetime.now(timezone.utc)
            event = await record_completion(db, ride)
            await apply_completion(db, event)

        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.RIDE_STATUS_CHANGED,
            actor_id=user_id,
            ride_id=ride_id,
            metadata={"from": previous.value, "to": requested.value}
        )

        return ride

    ride = await run_ride_transaction(db, ride_id, transition)
    await db.refresh(ride)

    return ride


async def _release_bookings(db: AsyncSession, ride: Ride) -> None:
    bookings = await passenger_ledger.list_bookings_for_ride(db, ride.id, RELEASABLE_STATUSES)
    now = datetime.now(timezone.utc)

    for booking in bookings:
        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = now

    await db.flush()

    if bookings:
        if not await ride_ledger.increment_available_seats(db, ride.id, len(bookings)):
            raise SeatCounterConflictError(ride.id)
        logger.info("Released %d bookings on cancelled ride %s", len(bookings), ride.id)


async def record_completion(db: AsyncSession, ride: Ride) -> RideCompletionEvent:
    """
    Append the "ride completed" event for a ride.

    Every booking attached to the ride credits its passenger once,
    whatever that booking's status, so a passenger who left and rejoined
    is credited per booking. Pending and accepted bookings advance to
    completed.
    """
    bookings = await passenger_ledger.list_bookings_for_ride(db, ride.id)

    passenger_ids = [booking.user_id for booking in bookings]

    for booking in bookings:
        if booking.status in RELEASABLE_STATUSES:
            booking.status = BookingStatus.COMPLETED

    event = RideCompletionEvent(
        ride_id=ride.id,
        driver_id=ride.driver_id,
        passenger_ids=passenger_ids
    )
    db.add(event)
    await db.flush()  # Unique ride_id: a ride is completed at most once

    return event


async def apply_completion(db: AsyncSession, event: RideCompletionEvent) -> RideCompletionEvent:
    """
    Reduce a completion event into the user counters.

    Applying an already-applied event does nothing.
    """
    if event.applied_at is not None:
        return event

    await user_ledger.increment_counter(db, event.driver_id, "completed_rides_as_driver")
    await user_ledger.increment_counters(db, event.passenger_ids, "completed_rides_as_passenger")

    event.applied_at = datetime.now(timezone.utc)
    await db.flush()

    await log_event(
        db=db,
        action=AuditAction.RIDE_COMPLETION_APPLIED,
        ride_id=event.ride_id,
        metadata={"driver_id": event.driver_id, "passenger_ids": list(event.passenger_ids)}
    )

    logger.info(
        "Applied completion of ride %s: driver %s, %d passenger bookings",
        event.ride_id, event.driver_id, len(event.passenger_ids)
    )

    return event
