"""
Ride API Endpoints.

Drivers publish rides and drive their lifecycle; passengers join and leave.
"""

from datetime import date, time
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.db.session import get_db
from rideshare.app.core.dependencies import get_current_user
from rideshare.app.core.guards import require_driver
from rideshare.app.models.enums import BookingStatus
from rideshare.app.models.user import User
from rideshare.app.schemas.ride import (
    BookingResponse, BookingReview, JoinRideRequest, JoinRideResponse,
    RideCreate, RideDetailResponse, RideListItem, RideResponse, RideStatusUpdate
)
from rideshare.app.services import booking_coordinator, ride_catalog, ride_lifecycle

router = APIRouter(prefix="/rides", tags=["Rides"])


@router.post("", response_model=RideResponse, status_code=status.HTTP_201_CREATED)
async def create_ride(
    ride_data: RideCreate = Body(...),
    driver: User = Depends(require_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Publish a new ride (Driver only).

    Validates:
    - Departure in the future, arrival after departure
    - Vehicle capacity within the vehicle-type ceiling (bike 2, car 4)
    - Available seats within vehicle capacity
    """
    ride = await ride_catalog.create_ride(db, driver.id, ride_data)
    return RideResponse.model_validate(ride)


@router.get("", response_model=List[RideListItem])
async def list_rides(
    on_date: Optional[date] = Query(None, alias="date", description="Departure day (YYYY-MM-DD)"),
    start_time: Optional[time] = Query(None, description="Window start within the day (HH:MM)"),
    end_time: Optional[time] = Query(None, description="Window end within the day (HH:MM)"),
    db: AsyncSession = Depends(get_db)
):
    """
    List scheduled rides, earliest departure first.
    """
    rides = await ride_catalog.list_scheduled_rides(db, on_date, start_time, end_time)
    return [RideListItem.model_validate(ride) for ride in rides]


@router.get("/{ride_id}", response_model=RideDetailResponse)
async def get_ride(
    ride_id: int = Path(..., description="Ride ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get a ride with its driver and passengers.
    """
    ride = await ride_catalog.get_ride_detail(db, ride_id)
    return RideDetailResponse.model_validate(ride)


@router.post("/{ride_id}/join", response_model=JoinRideResponse)
async def join_ride(
    ride_id: int = Path(..., description="Ride ID"),
    request: JoinRideRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Reserve a seat on a ride.

    Validates (in order, under the ride lock):
    - Ride exists
    - Caller is not the driver
    - Ride is scheduled
    - A seat is available
    - Caller is not already a passenger

    Actions:
    - Create pending booking
    - Decrement available seats
    """
    result = await booking_coordinator.join_ride(
        db,
        ride_id=ride_id,
        user_id=current_user.id,
        pickup_location=request.pickup_location
    )

    return JoinRideResponse(
        message="Successfully joined the ride",
        ride=RideDetailResponse.model_validate(result.ride) if result.ride else None,
        booking=BookingResponse.model_validate(result.booking)
    )


@router.post("/{ride_id}/leave", response_model=BookingResponse)
async def leave_ride(
    ride_id: int = Path(..., description="Ride ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel the caller's booking and release the seat.
    """
    booking = await booking_coordinator.leave_ride(db, ride_id, current_user.id)
    return BookingResponse.model_validate(booking)


@router.patch("/{ride_id}/bookings/{booking_id}", response_model=BookingResponse)
async def review_booking(
    ride_id: int = Path(..., description="Ride ID"),
    booking_id: int = Path(..., description="Booking ID"),
    review: BookingReview = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Accept or reject a pending booking (ride's driver only).

    Rejecting releases the seat.
    """
    booking = await booking_coordinator.review_booking(
        db,
        ride_id=ride_id,
        booking_id=booking_id,
        driver_id=current_user.id,
        decision=BookingStatus(review.status)
    )
    return BookingResponse.model_validate(booking)


@router.patch("/{ride_id}/status", response_model=RideResponse)
async def update_ride_status(
    ride_id: int = Path(..., description="Ride ID"),
    update: RideStatusUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Change ride status (ride's driver only).

    Allowed: scheduled -> in_progress | cancelled, in_progress -> completed | cancelled.
    Completing a ride credits the driver and every passenger with a completed ride.
    """
    ride = await ride_lifecycle.set_ride_status(db, ride_id, current_user.id, update.status)
    return RideResponse.model_validate(ride)
