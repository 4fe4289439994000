"""
Ride and booking Pydantic schemas.

Defines request and response models for the rides API.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from rideshare.app.models.enums import BookingStatus, RideStatus, VehicleType


class Coordinates(BaseModel):
    """Latitude/longitude pair."""
    lat: float = Field(..., ge=-90, le=90, description="Latitude")
    lng: float = Field(..., ge=-180, le=180, description="Longitude")


class Location(BaseModel):
    """Street address plus coordinates."""
    address: str = Field(..., min_length=1, max_length=500, description="Street address")
    coordinates: Coordinates

    def to_document(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "coordinates": {"lat": self.coordinates.lat, "lng": self.coordinates.lng},
        }


class RideCreate(BaseModel):
    """
    Schema for publishing a ride.

    Capacity and seat ranges are checked by the ride catalog so that
    out-of-range values report a ride error rather than a schema error.
    """
    start_location: Location
    end_location: Location
    departure_time: datetime
    arrival_time: datetime
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(None, max_length=2000)
    vehicle_type: VehicleType
    vehicle_model: str = Field(..., min_length=1, max_length=100)
    vehicle_color: str = Field(..., min_length=1, max_length=50)
    license_plate: str = Field(..., min_length=1, max_length=50)
    vehicle_capacity: int
    available_seats: Optional[int] = Field(None, description="Defaults to vehicle capacity")


class DriverSummary(BaseModel):
    """Public driver details shown on a ride."""
    id: int
    name: str
    email: str
    phone: str
    rating: float

    class Config:
        from_attributes = True


class PassengerSummary(BaseModel):
    """Public passenger details shown on a ride."""
    id: int
    name: str
    email: str
    phone: str

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    """Schema for booking response."""
    id: int
    ride_id: int
    user_id: int
    pickup_location: Dict[str, Any]
    status: BookingStatus
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingWithUserResponse(BookingResponse):
    """Booking with the passenger's details."""
    user: PassengerSummary


class RideResponse(BaseModel):
    """Schema for ride response."""
    id: int
    driver_id: int
    start_location: Dict[str, Any]
    end_location: Dict[str, Any]
    departure_time: datetime
    arrival_time: datetime
    price: Decimal
    description: Optional[str]
    vehicle_type: VehicleType
    vehicle_model: str
    vehicle_color: str
    license_plate: str
    vehicle_capacity: int
    available_seats: int
    status: RideStatus
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RideListItem(RideResponse):
    """Ride in a listing, with its driver."""
    driver: DriverSummary


class RideDetailResponse(RideResponse):
    """Ride with its driver and all bookings."""
    driver: DriverSummary
    passengers: List[BookingWithUserResponse] = []


class JoinRideRequest(BaseModel):
    """
    Schema for joining a ride.

    pickup_location accepts either
    {"latitude", "longitude", "address"} or {"coordinates": {"lat", "lng"}, "address"}.
    It is normalized by the booking coordinator.
    """
    pickup_location: Any = None


class JoinRideResponse(BaseModel):
    """Response after joining a ride."""
    message: str
    ride: Optional[RideDetailResponse]
    booking: BookingResponse


class RideStatusUpdate(BaseModel):
    """Schema for changing ride status. Validated against the transition table."""
    status: str


class BookingReview(BaseModel):
    """Driver decision on a pending booking."""
    status: Literal["accepted", "rejected"]
