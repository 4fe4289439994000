"""
Vehicle capacity policy.

Two-wheeled vehicles carry at most two riders, cars at most four.
Ceilings are configurable through settings.
"""

from typing import Optional

from rideshare.app.core.config import settings
from rideshare.app.core.exceptions import InvalidRideError
from rideshare.app.models.enums import VehicleType


def max_capacity_for(vehicle_type: VehicleType) -> int:
    """Seat ceiling for a vehicle class."""
    if vehicle_type == VehicleType.BIKE:
        return settings.max_capacity_bike
    return settings.max_capacity_car


def resolve_seats(vehicle_type: VehicleType, vehicle_capacity: int, available_seats: Optional[int]) -> int:
    """
    Validate declared capacity and return the initial seat counter.
    
    available_seats defaults to the full vehicle capacity.
    
    Raises:
        InvalidRideError: If capacity exceeds the vehicle ceiling or seats exceed capacity.
    """
    ceiling = max_capacity_for(vehicle_type)
    
    if vehicle_capacity < 1:
        raise InvalidRideError("Vehicle capacity must be at least 1")
    
    if vehicle_capacity > ceiling:
        raise InvalidRideError(f"Vehicle capacity cannot exceed {ceiling} for {vehicle_type.value}s")
    
    if available_seats is None:
        return vehicle_capacity
    
    if available_seats < 1:
        raise InvalidRideError("Available seats must be at least 1")
    
    if available_seats > vehicle_capacity:
        raise InvalidRideError("Available seats cannot exceed vehicle capacity")
    
    return available_seats
