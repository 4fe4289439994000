"""
Ride and booking enumerations.

Values are the wire and storage representation.
"""

import enum


class RideStatus(str, enum.Enum):
    """Ride lifecycle status."""
    SCHEDULED = "scheduled"  # Published by driver, open for bookings
    IN_PROGRESS = "in_progress"  # Driver has departed
    COMPLETED = "completed"  # Terminal, triggers completed-ride counters
    CANCELLED = "cancelled"  # All bookings released, may be rescheduled


class BookingStatus(str, enum.Enum):
    """Passenger booking status."""
    PENDING = "pending"  # Seat reserved, awaiting driver review
    ACCEPTED = "accepted"  # Driver confirmed the passenger
    REJECTED = "rejected"  # Driver declined, seat released
    COMPLETED = "completed"  # Ride completed
    CANCELLED = "cancelled"  # Passenger left or ride cancelled, seat released


class VehicleType(str, enum.Enum):
    """Vehicle class, bounds the seat capacity of a ride."""
    CAR = "car"
    BIKE = "bike"


# Bookings in these states occupy a seat on the ride
SEAT_HOLDING_STATUSES = (BookingStatus.PENDING, BookingStatus.ACCEPTED, BookingStatus.COMPLETED)

# Bookings in these states can still be released back to the ride
RELEASABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.ACCEPTED)


def enum_values(enum_cls):
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]
