"""
Ride status transition table.

    scheduled   -> in_progress, completed, cancelled
    in_progress -> completed, cancelled
    cancelled   -> scheduled
    completed   -> (terminal)
"""

from typing import Any, Dict, FrozenSet

from rideshare.app.core.exceptions import InvalidStatusError, InvalidStatusTransitionError
from rideshare.app.models.enums import RideStatus


ALLOWED_TRANSITIONS: Dict[RideStatus, FrozenSet[RideStatus]] = {
    RideStatus.SCHEDULED: frozenset({RideStatus.IN_PROGRESS, RideStatus.COMPLETED, RideStatus.CANCELLED}),
    RideStatus.IN_PROGRESS: frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED}),
    RideStatus.CANCELLED: frozenset({RideStatus.SCHEDULED}),
    RideStatus.COMPLETED: frozenset(),
}


class RideTransitions:
    
    @staticmethod
    def parse_status(value: Any) -> RideStatus:
        """
        Parse a requested status value.
        
        Raises:
            InvalidStatusError: If value is not a declared ride status.
        """
        if isinstance(value, RideStatus):
            return value
        try:
            return RideStatus(value)
        except ValueError:
            raise InvalidStatusError(value)
    
    @staticmethod
    def ensure_allowed(current: RideStatus, requested: RideStatus) -> None:
        """
        Raises:
            InvalidStatusTransitionError: If current -> requested is not in the table.
        """
        if requested not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransitionError(current.value, requested.value)
