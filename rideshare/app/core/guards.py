"""
Capability guards for ride endpoints.
"""

from fastapi import Depends
from rideshare.app.core.dependencies import get_current_user
from rideshare.app.core.exceptions import NotADriverError
from rideshare.app.models.user import User


def require_driver(current_user: User = Depends(get_current_user)) -> User:
    """
    Dependency for driver-only endpoints.
    
    Usage:
        @router.post("/rides")
        async def create_ride(driver: User = Depends(require_driver)):
            ...
    
    Raises:
        NotADriverError: 403 if the caller cannot publish rides
    """
    if not current_user.is_driver:
        raise NotADriverError()
    
    return current_user
