"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from rideshare.app.api.v1.endpoints import rides, users

router = APIRouter()

# Ride publishing, booking and lifecycle endpoints
router.include_router(rides.router)

# Caller's own rides
router.include_router(users.router)
