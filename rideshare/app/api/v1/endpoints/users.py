"""
Caller's own rides.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rideshare.app.db.session import get_db
from rideshare.app.core.dependencies import get_current_user
from rideshare.app.models.user import User
from rideshare.app.schemas.ride import RideDetailResponse
from rideshare.app.services import ride_catalog

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me/rides", response_model=List[RideDetailResponse])
async def list_my_rides(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List rides the caller drives or has booked, latest departure first.
    """
    rides = await ride_catalog.list_user_rides(db, current_user.id)
    return [RideDetailResponse.model_validate(ride) for ride in rides]
