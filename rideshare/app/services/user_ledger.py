"""
User ledger.

Users belong to the account service; rides read them and bump the
completed-ride counters.
"""

from typing import Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from rideshare.app.models.user import User


COUNTER_COLUMNS = {
    "completed_rides_as_driver": User.completed_rides_as_driver,
    "completed_rides_as_passenger": User.completed_rides_as_passenger,
}


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    """Get a user by id."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def increment_counter(
    db: AsyncSession,
    user_id: int,
    counter: str,
    delta: int = 1
) -> None:
    """
    Increment a completed-ride counter in place.
    
    Args:
        db: Database session (transaction managed by caller)
        user_id: User to credit
        counter: One of COUNTER_COLUMNS
        delta: Amount to add
    """
    column = COUNTER_COLUMNS[counter]
    
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(**{counter: column + delta})
    )


async def increment_counters(
    db: AsyncSession,
    user_ids: Iterable[int],
    counter: str
) -> None:
    """
    Increment a counter once per occurrence of each user id.
    """
    for user_id in user_ids:
        await increment_counter(db, user_id, counter)
