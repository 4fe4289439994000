"""
Ride locking service.

Serializes every write to a ride's seat counter and booking set.

Two layers cooperate:
- an in-process asyncio.Lock per ride id, so concurrent requests handled by
  this worker queue up in lock-acquisition order (and engines without row
  locks, such as SQLite, are still serialized)
- SELECT ... FOR UPDATE on the ride row (see ride_ledger.get_ride_for_update),
  which serializes workers in other processes on PostgreSQL

Callers on different rides never block each other.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from rideshare.app.core.config import settings
from rideshare.app.core.exceptions import AppException, StorageTimeoutError, StorageUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RideLockRegistry:
    """
    Per-ride asyncio locks, created on demand and dropped once unused.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._holders: Dict[int, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, ride_id: int):
        """Hold the exclusive lock for a ride for the duration of the block."""
        lock = self._locks.setdefault(ride_id, asyncio.Lock())
        self._holders[ride_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._holders[ride_id] -= 1
            if self._holders[ride_id] == 0:
                del self._holders[ride_id]
                self._locks.pop(ride_id, None)

    def is_locked(self, ride_id: int) -> bool:
        lock = self._locks.get(ride_id)
        return lock is not None and lock.locked()


ride_locks = RideLockRegistry()


async def rollback_quietly(db: AsyncSession) -> None:
    """
    Roll back the session, logging (not raising) a failed rollback.

    The caller re-raises the error that caused the rollback.
    """
    try:
        await db.rollback()
    except Exception:
        logger.exception("Rollback failed")


def _is_storage_failure(exc: Exception) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


async def run_ride_transaction(
    db: AsyncSession,
    ride_id: int,
    work: Callable[[], Awaitable[T]],
    timeout: float = None
) -> T:
    """
    Run work() and commit, as one atomic unit under the ride lock.

    The timeout covers lock wait, writes and commit. Any failure rolls
    back every write made by work().

    Args:
        db: Database session
        ride_id: Ride whose lock must be held
        work: Coroutine function performing the reads and writes
        timeout: Seconds before the unit is abandoned (defaults to settings)

    Returns:
        Whatever work() returned

    Raises:
        AppException: Precondition failures raised by work()
        StorageTimeoutError: If the unit did not finish in time
        StorageUnavailableError: On connection failures from the storage layer
    """
    async def unit() -> T:
        async with ride_locks.hold(ride_id):
            result = await work()
            await db.commit()
            return result

    try:
        return await asyncio.wait_for(unit(), timeout=timeout or settings.storage_timeout_seconds)
    except AppException:
        await rollback_quietly(db)
        raise
    except asyncio.TimeoutError as exc:
        logger.warning("Ride %s transaction timed out", ride_id)
        await rollback_quietly(db)
        raise StorageTimeoutError() from exc
    except Exception as exc:
        await rollback_quietly(db)
        if _is_storage_failure(exc):
            logger.error("Ride %s transaction failed in storage: %s", ride_id, type(exc).__name__)
            raise StorageUnavailableError() from exc
        raise
