"""
Audit logging service for ride and booking actions.

Audit rows are written inside the caller's transaction, so they commit
or roll back together with the action they describe.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from rideshare.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    RIDE_CREATED = "RIDE_CREATED"
    RIDE_STATUS_CHANGED = "RIDE_STATUS_CHANGED"
    RIDE_JOINED = "RIDE_JOINED"
    RIDE_LEFT = "RIDE_LEFT"
    BOOKING_ACCEPTED = "BOOKING_ACCEPTED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    RIDE_COMPLETION_APPLIED = "RIDE_COMPLETION_APPLIED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    ride_id: Optional[int] = None,
    booking_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit event to the current transaction.
    
    Args:
        db: Database session (transaction managed by caller)
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action, None for system actions
        ride_id: Ride the action applies to
        booking_id: Booking the action applies to (if applicable)
        metadata: Additional context as JSON
        
    Returns:
        Pending AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        ride_id=ride_id,
        booking_id=booking_id,
        meta_data=metadata
    )
    
    db.add(audit_log)
    await db.flush()
    
    return audit_log


async def get_ride_audit_trail(
    db: AsyncSession,
    ride_id: int,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve the audit trail of a ride, most recent first.
    """
    query = select(AuditLog).where(AuditLog.ride_id == ride_id).order_by(desc(AuditLog.id))
    
    if action:
        query = query.where(AuditLog.action == action)
    
    result = await db.execute(query.limit(limit))
    return result.scalars().all()
