"""
Ride completion event model.

Append-only log of completed rides. The unique ride_id makes the
completed-ride counter fan-out happen at most once per ride.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, JSON
from sqlalchemy.sql import func
from rideshare.app.db.session import Base


class RideCompletionEvent(Base):
    """
    A "ride completed" fact, applied to user counters by the completion reducer.
    """
    __tablename__ = "ride_completion_events"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey('rides.id'), nullable=False, unique=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    
    # User ids credited with a completed ride as passenger
    passenger_ids = Column(JSON, nullable=False, default=list)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=True)
    
    def __repr__(self):
        return f"<RideCompletionEvent(ride_id={self.ride_id}, passengers={len(self.passenger_ids or [])}, applied={self.applied_at is not None})>"
