"""
Passenger booking database model.

At most one non-cancelled booking may exist per (ride, user) pair,
enforced by a partial unique index.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, JSON, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rideshare.app.db.session import Base
from rideshare.app.models.enums import BookingStatus, enum_values


class Booking(Base):
    """
    Booking model.
    
    Created together with the seat decrement on its ride, in the same transaction.
    """
    __tablename__ = "ride_bookings"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # References
    ride_id = Column(Integer, ForeignKey('rides.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    
    # Canonical {"address": str, "coordinates": {"lat": float, "lng": float}}
    pickup_location = Column(JSON, nullable=False)
    
    status = Column(
        Enum(BookingStatus, values_callable=enum_values),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True
    )
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    
    ride = relationship("Ride", back_populates="passengers", lazy="raise")
    user = relationship("User", lazy="raise")
    
    # Unique constraint: only one non-cancelled booking per passenger per ride
    __table_args__ = (
        Index(
            'ix_ride_bookings_active_passenger', 'ride_id', 'user_id', unique=True,
            postgresql_where=text("status != 'cancelled'"),
            sqlite_where=text("status != 'cancelled'")
        ),
    )
    
    __mapper_args__ = {"eager_defaults": True}
    
    def __repr__(self):
        return f"<Booking(id={self.id}, ride_id={self.ride_id}, user_id={self.user_id}, status='{self.status.value}')>"
