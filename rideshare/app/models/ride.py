"""
Ride database model.

A ride is a driver-published trip offer with a fixed seat capacity.
available_seats is the seat counter guarded by the booking coordinator.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, ForeignKey, DateTime, Enum, JSON, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rideshare.app.db.session import Base
from rideshare.app.models.enums import RideStatus, VehicleType, enum_values


class Ride(Base):
    """
    Ride model.
    
    Locations are stored as {"address": str, "coordinates": {"lat": float, "lng": float}}.
    """
    __tablename__ = "rides"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Ownership - Ride belongs to its driver
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    
    # Route and schedule
    start_location = Column(JSON, nullable=False)
    end_location = Column(JSON, nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False, index=True)
    arrival_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    
    # Vehicle
    vehicle_type = Column(Enum(VehicleType, values_callable=enum_values), nullable=False)
    vehicle_model = Column(String(100), nullable=False)
    vehicle_color = Column(String(50), nullable=False)
    license_plate = Column(String(50), nullable=False)
    
    # Capacity
    vehicle_capacity = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    
    # Status
    status = Column(
        Enum(RideStatus, values_callable=enum_values),
        default=RideStatus.SCHEDULED,
        nullable=False,
        index=True
    )
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    
    driver = relationship("User", lazy="raise")
    passengers = relationship(
        "Booking",
        back_populates="ride",
        lazy="raise",
        order_by="Booking.id"
    )
    
    __table_args__ = (
        CheckConstraint('vehicle_capacity >= 1', name='ck_rides_capacity_positive'),
        CheckConstraint('available_seats >= 0', name='ck_rides_seats_non_negative'),
        CheckConstraint('available_seats <= vehicle_capacity', name='ck_rides_seats_within_capacity'),
        CheckConstraint('price >= 0', name='ck_rides_price_non_negative'),
    )
    
    __mapper_args__ = {"eager_defaults": True}
    
    def __repr__(self):
        return f"<Ride(id={self.id}, driver_id={self.driver_id}, status='{self.status.value}', seats={self.available_seats}/{self.vehicle_capacity})>"
