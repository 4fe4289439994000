"""
User database model.

Users are owned by the account service; rides only reference them and
maintain the completed-ride counters.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float
from sqlalchemy.sql import func
from rideshare.app.db.session import Base


class User(Base):
    """
    User model.
    
    A user with is_driver=True may publish rides. Any user may book seats
    on rides driven by someone else.
    """
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=False)
    is_driver = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, default=0, nullable=False)
    
    # Completed-ride counters, only written by the ride completion reducer
    completed_rides_as_driver = Column(Integer, default=0, nullable=False)
    completed_rides_as_passenger = Column(Integer, default=0, nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', is_driver={self.is_driver})>"
