"""
Vehicle model for database.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from svmms.database import Base


class Vehicle(Base):
    """Vehicle database model."""

    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    vin = Column(String(17), unique=True, nullable=False, index=True)
    make = Column(String(50), nullable=True)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    engine_type = Column(String(50), nullable=True)
    registration_number = Column(String(20), unique=True, nullable=True)
    mileage = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship("User", back_populates="vehicles")
