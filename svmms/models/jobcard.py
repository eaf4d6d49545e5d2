"""
Job card models for database.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from svmms.database import Base
from svmms.models.user import enum_values
import enum


class JobCardStatus(str, enum.Enum):
    """Job card status enumeration."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JobCardPriority(str, enum.Enum):
    """Job card priority enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class JobCard(Base):
    """Job card database model. One per booking once work begins."""

    __tablename__ = "jobcards"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=True)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False)
    mechanic_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(
        SQLEnum(JobCardStatus, name="jobcard_status", values_callable=enum_values),
        default=JobCardStatus.PENDING,
        nullable=False,
    )
    priority = Column(
        SQLEnum(JobCardPriority, name="jobcard_priority", values_callable=enum_values),
        default=JobCardPriority.MEDIUM,
        nullable=False,
    )
    notes = Column(Text, nullable=True)
    estimated_hours = Column(Float, nullable=True)
    percent_complete = Column(Integer, nullable=False, default=0)
    labor_cost = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    tasks = relationship(
        "JobCardTask", back_populates="jobcard", cascade="all, delete-orphan", passive_deletes=True
    )
    spareparts = relationship(
        "JobCardSparePart", back_populates="jobcard", cascade="all, delete-orphan", passive_deletes=True
    )


class JobCardTask(Base):
    """Labor line on a job card."""

    __tablename__ = "jobcard_tasks"

    id = Column(Integer, primary_key=True, index=True)
    jobcard_id = Column(Integer, ForeignKey("jobcards.id", ondelete="CASCADE"), nullable=False, index=True)
    task_name = Column(String(200), nullable=False)
    task_cost = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    jobcard = relationship("JobCard", back_populates="tasks")


class JobCardSparePart(Base):
    """Part consumed by a job card, priced at the moment it was used."""

    __tablename__ = "jobcard_spareparts"

    id = Column(Integer, primary_key=True, index=True)
    jobcard_id = Column(Integer, ForeignKey("jobcards.id", ondelete="CASCADE"), nullable=False, index=True)
    part_id = Column(Integer, ForeignKey("parts.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    jobcard = relationship("JobCard", back_populates="spareparts")
