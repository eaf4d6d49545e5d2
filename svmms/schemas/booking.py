"""
Pydantic schemas for Booking.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional
from svmms.models.booking import BookingStatus
from svmms.schemas.common import Pagination
from svmms.schemas.jobcard import JobCard

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


class BookingCreate(BaseModel):
    """Schema for a customer booking a service."""
    vehicle_id: int
    service_type: str = Field(min_length=1)
    booking_date: date
    booking_time: str = Field(pattern=TIME_PATTERN)
    notes: Optional[str] = None
    estimated_cost: float = Field(default=0, ge=0)


class NewDateTime(BaseModel):
    date: date
    time: str = Field(pattern=TIME_PATTERN)


class BookingReschedule(BaseModel):
    newDateTime: NewDateTime
    reason: Optional[str] = None


class BookingCancel(BaseModel):
    reason: Optional[str] = None


class BookingAssign(BaseModel):
    mechanicId: int


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class Booking(BaseModel):
    """Schema for booking responses."""
    id: int
    customer_id: int
    vehicle_id: int
    mechanic_id: Optional[int] = None
    service_type: str
    booking_date: date
    booking_time: str
    status: BookingStatus
    notes: Optional[str] = None
    estimated_cost: float = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingDetail(Booking):
    """Booking with vehicle and customer display fields."""
    make: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = None
    year: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None


class BookingEnvelope(BaseModel):
    booking: BookingDetail


class BookingMessage(BaseModel):
    message: str
    booking: Booking


class BookingAssignment(BaseModel):
    message: str
    booking: Booking
    jobcard: JobCard


class BookingList(BaseModel):
    bookings: list[BookingDetail]
    pagination: Optional[Pagination] = None
