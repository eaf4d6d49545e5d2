"""
Pydantic schemas for Vehicle.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional
from svmms.schemas.common import Pagination


class VehicleBase(BaseModel):
    """Base vehicle schema with common fields."""
    vin: str = Field(min_length=1, max_length=17)
    make: Optional[str] = None
    model: str = Field(min_length=1)
    year: int = Field(ge=1900, le=2100)
    engine_type: Optional[str] = None
    registration_number: Optional[str] = None
    mileage: int = Field(default=0, ge=0)

    @field_validator("vin", "model", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class VehicleCreate(VehicleBase):
    """Schema for creating a vehicle. Staff must name the owner."""
    customer_id: Optional[int] = None


class VehicleUpdate(BaseModel):
    """Schema for updating a vehicle."""
    make: Optional[str] = None
    model: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    engine_type: Optional[str] = None
    registration_number: Optional[str] = None
    mileage: Optional[int] = Field(default=None, ge=0)


class Vehicle(VehicleBase):
    """Schema for vehicle responses."""
    id: int
    customer_id: int
    vin: str
    model: str
    year: int
    mileage: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VehicleDetail(Vehicle):
    """Vehicle with its owner's contact fields."""
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None


class VehicleEnvelope(BaseModel):
    vehicle: VehicleDetail


class VehicleMessage(BaseModel):
    message: str
    vehicle: Vehicle


class VehicleList(BaseModel):
    vehicles: list[VehicleDetail]
    pagination: Optional[Pagination] = None


class ServiceHistoryEntry(BaseModel):
    """Job card performed on a vehicle, with its billing outcome."""
    id: int
    booking_id: Optional[int] = None
    mechanic_id: Optional[int] = None
    mechanic_name: Optional[str] = None
    status: str
    labor_cost: float
    total_cost: float
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    grand_total: Optional[float] = None
    payment_status: Optional[str] = None


class VehicleHistory(BaseModel):
    history: list[ServiceHistoryEntry]
