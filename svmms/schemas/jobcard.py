"""
Pydantic schemas for JobCard, its tasks and its spare parts.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from svmms.models.jobcard import JobCardStatus, JobCardPriority


class JobCardCreate(BaseModel):
    """Schema for opening a job card."""
    vehicle_id: int
    customer_id: Optional[int] = None
    booking_id: Optional[int] = None
    notes: Optional[str] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    priority: JobCardPriority = JobCardPriority.MEDIUM


class TaskCreate(BaseModel):
    task_name: str = Field(min_length=1)
    task_cost: float = Field(ge=0)


class SparePartCreate(BaseModel):
    part_id: int
    quantity: int = Field(ge=1)


class MechanicAssign(BaseModel):
    mechanic_id: int


class JobCardStatusUpdate(BaseModel):
    status: JobCardStatus


class ProgressUpdate(BaseModel):
    percentComplete: int = Field(ge=0, le=100)
    notes: Optional[str] = None


class JobCard(BaseModel):
    """Schema for job card responses."""
    id: int
    booking_id: Optional[int] = None
    customer_id: int
    vehicle_id: int
    mechanic_id: Optional[int] = None
    status: JobCardStatus
    priority: JobCardPriority
    notes: Optional[str] = None
    estimated_hours: Optional[float] = None
    percent_complete: int = 0
    labor_cost: float = 0
    total_cost: float = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class JobCardDetail(JobCard):
    """Job card with vehicle, customer and mechanic display fields."""
    model: Optional[str] = None
    vin: Optional[str] = None
    year: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    mechanic_name: Optional[str] = None
    service_type: Optional[str] = None


class Task(BaseModel):
    id: int
    jobcard_id: int
    task_name: str
    task_cost: float
    status: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SparePart(BaseModel):
    id: int
    jobcard_id: int
    part_id: int
    quantity: int
    unit_price: float
    total_price: float
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SparePartDetail(SparePart):
    part_name: Optional[str] = None
    part_number: Optional[str] = None


class JobCardMessage(BaseModel):
    message: str
    jobcard: JobCard


class JobCardEnvelope(BaseModel):
    jobcard: JobCardDetail


class JobCardWithLines(BaseModel):
    jobcard: JobCardDetail
    tasks: list[Task]
    parts: list[SparePartDetail]


class JobCardList(BaseModel):
    jobcards: list[JobCardDetail]


class TaskMessage(BaseModel):
    message: str
    task: Task


class SparePartMessage(BaseModel):
    message: str
    sparePart: SparePart
