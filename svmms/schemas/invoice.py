"""
Pydantic schemas for Invoice.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from svmms.models.invoice import InvoiceStatus
from svmms.schemas.common import Pagination
from svmms.schemas.jobcard import SparePartDetail, Task


class InvoiceCreate(BaseModel):
    """Schema for creating an invoice. ``grand_total`` is computed when omitted."""
    jobcard_id: int
    customer_id: int
    parts_total: float = Field(ge=0)
    labor_total: float = Field(ge=0)
    grand_total: Optional[float] = Field(default=None, ge=0)


class PaymentStatusUpdate(BaseModel):
    status: InvoiceStatus
    payment_method: Optional[str] = None


class Invoice(BaseModel):
    """Schema for invoice responses."""
    id: int
    jobcard_id: int
    customer_id: int
    parts_total: float
    labor_total: float
    grand_total: float
    status: InvoiceStatus
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InvoiceSummary(Invoice):
    """Invoice row in a listing, with vehicle and customer display fields."""
    customer_name: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = None


class InvoiceDetail(InvoiceSummary):
    """Invoice with everything needed to print it."""
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    booking_id: Optional[int] = None
    completed_at: Optional[datetime] = None


class InvoiceDocument(BaseModel):
    invoice: InvoiceDetail
    parts: list[SparePartDetail]
    tasks: list[Task]


class InvoiceMessage(BaseModel):
    message: str
    invoice: Invoice


class InvoiceList(BaseModel):
    invoices: list[InvoiceSummary]
    pagination: Pagination


class OverdueResult(BaseModel):
    message: str
    invoices: list[Invoice]
