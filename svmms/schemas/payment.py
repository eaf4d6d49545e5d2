"""
Pydantic schemas for payments.

There is no payments table: a payment is the paid state of an invoice, exposed
under the identifier ``pay_<invoice id>``.
"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional
from svmms.schemas.invoice import Invoice

PaymentMethod = Literal["cash", "card", "bank_transfer"]


class MockPaymentRequest(BaseModel):
    invoiceId: int
    amount: float = Field(ge=0)
    method: str = Field(min_length=1)


class ProcessPaymentRequest(BaseModel):
    invoiceId: int
    amount: float = Field(gt=0)
    method: PaymentMethod


class RefundRequest(BaseModel):
    reason: Optional[str] = None


class Payment(BaseModel):
    id: str
    invoice_id: int
    amount: float
    method: Optional[str] = None
    status: str
    processed_at: Optional[datetime] = None


class Refund(BaseModel):
    id: str
    payment_id: str
    amount: float
    reason: str
    status: str
    refunded_at: datetime


class MockPaymentResult(BaseModel):
    message: str
    success: bool
    invoice: Invoice


class PaymentResult(BaseModel):
    message: str
    payment: Payment
    invoice: Invoice


class RefundResult(BaseModel):
    message: str
    refund: Refund


class PaymentHistory(BaseModel):
    paymentHistory: list[Payment]
