"""
Invoice model for database.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from svmms.database import Base
from svmms.models.user import enum_values
import enum


class InvoiceStatus(str, enum.Enum):
    """Invoice payment status enumeration."""
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    OVERDUE = "overdue"

    def can_transition_to(self, target: "InvoiceStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    InvoiceStatus.UNPAID: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PAID},
    InvoiceStatus.PAID: {InvoiceStatus.REFUNDED},
    InvoiceStatus.REFUNDED: set(),
}


class Invoice(Base):
    """Invoice database model, 1:1 with a completed job card."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    # Removed only with its customer; routes refuse to delete an invoiced vehicle or job card
    jobcard_id = Column(Integer, ForeignKey("jobcards.id", ondelete="CASCADE"), unique=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parts_total = Column(Float, nullable=False, default=0)
    labor_total = Column(Float, nullable=False, default=0)
    grand_total = Column(Float, nullable=False, default=0)
    status = Column(
        SQLEnum(InvoiceStatus, name="invoice_status", values_callable=enum_values),
        default=InvoiceStatus.UNPAID,
        nullable=False,
        index=True,
    )
    payment_method = Column(String(30), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
