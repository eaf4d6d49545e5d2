"""
Payment routes.

Payments are simulated: paying settles the invoice and the payment record is
read back from the invoice itself.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
from typing import Optional

from svmms.auth import CurrentUser, ALL_ROLES, ensure_owner, customer_scope, get_current_user, require_roles
from svmms.database import get_db
from svmms.models.invoice import Invoice
from svmms.models.user import UserRole
from svmms.schemas.invoice import Invoice as InvoiceSchema
from svmms.schemas.payment import (
    MockPaymentResult,
    Payment,
    PaymentHistory,
    PaymentResult,
    ProcessPaymentRequest,
    RefundRequest,
    RefundResult,
)
from svmms.routers.invoices import mock_payment
from svmms.services import invoices as invoice_service

router = APIRouter(prefix="/payments", tags=["payments"], dependencies=[Depends(get_current_user)])

# Same handler as POST /invoices/mock
router.post("/mock", response_model=MockPaymentResult)(mock_payment)


@router.post("/process", response_model=PaymentResult)
async def process_payment(
    payload: ProcessPaymentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Process a payment for an invoice.
    """
    invoice = await invoice_service.pay_invoice(
        db, payload.invoiceId, payload.method, customer_id=customer_scope(current_user)
    )
    payment = Payment(
        id=invoice_service.payment_id(invoice.id),
        invoice_id=invoice.id,
        amount=payload.amount,
        method=payload.method,
        status="completed",
        processed_at=invoice.paid_at or datetime.now(timezone.utc),
    )
    return {
        "message": "Payment processed successfully",
        "payment": payment,
        "invoice": InvoiceSchema.model_validate(invoice),
    }


@router.get("/history/{invoice_id}", response_model=PaymentHistory)
async def get_payment_history(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Get the payments recorded against an invoice.
    """
    invoice = await db.get(Invoice, invoice_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found"
        )
    ensure_owner(current_user, invoice.customer_id)
    return {"paymentHistory": invoice_service.payment_history(invoice)}


@router.post("/refund/{payment_id}", response_model=RefundResult)
async def refund_payment(
    payment_id: str,
    payload: Optional[RefundRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    """
    Refund a payment.
    """
    reason = payload.reason.strip() if payload and payload.reason else None
    refund = await invoice_service.refund_payment(db, payment_id, reason)
    return {"message": "Payment refunded successfully", "refund": refund}
