"""
Invoice routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from svmms.auth import CurrentUser, ALL_ROLES, STAFF, customer_scope, ensure_owner, get_current_user, require_roles
from svmms.database import get_db
from svmms.models.invoice import InvoiceStatus
from svmms.models.user import UserRole
from svmms.pagination import PageParams
from svmms.schemas.invoice import (
    Invoice as InvoiceSchema,
    InvoiceCreate,
    InvoiceDocument,
    InvoiceList,
    InvoiceMessage,
    OverdueResult,
    PaymentStatusUpdate,
)
from svmms.schemas.payment import MockPaymentRequest, MockPaymentResult
from svmms.services import invoices as invoice_service

router = APIRouter(prefix="/invoices", tags=["invoices"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=InvoiceMessage, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Raise an invoice for a job card.
    """
    invoice = await invoice_service.create_invoice(db, **payload.model_dump())
    return {"message": "Invoice created successfully", "invoice": InvoiceSchema.model_validate(invoice)}


@router.get("", response_model=InvoiceList)
async def get_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Get all invoices, newest first.
    """
    invoices, pagination = await invoice_service.list_invoices(db, page, invoice_status=status_filter)
    return {"invoices": invoices, "pagination": pagination}


@router.post("/mark-overdue", response_model=OverdueResult)
async def mark_overdue(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    """
    Flag unpaid invoices past their due period as overdue.
    """
    invoices = await invoice_service.mark_overdue(db)
    return {
        "message": f"{len(invoices)} invoice(s) marked overdue",
        "invoices": [InvoiceSchema.model_validate(invoice) for invoice in invoices],
    }


@router.post("/mock", response_model=MockPaymentResult)
async def mock_payment(
    payload: MockPaymentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Pay an invoice through the simulated gateway.
    """
    invoice = await invoice_service.pay_invoice(
        db, payload.invoiceId, payload.method, customer_id=customer_scope(current_user)
    )
    return {
        "message": "Payment processed successfully",
        "success": True,
        "invoice": InvoiceSchema.model_validate(invoice),
    }


@router.get("/booking/{booking_id}", response_model=InvoiceDocument)
async def get_invoice_by_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Get the invoice raised for a booking's job card.
    """
    document = await invoice_service.get_invoice_document(db, booking_id=booking_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found for this booking"
        )
    ensure_owner(current_user, document["invoice"].customer_id)
    return document


@router.get("/customer/{customer_id}", response_model=InvoiceList)
async def get_customer_invoices(
    customer_id: int,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN, UserRole.CUSTOMER)),
):
    """
    Get a customer's invoices. Customers may only list their own.
    """
    ensure_owner(current_user, customer_id)
    invoices, pagination = await invoice_service.list_invoices(
        db, page, customer_id=customer_id, invoice_status=status_filter
    )
    return {"invoices": invoices, "pagination": pagination}


@router.get("/mechanic/{mechanic_id}", response_model=InvoiceList)
async def get_mechanic_invoices(
    mechanic_id: int,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Get invoices for job cards worked by a mechanic. Mechanics may only list their own.
    """
    if current_user.role == UserRole.MECHANIC and current_user.id != mechanic_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    invoices, pagination = await invoice_service.list_invoices(
        db, page, mechanic_id=mechanic_id, invoice_status=status_filter
    )
    return {"invoices": invoices, "pagination": pagination}


@router.get("/{invoice_id}", response_model=InvoiceDocument)
async def get_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Get an invoice with the parts and tasks it bills for.
    """
    document = await invoice_service.get_invoice_document(db, invoice_id=invoice_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found"
        )
    ensure_owner(current_user, document["invoice"].customer_id)
    return document


@router.put("/{invoice_id}/payment", response_model=InvoiceMessage)
async def update_payment_status(
    invoice_id: int,
    payload: PaymentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Change an invoice's payment status.
    """
    invoice = await invoice_service.update_payment_status(
        db, invoice_id, payload.status, payload.payment_method
    )
    return {
        "message": "Payment status updated successfully",
        "invoice": InvoiceSchema.model_validate(invoice),
    }
