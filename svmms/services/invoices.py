"""
Invoice lifecycle.

An invoice is raised once per job card, starts ``unpaid`` and only ever moves
along the transitions allowed by ``InvoiceStatus.can_transition_to``. Payments
are not stored separately: the paid state of an invoice (method, timestamp and
grand total) is exposed as a payment identified by ``pay_<invoice id>``.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from svmms.config import get_settings
from svmms.errors import ValidationFailed
from svmms.models.invoice import Invoice, InvoiceStatus
from svmms.models.jobcard import JobCard, JobCardSparePart, JobCardTask
from svmms.models.part import Part
from svmms.models.user import User
from svmms.models.vehicle import Vehicle
from svmms.pagination import PageParams, flatten_row, paginate
from svmms.schemas.invoice import InvoiceDetail, InvoiceSummary
from svmms.schemas.jobcard import SparePartDetail, Task
from svmms.schemas.payment import Payment, Refund

logger = logging.getLogger(__name__)

settings = get_settings()

PAYMENT_ID_PREFIX = "pay_"
TOTAL_TOLERANCE = 0.01


def _money(value) -> float:
    return round(float(value or 0), 2)


def _not_found(message: str = "Invoice not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


# ==================== CREATION ====================

async def jobcard_totals(db: AsyncSession, jobcard_id: int) -> tuple[float, float]:
    """Return ``(parts_total, labor_total)`` summed from a job card's lines."""
    parts_total = (await db.execute(
        select(func.coalesce(func.sum(JobCardSparePart.total_price), 0))
        .where(JobCardSparePart.jobcard_id == jobcard_id)
    )).scalar_one()
    labor_total = (await db.execute(
        select(func.coalesce(func.sum(JobCardTask.task_cost), 0))
        .where(JobCardTask.jobcard_id == jobcard_id)
    )).scalar_one()
    return _money(parts_total), _money(labor_total)


async def _add_invoice(
    db: AsyncSession,
    jobcard_id: int,
    customer_id: int,
    parts_total: float,
    labor_total: float,
) -> Invoice:
    invoice = Invoice(
        jobcard_id=jobcard_id,
        customer_id=customer_id,
        parts_total=_money(parts_total),
        labor_total=_money(labor_total),
        grand_total=_money(parts_total + labor_total),
        status=InvoiceStatus.UNPAID,
    )
    db.add(invoice)
    await db.flush()
    logger.info(
        "Invoice %s raised for job card %s: %.2f", invoice.id, jobcard_id, invoice.grand_total
    )
    return invoice


async def create_invoice(
    db: AsyncSession,
    jobcard_id: int,
    customer_id: int,
    parts_total: float,
    labor_total: float,
    grand_total: Optional[float] = None,
) -> Invoice:
    """
    Create an unpaid invoice for a job card and commit it.

    ``grand_total`` is optional; when given it must match the sum of the two
    component totals to the cent.
    """
    jobcard = await db.get(JobCard, jobcard_id)
    if jobcard is None:
        raise _not_found("Job card not found")

    existing = await db.execute(select(Invoice.id).where(Invoice.jobcard_id == jobcard_id))
    if existing.scalar_one_or_none() is not None:
        raise _bad_request("Invoice already exists for this job card")

    expected = _money(parts_total + labor_total)
    if grand_total is not None and abs(grand_total - expected) > TOTAL_TOLERANCE:
        raise ValidationFailed("grand_total", "Grand total must equal parts total plus labor total")

    invoice = await _add_invoice(db, jobcard_id, customer_id, parts_total, labor_total)
    await db.commit()
    await db.refresh(invoice)
    return invoice


async def invoice_for_completed_jobcard(db: AsyncSession, jobcard: JobCard) -> Invoice:
    """
    Raise the invoice for a job card that has just been completed.

    Runs inside the caller's transaction and does not commit. A job card that
    already has an invoice keeps it.
    """
    result = await db.execute(select(Invoice).where(Invoice.jobcard_id == jobcard.id))
    invoice = result.scalar_one_or_none()
    if invoice is not None:
        return invoice
    parts_total, labor_total = await jobcard_totals(db, jobcard.id)
    return await _add_invoice(db, jobcard.id, jobcard.customer_id, parts_total, labor_total)


# ==================== QUERIES ====================

def _summary_query():
    return (
        select(
            Invoice,
            User.name.label("customer_name"),
            Vehicle.make,
            Vehicle.model,
            Vehicle.vin,
        )
        .join(User, Invoice.customer_id == User.id)
        .join(JobCard, Invoice.jobcard_id == JobCard.id)
        .join(Vehicle, JobCard.vehicle_id == Vehicle.id)
    )


def _detail_query():
    return _summary_query().add_columns(
        User.email.label("customer_email"),
        User.phone.label("customer_phone"),
        JobCard.booking_id,
        JobCard.completed_at,
    )


async def get_invoice_document(
    db: AsyncSession,
    invoice_id: Optional[int] = None,
    booking_id: Optional[int] = None,
) -> Optional[dict]:
    """
    Load an invoice with its display fields, spare parts and tasks, looked up
    either by invoice id or by the booking its job card belongs to.
    """
    stmt = _detail_query()
    if invoice_id is not None:
        stmt = stmt.where(Invoice.id == invoice_id)
    else:
        stmt = stmt.where(JobCard.booking_id == booking_id)

    row = (await db.execute(stmt)).first()
    if row is None:
        return None
    invoice = flatten_row(row, InvoiceDetail)

    parts = await db.execute(
        select(
            JobCardSparePart,
            Part.name.label("part_name"),
            Part.part_number,
        )
        .join(Part, JobCardSparePart.part_id == Part.id)
        .where(JobCardSparePart.jobcard_id == invoice.jobcard_id)
        .order_by(JobCardSparePart.id)
    )
    tasks = await db.execute(
        select(JobCardTask)
        .where(JobCardTask.jobcard_id == invoice.jobcard_id)
        .order_by(JobCardTask.id)
    )
    return {
        "invoice": invoice,
        "parts": [flatten_row(part, SparePartDetail) for part in parts.all()],
        "tasks": [Task.model_validate(task) for task in tasks.scalars().all()],
    }


async def list_invoices(
    db: AsyncSession,
    params: PageParams,
    customer_id: Optional[int] = None,
    mechanic_id: Optional[int] = None,
    invoice_status: Optional[InvoiceStatus] = None,
):
    """Newest first, optionally narrowed to a customer, a mechanic or a status."""
    stmt = _summary_query()
    if customer_id is not None:
        stmt = stmt.where(Invoice.customer_id == customer_id)
    if mechanic_id is not None:
        stmt = stmt.where(JobCard.mechanic_id == mechanic_id)
    if invoice_status is not None:
        stmt = stmt.where(Invoice.status == invoice_status)
    stmt = stmt.order_by(Invoice.created_at.desc(), Invoice.id.desc())

    rows, pagination = await paginate(db, stmt, params)
    return [flatten_row(row, InvoiceSummary) for row in rows], pagination


# ==================== STATUS CHANGES ====================

async def _load_for_update(db: AsyncSession, invoice_id: int) -> Invoice:
    invoice = await db.get(Invoice, invoice_id, with_for_update=True)
    if invoice is None:
        raise _not_found()
    return invoice


async def update_payment_status(
    db: AsyncSession,
    invoice_id: int,
    target: InvoiceStatus,
    payment_method: Optional[str] = None,
) -> Invoice:
    """
    Move an invoice to ``target``.

    Asking for the status the invoice already has changes nothing. Marking an
    invoice paid stamps ``paid_at`` and records the payment method.
    """
    invoice = await _load_for_update(db, invoice_id)
    current = invoice.status

    if target == current:
        return invoice
    if not current.can_transition_to(target):
        raise _bad_request(f"Cannot change invoice status from {current.value} to {target.value}")

    if target == InvoiceStatus.PAID:
        if not payment_method:
            raise ValidationFailed(
                "payment_method", "Payment method is required when marking an invoice paid"
            )
        invoice.payment_method = payment_method
        invoice.paid_at = datetime.now(timezone.utc)
    invoice.status = target

    await db.commit()
    await db.refresh(invoice)
    logger.info("Invoice %s moved from %s to %s", invoice.id, current.value, target.value)
    return invoice


async def pay_invoice(
    db: AsyncSession, invoice_id: int, method: str, customer_id: Optional[int] = None
) -> Invoice:
    """
    Settle an invoice through the simulated gateway.

    When ``customer_id`` is given only that customer's invoices can be paid.
    """
    invoice = await _load_for_update(db, invoice_id)
    if customer_id is not None and invoice.customer_id != customer_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    if invoice.status == InvoiceStatus.PAID:
        raise _bad_request("Invoice is already paid")
    if not invoice.status.can_transition_to(InvoiceStatus.PAID):
        raise _bad_request(f"Invoice cannot be paid in status {invoice.status.value}")

    invoice.status = InvoiceStatus.PAID
    invoice.payment_method = method
    invoice.paid_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(invoice)
    logger.info("Payment of %.2f received for invoice %s by %s", invoice.grand_total, invoice.id, method)
    return invoice


async def mark_overdue(db: AsyncSession, now: Optional[datetime] = None) -> list[Invoice]:
    """Flag unpaid invoices older than the configured due period as overdue."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=settings.invoice_due_days)
    result = await db.execute(
        select(Invoice)
        .where(Invoice.status == InvoiceStatus.UNPAID, Invoice.created_at < cutoff)
        .with_for_update()
    )
    invoices = list(result.scalars().all())
    if not invoices:
        return invoices

    for invoice in invoices:
        invoice.status = InvoiceStatus.OVERDUE
    await db.commit()
    for invoice in invoices:
        await db.refresh(invoice)
        logger.info("Invoice %s now overdue", invoice.id)
    return invoices


# ==================== PAYMENTS ====================

def payment_id(invoice_id: int) -> str:
    return f"{PAYMENT_ID_PREFIX}{invoice_id}"


def parse_payment_id(value: str) -> Optional[int]:
    """Return the invoice id behind a payment id, or None if it is malformed."""
    if not value.startswith(PAYMENT_ID_PREFIX):
        return None
    digits = value[len(PAYMENT_ID_PREFIX):]
    if not digits.isdigit():
        return None
    return int(digits)


def payment_view(invoice: Invoice) -> Optional[Payment]:
    """The payment recorded on an invoice, if it was ever paid."""
    if invoice.paid_at is None:
        return None
    return Payment(
        id=payment_id(invoice.id),
        invoice_id=invoice.id,
        amount=_money(invoice.grand_total),
        method=invoice.payment_method,
        status="completed" if invoice.status == InvoiceStatus.PAID else invoice.status.value,
        processed_at=invoice.paid_at,
    )


def payment_history(invoice: Invoice) -> list[Payment]:
    payment = payment_view(invoice)
    return [payment] if payment is not None else []


async def refund_payment(db: AsyncSession, payment_ref: str, reason: Optional[str] = None) -> Refund:
    """Refund the payment ``pay_<invoice id>``."""
    invoice_id = parse_payment_id(payment_ref)
    if invoice_id is None:
        raise _not_found("Payment not found")
    invoice = await db.get(Invoice, invoice_id, with_for_update=True)
    if invoice is None or invoice.paid_at is None:
        raise _not_found("Payment not found")
    if invoice.status != InvoiceStatus.PAID:
        raise _bad_request("Only paid invoices can be refunded")

    invoice.status = InvoiceStatus.REFUNDED
    await db.commit()
    await db.refresh(invoice)
    logger.info("Invoice %s refunded (%s)", invoice.id, reason or "no reason given")

    return Refund(
        id=f"refund_{payment_ref}",
        payment_id=payment_ref,
        amount=_money(invoice.grand_total),
        reason=reason or "Customer request",
        status="completed",
        refunded_at=datetime.now(timezone.utc),
    )
