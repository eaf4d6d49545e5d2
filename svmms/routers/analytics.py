"""
Admin analytics routes.
"""
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from svmms.auth import get_current_user, require_roles
from svmms.database import get_db
from svmms.models.booking import Booking, BookingStatus
from svmms.models.invoice import Invoice, InvoiceStatus
from svmms.models.jobcard import JobCard, JobCardSparePart, JobCardStatus
from svmms.models.part import Part
from svmms.models.user import User, UserRole
from svmms.models.vehicle import Vehicle
from svmms.schemas.analytics import DashboardStats, PartsUsageReport, RevenueReport

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    dependencies=[Depends(get_current_user), Depends(require_roles(UserRole.ADMIN))],
)

ACTIVE_JOB_STATUSES = (JobCardStatus.PENDING, JobCardStatus.ASSIGNED, JobCardStatus.IN_PROGRESS)


async def _scalar(db: AsyncSession, stmt):
    return (await db.execute(stmt)).scalar_one()


def _count(model):
    return select(func.count()).select_from(model)


@router.get("/dashboard-stats", response_model=DashboardStats)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """
    Headline numbers for the admin dashboard.
    """
    month_start = datetime.now(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    revenue = func.coalesce(func.sum(Invoice.grand_total), 0)

    return {
        "totalUsers": await _scalar(db, _count(User)),
        "totalCustomers": await _scalar(db, _count(User).where(User.role == UserRole.CUSTOMER)),
        "totalVehicles": await _scalar(db, _count(Vehicle)),
        "pendingBookings": await _scalar(db, _count(Booking).where(Booking.status == BookingStatus.PENDING)),
        "activeJobs": await _scalar(db, _count(JobCard).where(JobCard.status.in_(ACTIVE_JOB_STATUSES))),
        "lowStockParts": await _scalar(db, _count(Part).where(Part.quantity <= Part.reorder_level)),
        "monthlyRevenue": round(await _scalar(db, select(revenue).where(Invoice.created_at >= month_start)), 2),
        "totalRevenue": round(await _scalar(db, select(revenue).where(Invoice.status == InvoiceStatus.PAID)), 2),
        "mechanics": await _scalar(db, _count(User).where(User.role == UserRole.MECHANIC)),
    }


@router.get("/revenue", response_model=RevenueReport)
async def get_revenue(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    """
    Invoiced revenue, optionally limited to invoices raised between two dates
    (both inclusive), broken down by payment status and by month.
    """
    query = select(Invoice.created_at, Invoice.status, Invoice.parts_total, Invoice.labor_total, Invoice.grand_total)
    if start_date is not None:
        query = query.where(Invoice.created_at >= datetime.combine(start_date, time.min, timezone.utc))
    if end_date is not None:
        query = query.where(Invoice.created_at < datetime.combine(end_date + timedelta(days=1), time.min, timezone.utc))
    rows = (await db.execute(query)).all()

    totals = {"total_revenue": 0.0, "parts_revenue": 0.0, "labor_revenue": 0.0, "invoice_count": len(rows)}
    by_status = defaultdict(lambda: [0.0, 0])
    by_month = defaultdict(lambda: [0.0, 0])
    for row in rows:
        totals["total_revenue"] += row.grand_total
        totals["parts_revenue"] += row.parts_total
        totals["labor_revenue"] += row.labor_total
        for bucket in (by_status[row.status.value], by_month[row.created_at.strftime("%Y-%m")]):
            bucket[0] += row.grand_total
            bucket[1] += 1

    for key in ("total_revenue", "parts_revenue", "labor_revenue"):
        totals[key] = round(totals[key], 2)

    return {
        "totalRevenue": totals,
        "byStatus": [
            {"status": name, "revenue": round(revenue, 2), "invoice_count": count}
            for name, (revenue, count) in sorted(by_status.items())
        ],
        "monthlyRevenue": [
            {"month": month, "revenue": round(revenue, 2), "invoice_count": count}
            for month, (revenue, count) in sorted(by_month.items(), reverse=True)
        ],
    }


@router.get("/parts-usage", response_model=PartsUsageReport)
async def get_parts_usage(db: AsyncSession = Depends(get_db)):
    """
    The twenty most used parts and the revenue they brought in.
    """
    total_used = func.coalesce(func.sum(JobCardSparePart.quantity), 0).label("total_used")
    result = await db.execute(
        select(
            Part.id,
            Part.name,
            Part.part_number,
            total_used,
            func.coalesce(func.sum(JobCardSparePart.total_price), 0).label("total_revenue"),
        )
        .outerjoin(JobCardSparePart, JobCardSparePart.part_id == Part.id)
        .group_by(Part.id, Part.name, Part.part_number)
        .order_by(total_used.desc(), Part.name)
        .limit(20)
    )
    return {"partsUsage": [dict(row._mapping) for row in result.all()]}
