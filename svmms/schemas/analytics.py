"""
Pydantic schemas for admin analytics.
"""
from pydantic import BaseModel
from typing import Optional


class DashboardStats(BaseModel):
    totalUsers: int
    totalCustomers: int
    totalVehicles: int
    pendingBookings: int
    activeJobs: int
    lowStockParts: int
    monthlyRevenue: float
    totalRevenue: float
    mechanics: int


class RevenueTotals(BaseModel):
    total_revenue: float
    parts_revenue: float
    labor_revenue: float
    invoice_count: int


class StatusRevenue(BaseModel):
    status: str
    revenue: float
    invoice_count: int


class MonthlyRevenue(BaseModel):
    month: str
    revenue: float
    invoice_count: int


class RevenueReport(BaseModel):
    totalRevenue: RevenueTotals
    byStatus: list[StatusRevenue]
    monthlyRevenue: list[MonthlyRevenue]


class PartUsage(BaseModel):
    id: int
    name: str
    part_number: Optional[str] = None
    total_used: int
    total_revenue: float


class PartsUsageReport(BaseModel):
    partsUsage: list[PartUsage]
