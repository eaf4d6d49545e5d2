"""
SQLAlchemy database models.
"""
from svmms.models.user import User, UserRole, RefreshToken
from svmms.models.vehicle import Vehicle
from svmms.models.booking import Booking, BookingStatus
from svmms.models.jobcard import JobCard, JobCardStatus, JobCardPriority, JobCardTask, JobCardSparePart
from svmms.models.part import Part
from svmms.models.invoice import Invoice, InvoiceStatus

__all__ = [
    "User", "UserRole", "RefreshToken",
    "Vehicle",
    "Booking", "BookingStatus",
    "JobCard", "JobCardStatus", "JobCardPriority", "JobCardTask", "JobCardSparePart",
    "Part",
    "Invoice", "InvoiceStatus",
]
