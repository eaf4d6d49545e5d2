"""
Pydantic schemas for request/response validation.
"""
from svmms.schemas.common import Message, Pagination
from svmms.schemas.user import UserBase, UserCreate, ProfileUpdate, RoleUpdate, User, Token
from svmms.schemas.vehicle import VehicleBase, VehicleCreate, VehicleUpdate, Vehicle
from svmms.schemas.jobcard import JobCardCreate, JobCard, Task, SparePart
from svmms.schemas.booking import BookingCreate, Booking
from svmms.schemas.part import PartCreate, PartUpdate, Part
from svmms.schemas.invoice import InvoiceCreate, PaymentStatusUpdate, Invoice
from svmms.schemas.payment import ProcessPaymentRequest, MockPaymentRequest, Payment, Refund
from svmms.schemas.seed import SeedResult

__all__ = [
    "Message", "Pagination",
    "UserBase", "UserCreate", "ProfileUpdate", "RoleUpdate", "User", "Token",
    "VehicleBase", "VehicleCreate", "VehicleUpdate", "Vehicle",
    "JobCardCreate", "JobCard", "Task", "SparePart",
    "BookingCreate", "Booking",
    "PartCreate", "PartUpdate", "Part",
    "InvoiceCreate", "PaymentStatusUpdate", "Invoice",
    "ProcessPaymentRequest", "MockPaymentRequest", "Payment", "Refund",
    "SeedResult",
]
