"""
Application errors and the exception handlers that render them.

Every error body carries a ``message``; validation failures additionally carry
an ``errors`` list with one ``{field, message}`` entry per offending field.
"""
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# Messages reported for a field regardless of which rule it broke
FIELD_MESSAGES = {
    "name": "Name is required",
    "email": "Valid email is required",
    "password": "Password must be between 6 and 16 characters and contain an uppercase letter and a special character",
    "newPassword": "New password must be between 6 and 16 characters and contain an uppercase letter and a special character",
    "oldPassword": "Current password is required",
    "role": "Valid role is required",
    "token": "Reset token is required",
    "vin": "VIN is required",
    "model": "Model is required",
    "year": "Valid year is required",
    "mileage": "Mileage must be a positive number",
    "customer_id": "Valid customer ID is required",
    "vehicle_id": "Valid vehicle ID is required",
    "booking_id": "Valid booking ID is required",
    "jobcard_id": "Valid job card ID is required",
    "mechanic_id": "Valid mechanic ID is required",
    "mechanicId": "Valid mechanic ID is required",
    "part_id": "Valid part ID is required",
    "service_type": "Service type is required",
    "booking_date": "Valid booking date is required",
    "booking_time": "Valid time is required (HH:MM)",
    "date": "Valid date is required",
    "time": "Valid time is required (HH:MM)",
    "task_name": "Task name is required",
    "task_cost": "Valid task cost is required",
    "quantity": "Valid quantity is required",
    "price": "Valid price is required",
    "reorder_level": "Reorder level must be a positive number",
    "percentComplete": "Percent complete must be between 0 and 100",
    "priority": "Priority must be one of: low, medium, high",
    "estimated_hours": "Estimated hours must be a valid positive number",
    "parts_total": "Valid parts total is required",
    "labor_total": "Valid labor total is required",
    "grand_total": "Valid grand total is required",
    "status": "Valid status is required",
    "invoiceId": "Valid invoice ID is required",
    "amount": "Valid amount is required",
    "method": "Valid payment method is required",
}


class ValidationFailed(Exception):
    """Validation error raised by a service after request parsing succeeded."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.errors = [{"field": field, "message": message}]


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return parts[-1] if parts else "body"


def format_validation_errors(raw_errors) -> list[dict]:
    """Collapse pydantic errors into one entry per field."""
    errors = []
    seen = set()
    for error in raw_errors:
        field = _field_name(error.get("loc", ()))
        if field in seen:
            continue
        seen.add(field)
        if error.get("type") == "value_error" and error.get("ctx", {}).get("error") is not None:
            message = str(error["ctx"]["error"])
        else:
            message = FIELD_MESSAGES.get(field, error.get("msg", "Invalid value"))
        errors.append({"field": field, "message": message})
    return errors


def validation_response(errors: list[dict]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "errors": errors},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return validation_response(format_validation_errors(exc.errors()))


async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return validation_response(exc.errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on the application."""
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationFailed, validation_failed_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def unique_violation(exc: IntegrityError, messages: dict, default: str = "Record already exists") -> HTTPException:
    """
    Turn a unique-constraint failure into a 400, picking the message by the
    column named in the database error.
    """
    detail = str(exc.orig)
    for column, message in messages.items():
        if column in detail:
            return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=default)
