"""
Booking routes.
"""
import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from svmms.auth import CurrentUser, ALL_ROLES, STAFF, ensure_owner, get_current_user, require_roles
from svmms.database import get_db
from svmms.models.booking import Booking, BookingStatus
from svmms.models.jobcard import JobCard, JobCardStatus
from svmms.models.user import User, UserRole
from svmms.models.vehicle import Vehicle
from svmms.pagination import PageParams, flatten_row, paginate
from svmms.schemas.booking import (
    Booking as BookingSchema,
    BookingAssign,
    BookingAssignment,
    BookingCancel,
    BookingCreate,
    BookingDetail,
    BookingEnvelope,
    BookingList,
    BookingMessage,
    BookingReschedule,
    BookingStatusUpdate,
)
from svmms.schemas.jobcard import JobCard as JobCardSchema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"], dependencies=[Depends(get_current_user)])


def _detail_query():
    return (
        select(
            Booking,
            Vehicle.make,
            Vehicle.model,
            Vehicle.vin,
            Vehicle.year,
            User.name.label("customer_name"),
            User.email.label("customer_email"),
            User.phone.label("customer_phone"),
        )
        .join(Vehicle, Booking.vehicle_id == Vehicle.id)
        .join(User, Booking.customer_id == User.id)
    )


def _filtered(query, status_filter, date_from, date_to):
    if status_filter is not None:
        query = query.where(Booking.status == status_filter)
    if date_from is not None:
        query = query.where(Booking.booking_date >= date_from)
    if date_to is not None:
        query = query.where(Booking.booking_date <= date_to)
    return query


async def _list(db: AsyncSession, query, page: PageParams) -> dict:
    query = query.order_by(Booking.booking_date.desc(), Booking.booking_time.desc(), Booking.id.desc())
    rows, pagination = await paginate(db, query, page)
    return {"bookings": [flatten_row(row, BookingDetail) for row in rows], "pagination": pagination}


async def _get_booking(db: AsyncSession, booking_id: int) -> Booking:
    booking = await db.get(Booking, booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )
    return booking


def _ensure_not_completed(booking: Booking, action: str) -> None:
    if booking.status == BookingStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot {action} a completed booking"
        )


async def _set_status(db: AsyncSession, booking: Booking, new_status: BookingStatus) -> BookingSchema:
    previous = booking.status
    booking.status = new_status
    await db.commit()
    await db.refresh(booking)
    logger.info("Booking %s moved from %s to %s", booking.id, previous.value, new_status.value)
    return BookingSchema.model_validate(booking)


@router.post("", response_model=BookingMessage, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.CUSTOMER)),
):
    """
    Book a service for one of the customer's vehicles.
    """
    vehicle = await db.get(Vehicle, booking.vehicle_id)
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    ensure_owner(current_user, vehicle.customer_id, "Access denied. You can only book services for your own vehicles.")

    db_booking = Booking(**booking.model_dump(), customer_id=current_user.id, status=BookingStatus.PENDING)
    db.add(db_booking)
    await db.commit()
    await db.refresh(db_booking)

    logger.info("Booking %s created by customer %s", db_booking.id, current_user.id)
    return {"message": "Booking created successfully", "booking": BookingSchema.model_validate(db_booking)}


@router.get("", response_model=BookingList)
async def get_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Get all bookings, optionally filtered by status and booking date range.
    """
    return await _list(db, _filtered(_detail_query(), status_filter, date_from, date_to), page)


@router.get("/pending", response_model=BookingList)
async def get_pending_bookings(
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Get bookings waiting for approval.
    """
    return await _list(db, _detail_query().where(Booking.status == BookingStatus.PENDING), page)


@router.get("/customer/{customer_id}", response_model=BookingList)
async def get_customer_bookings(
    customer_id: int,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Get a customer's bookings. Customers may only list their own.
    """
    ensure_owner(current_user, customer_id)
    query = _filtered(_detail_query(), status_filter, None, None).where(Booking.customer_id == customer_id)
    return await _list(db, query, page)


@router.get("/mechanic/{mechanic_id}", response_model=BookingList)
async def get_mechanic_bookings(
    mechanic_id: int,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Get bookings assigned to a mechanic. Mechanics may only list their own.
    """
    if current_user.role == UserRole.MECHANIC and current_user.id != mechanic_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    query = _filtered(_detail_query(), status_filter, None, None).where(Booking.mechanic_id == mechanic_id)
    return await _list(db, query, page)


@router.get("/{booking_id}", response_model=BookingEnvelope)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Get a booking with its vehicle and customer details.
    """
    row = (await db.execute(_detail_query().where(Booking.id == booking_id))).first()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )
    booking = flatten_row(row, BookingDetail)
    ensure_owner(current_user, booking.customer_id)
    return {"booking": booking}


@router.put("/{booking_id}/approve", response_model=BookingMessage)
async def approve_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    booking = await _get_booking(db, booking_id)
    return {"message": "Booking approved", "booking": await _set_status(db, booking, BookingStatus.APPROVED)}


@router.put("/{booking_id}/confirm", response_model=BookingMessage)
async def confirm_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    booking = await _get_booking(db, booking_id)
    return {"message": "Booking confirmed", "booking": await _set_status(db, booking, BookingStatus.CONFIRMED)}


@router.put("/{booking_id}/reject", response_model=BookingMessage)
async def reject_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    booking = await _get_booking(db, booking_id)
    return {"message": "Booking rejected", "booking": await _set_status(db, booking, BookingStatus.REJECTED)}


@router.put("/{booking_id}/cancel", response_model=BookingMessage)
async def cancel_booking(
    booking_id: int,
    cancellation: Optional[BookingCancel] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Cancel a booking. Customers may only cancel their own.
    """
    booking = await _get_booking(db, booking_id)
    ensure_owner(current_user, booking.customer_id)
    _ensure_not_completed(booking, "cancel")
    if cancellation and cancellation.reason:
        logger.info("Booking %s cancelled: %s", booking.id, cancellation.reason)
    return {"message": "Booking cancelled", "booking": await _set_status(db, booking, BookingStatus.CANCELLED)}


@router.put("/{booking_id}/reschedule", response_model=BookingMessage)
async def reschedule_booking(
    booking_id: int,
    reschedule: BookingReschedule,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Move a booking to a new date and time. It goes back to pending approval.
    """
    booking = await _get_booking(db, booking_id)
    ensure_owner(current_user, booking.customer_id)
    _ensure_not_completed(booking, "reschedule")

    booking.booking_date = reschedule.newDateTime.date
    booking.booking_time = reschedule.newDateTime.time
    return {"message": "Booking rescheduled", "booking": await _set_status(db, booking, BookingStatus.PENDING)}


@router.put("/{booking_id}/assign", response_model=BookingAssignment)
async def assign_booking(
    booking_id: int,
    assignment: BookingAssign,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    """
    Assign a mechanic to a booking and open its job card.
    """
    booking = await _get_booking(db, booking_id)

    mechanic = await db.get(User, assignment.mechanicId)
    if mechanic is None or mechanic.role != UserRole.MECHANIC:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mechanic not found")

    existing = await db.execute(select(JobCard.id).where(JobCard.booking_id == booking.id))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Job card already exists for this booking"
        )

    booking.mechanic_id = mechanic.id
    booking.status = BookingStatus.ASSIGNED
    jobcard = JobCard(
        booking_id=booking.id,
        customer_id=booking.customer_id,
        vehicle_id=booking.vehicle_id,
        mechanic_id=mechanic.id,
        status=JobCardStatus.ASSIGNED,
        notes=booking.notes,
    )
    db.add(jobcard)
    await db.commit()
    await db.refresh(booking)
    await db.refresh(jobcard)

    logger.info("Booking %s assigned to mechanic %s, job card %s opened", booking.id, mechanic.id, jobcard.id)
    return {
        "message": "Booking assigned to mechanic and job card created",
        "booking": BookingSchema.model_validate(booking),
        "jobcard": JobCardSchema.model_validate(jobcard),
    }


@router.put("/{booking_id}/status", response_model=BookingMessage)
async def update_booking_status(
    booking_id: int,
    status_update: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    booking = await _get_booking(db, booking_id)
    return {"message": "Booking status updated", "booking": await _set_status(db, booking, status_update.status)}
