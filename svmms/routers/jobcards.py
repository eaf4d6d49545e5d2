"""
Job card routes (staff only).

Adding a task, adding a spare part and completing a card each touch several
rows; every one of them commits once, so a failure leaves nothing half-written.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from typing import Optional

from svmms.auth import CurrentUser, STAFF, get_current_user, require_roles
from svmms.database import get_db
from svmms.models.booking import Booking, BookingStatus
from svmms.models.invoice import Invoice
from svmms.models.jobcard import JobCard, JobCardSparePart, JobCardStatus, JobCardTask
from svmms.models.part import Part
from svmms.models.user import User, UserRole
from svmms.models.vehicle import Vehicle
from svmms.pagination import flatten_row
from svmms.schemas.common import Message
from svmms.schemas.jobcard import (
    JobCard as JobCardSchema,
    JobCardCreate,
    JobCardDetail,
    JobCardEnvelope,
    JobCardList,
    JobCardMessage,
    JobCardStatusUpdate,
    JobCardWithLines,
    MechanicAssign,
    ProgressUpdate,
    SparePart as SparePartSchema,
    SparePartCreate,
    SparePartDetail,
    SparePartMessage,
    Task as TaskSchema,
    TaskCreate,
    TaskMessage,
)
from svmms.services import invoices as invoice_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/jobcards",
    tags=["jobcards"],
    dependencies=[Depends(get_current_user), Depends(require_roles(*STAFF))],
)


def _detail_query():
    customer = aliased(User)
    mechanic = aliased(User)
    return (
        select(
            JobCard,
            Vehicle.model,
            Vehicle.vin,
            Vehicle.year,
            customer.name.label("customer_name"),
            customer.email.label("customer_email"),
            customer.phone.label("customer_phone"),
            mechanic.name.label("mechanic_name"),
            Booking.service_type,
        )
        .join(Vehicle, JobCard.vehicle_id == Vehicle.id)
        .join(customer, JobCard.customer_id == customer.id)
        .outerjoin(mechanic, JobCard.mechanic_id == mechanic.id)
        .outerjoin(Booking, JobCard.booking_id == Booking.id)
    )


async def _list(db: AsyncSession, query) -> dict:
    result = await db.execute(query.order_by(JobCard.created_at.desc(), JobCard.id.desc()))
    return {"jobcards": [flatten_row(row, JobCardDetail) for row in result.all()]}


def _ensure_assigned(user: CurrentUser, jobcard, action: str = "update") -> None:
    if user.role == UserRole.MECHANIC and jobcard.mechanic_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. You can only {action} job cards assigned to you."
        )


async def _get_jobcard(db: AsyncSession, jobcard_id: int, for_update: bool = False) -> JobCard:
    jobcard = await db.get(JobCard, jobcard_id, with_for_update=for_update)
    if jobcard is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job card not found"
        )
    return jobcard


def _ensure_open(jobcard: JobCard) -> None:
    if jobcard.status == JobCardStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot modify a completed job card"
        )


@router.post("", response_model=JobCardMessage, status_code=status.HTTP_201_CREATED)
async def create_jobcard(
    jobcard: JobCardCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Open a job card. A mechanic opening a card is assigned to it.
    """
    vehicle = await db.get(Vehicle, jobcard.vehicle_id)
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid vehicle ID")

    customer_id = jobcard.customer_id or vehicle.customer_id
    customer = await db.get(User, customer_id)
    if customer is None or customer.role != UserRole.CUSTOMER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid customer ID or user is not a customer"
        )

    if jobcard.booking_id is not None:
        if await db.get(Booking, jobcard.booking_id) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid booking ID")
        existing = await db.execute(select(JobCard.id).where(JobCard.booking_id == jobcard.booking_id))
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Job card already exists for this booking"
            )

    is_mechanic = current_user.role == UserRole.MECHANIC
    db_jobcard = JobCard(
        **jobcard.model_dump(exclude={"customer_id"}),
        customer_id=customer_id,
        mechanic_id=current_user.id if is_mechanic else None,
        status=JobCardStatus.ASSIGNED if is_mechanic else JobCardStatus.PENDING,
    )
    db.add(db_jobcard)
    await db.commit()
    await db.refresh(db_jobcard)

    logger.info("Job card %s opened for vehicle %s", db_jobcard.id, vehicle.id)
    return {"message": "Job card created successfully", "jobcard": JobCardSchema.model_validate(db_jobcard)}


@router.get("", response_model=JobCardList)
async def get_jobcards(
    status_filter: Optional[JobCardStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Get job cards, newest first. Mechanics only see cards assigned to them.
    """
    query = _detail_query()
    if status_filter is not None:
        query = query.where(JobCard.status == status_filter)
    if current_user.role == UserRole.MECHANIC:
        query = query.where(JobCard.mechanic_id == current_user.id)
    return await _list(db, query)


@router.get("/completed", response_model=JobCardList)
async def get_completed_jobcards(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    query = _detail_query().where(JobCard.status == JobCardStatus.COMPLETED)
    if current_user.role == UserRole.MECHANIC:
        query = query.where(JobCard.mechanic_id == current_user.id)
    return await _list(db, query)


@router.get("/mechanic/{mechanic_id}", response_model=JobCardList)
async def get_mechanic_jobcards(
    mechanic_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    if current_user.role == UserRole.MECHANIC and current_user.id != mechanic_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only access job cards assigned to you."
        )
    return await _list(db, _detail_query().where(JobCard.mechanic_id == mechanic_id))


@router.get("/booking/{booking_id}", response_model=JobCardEnvelope)
async def get_jobcard_by_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    row = (await db.execute(_detail_query().where(JobCard.booking_id == booking_id))).first()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job card not found for this booking"
        )
    jobcard = flatten_row(row, JobCardDetail)
    _ensure_assigned(current_user, jobcard, "access")
    return {"jobcard": jobcard}


@router.get("/{jobcard_id}", response_model=JobCardWithLines)
async def get_jobcard(
    jobcard_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Get a job card with its tasks and spare parts.
    """
    row = (await db.execute(_detail_query().where(JobCard.id == jobcard_id))).first()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job card not found"
        )
    jobcard = flatten_row(row, JobCardDetail)
    _ensure_assigned(current_user, jobcard, "access")

    tasks = await db.execute(
        select(JobCardTask).where(JobCardTask.jobcard_id == jobcard_id).order_by(JobCardTask.id)
    )
    parts = await db.execute(
        select(JobCardSparePart, Part.name.label("part_name"), Part.part_number)
        .join(Part, JobCardSparePart.part_id == Part.id)
        .where(JobCardSparePart.jobcard_id == jobcard_id)
        .order_by(JobCardSparePart.id)
    )
    return {
        "jobcard": jobcard,
        "tasks": [TaskSchema.model_validate(task) for task in tasks.scalars().all()],
        "parts": [flatten_row(part, SparePartDetail) for part in parts.all()],
    }


@router.put("/{jobcard_id}/add-task", response_model=TaskMessage, status_code=status.HTTP_201_CREATED)
async def add_task(
    jobcard_id: int,
    task: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Add a labor task and fold its cost into the card's totals.
    """
    jobcard = await _get_jobcard(db, jobcard_id, for_update=True)
    _ensure_assigned(current_user, jobcard)
    _ensure_open(jobcard)

    db_task = JobCardTask(jobcard_id=jobcard.id, task_name=task.task_name, task_cost=task.task_cost)
    db.add(db_task)
    jobcard.labor_cost = round(jobcard.labor_cost + task.task_cost, 2)
    jobcard.total_cost = round(jobcard.total_cost + task.task_cost, 2)
    await db.commit()
    await db.refresh(db_task)

    return {"message": "Task added successfully", "task": TaskSchema.model_validate(db_task)}


@router.put("/{jobcard_id}/add-sparepart", response_model=SparePartMessage, status_code=status.HTTP_201_CREATED)
async def add_sparepart(
    jobcard_id: int,
    sparepart: SparePartCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Take parts out of stock for a job card at the part's current price.
    """
    jobcard = await _get_jobcard(db, jobcard_id, for_update=True)
    _ensure_assigned(current_user, jobcard)
    _ensure_open(jobcard)

    part = await db.get(Part, sparepart.part_id, with_for_update=True)
    if part is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Part not found")
    if part.quantity < sparepart.quantity:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient stock")

    total_price = round(part.price * sparepart.quantity, 2)
    db_sparepart = JobCardSparePart(
        jobcard_id=jobcard.id,
        part_id=part.id,
        quantity=sparepart.quantity,
        unit_price=part.price,
        total_price=total_price,
    )
    db.add(db_sparepart)
    part.quantity -= sparepart.quantity
    jobcard.total_cost = round(jobcard.total_cost + total_price, 2)
    await db.commit()
    await db.refresh(db_sparepart)

    if part.quantity <= part.reorder_level:
        logger.warning("Part %s (%s) is low on stock: %s left", part.id, part.name, part.quantity)
    return {"message": "Spare part added successfully", "sparePart": SparePartSchema.model_validate(db_sparepart)}


@router.put("/{jobcard_id}/add-mechanic", response_model=JobCardMessage)
async def add_mechanic(
    jobcard_id: int,
    assignment: MechanicAssign,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    """
    Assign a mechanic to a job card.
    """
    jobcard = await _get_jobcard(db, jobcard_id)
    mechanic = await db.get(User, assignment.mechanic_id)
    if mechanic is None or mechanic.role != UserRole.MECHANIC:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mechanic not found")

    jobcard.mechanic_id = mechanic.id
    if jobcard.status == JobCardStatus.PENDING:
        jobcard.status = JobCardStatus.ASSIGNED
    await db.commit()
    await db.refresh(jobcard)

    return {"message": "Mechanic assigned successfully", "jobcard": JobCardSchema.model_validate(jobcard)}


@router.put("/{jobcard_id}/update-status", response_model=JobCardMessage)
async def update_jobcard_status(
    jobcard_id: int,
    status_update: JobCardStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Change a job card's status.

    Completing a card raises its invoice and completes its booking in the same
    transaction.
    """
    jobcard = await _get_jobcard(db, jobcard_id, for_update=True)
    _ensure_assigned(current_user, jobcard)

    new_status = status_update.status
    now = datetime.now(timezone.utc)
    jobcard.status = new_status
    if new_status == JobCardStatus.IN_PROGRESS:
        jobcard.started_at = now
    elif new_status == JobCardStatus.COMPLETED:
        jobcard.completed_at = now
        jobcard.percent_complete = 100
        await invoice_service.invoice_for_completed_jobcard(db, jobcard)
        if jobcard.booking_id is not None:
            booking = await db.get(Booking, jobcard.booking_id)
            if booking is not None:
                booking.status = BookingStatus.COMPLETED

    await db.commit()
    await db.refresh(jobcard)

    logger.info("Job card %s is now %s", jobcard.id, new_status.value)
    return {"message": "Job card status updated successfully", "jobcard": JobCardSchema.model_validate(jobcard)}


@router.put("/{jobcard_id}/update-progress", response_model=JobCardMessage)
async def update_jobcard_progress(
    jobcard_id: int,
    progress: ProgressUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    jobcard = await _get_jobcard(db, jobcard_id)
    _ensure_assigned(current_user, jobcard)

    jobcard.percent_complete = progress.percentComplete
    if progress.notes is not None:
        jobcard.notes = progress.notes
    await db.commit()
    await db.refresh(jobcard)

    return {"message": "Job card progress updated successfully", "jobcard": JobCardSchema.model_validate(jobcard)}


@router.delete("/{jobcard_id}", response_model=Message)
async def delete_jobcard(
    jobcard_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    """
    Delete a job card along with its tasks and spare parts. Invoiced cards are kept.
    """
    await _get_jobcard(db, jobcard_id)
    invoiced = await db.execute(select(Invoice.id).where(Invoice.jobcard_id == jobcard_id))
    if invoiced.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a job card with an invoice"
        )
    await db.execute(delete(JobCard).where(JobCard.id == jobcard_id))
    await db.commit()

    logger.info("Job card %s deleted", jobcard_id)
    return {"message": "Job card deleted successfully"}
