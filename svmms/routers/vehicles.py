"""
Vehicle routes.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import aliased
from typing import Optional

from svmms.auth import CurrentUser, ALL_ROLES, customer_scope, ensure_owner, get_current_user, require_roles
from svmms.database import get_db
from svmms.errors import ValidationFailed, unique_violation
from svmms.models.invoice import Invoice
from svmms.models.jobcard import JobCard
from svmms.models.user import User, UserRole
from svmms.models.vehicle import Vehicle
from svmms.pagination import PageParams, flatten_row, paginate
from svmms.schemas.common import Message
from svmms.schemas.vehicle import (
    ServiceHistoryEntry,
    Vehicle as VehicleSchema,
    VehicleCreate,
    VehicleDetail,
    VehicleEnvelope,
    VehicleHistory,
    VehicleList,
    VehicleMessage,
    VehicleUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["vehicles"], dependencies=[Depends(get_current_user)])

UNIQUE_MESSAGES = {
    "registration_number": "Vehicle with this registration number already exists",
    "vin": "Vehicle with this VIN already exists",
}

SORT_COLUMNS = {
    "make": Vehicle.make,
    "model": Vehicle.model,
    "year": Vehicle.year,
    "vin": Vehicle.vin,
    "created_at": Vehicle.created_at,
}


def _with_owner():
    return (
        select(
            Vehicle,
            User.name.label("customer_name"),
            User.email.label("customer_email"),
            User.phone.label("customer_phone"),
        )
        .join(User, Vehicle.customer_id == User.id)
    )


async def _get_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found"
        )
    return vehicle


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise unique_violation(exc, UNIQUE_MESSAGES, "Vehicle already exists")


@router.post("", response_model=VehicleMessage, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Add a vehicle. Customers add their own; staff name the owner in ``customer_id``.
    """
    customer_id = customer_scope(current_user)
    if customer_id is None:
        if vehicle.customer_id is None:
            raise ValidationFailed("customer_id", "Valid customer ID is required")
        if await db.get(User, vehicle.customer_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Customer not found"
            )
        customer_id = vehicle.customer_id

    db_vehicle = Vehicle(**vehicle.model_dump(exclude={"customer_id"}), customer_id=customer_id)
    db.add(db_vehicle)
    await _commit(db)
    await db.refresh(db_vehicle)

    logger.info("Vehicle %s (%s) added for customer %s", db_vehicle.id, db_vehicle.vin, customer_id)
    return {"message": "Vehicle added successfully", "vehicle": VehicleSchema.model_validate(db_vehicle)}


@router.get("", response_model=VehicleList)
async def get_vehicles(
    search: Optional[str] = None,
    customer_id: Optional[int] = None,
    sortBy: str = "created_at",
    sortOrder: str = "desc",
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Get vehicles with pagination, search over make/model/VIN and sorting.
    Customers only see their own.
    """
    query = _with_owner()

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Vehicle.make.ilike(pattern),
            Vehicle.model.ilike(pattern),
            Vehicle.vin.ilike(pattern),
        ))

    owner_id = customer_scope(current_user) or customer_id
    if owner_id is not None:
        query = query.where(Vehicle.customer_id == owner_id)

    column = SORT_COLUMNS.get(sortBy, Vehicle.created_at)
    order = column.asc() if sortOrder.lower() == "asc" else column.desc()
    query = query.order_by(order, Vehicle.id)

    rows, pagination = await paginate(db, query, page)
    return {
        "vehicles": [flatten_row(row, VehicleDetail) for row in rows],
        "pagination": pagination,
    }


@router.get("/user/{user_id}", response_model=VehicleList)
async def get_user_vehicles(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Get every vehicle owned by a user.
    """
    ensure_owner(current_user, user_id, "Access denied. You can only view your own vehicles.")
    if await db.get(User, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    result = await db.execute(
        _with_owner()
        .where(Vehicle.customer_id == user_id)
        .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
    )
    return {"vehicles": [flatten_row(row, VehicleDetail) for row in result.all()]}


@router.get("/{vehicle_id}", response_model=VehicleEnvelope)
async def get_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Get a specific vehicle by ID.
    """
    row = (await db.execute(_with_owner().where(Vehicle.id == vehicle_id))).first()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found"
        )

    vehicle = flatten_row(row, VehicleDetail)
    ensure_owner(current_user, vehicle.customer_id, "Access denied. You can only view your own vehicles.")
    return {"vehicle": vehicle}


@router.get("/{vehicle_id}/history", response_model=VehicleHistory)
async def get_vehicle_history(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Get the job cards carried out on a vehicle and what was billed for each.
    """
    vehicle = await _get_vehicle(db, vehicle_id)
    ensure_owner(current_user, vehicle.customer_id, "Access denied. You can only view your own vehicles.")

    mechanic = aliased(User)
    result = await db.execute(
        select(
            JobCard.id,
            JobCard.booking_id,
            JobCard.mechanic_id,
            mechanic.name.label("mechanic_name"),
            JobCard.status,
            JobCard.labor_cost,
            JobCard.total_cost,
            JobCard.started_at,
            JobCard.completed_at,
            JobCard.created_at,
            Invoice.grand_total,
            Invoice.status.label("payment_status"),
        )
        .outerjoin(mechanic, JobCard.mechanic_id == mechanic.id)
        .outerjoin(Invoice, Invoice.jobcard_id == JobCard.id)
        .where(JobCard.vehicle_id == vehicle_id)
        .order_by(JobCard.created_at.desc(), JobCard.id.desc())
    )
    history = []
    for row in result.all():
        entry = dict(row._mapping)
        entry["status"] = entry["status"].value
        if entry["payment_status"] is not None:
            entry["payment_status"] = entry["payment_status"].value
        history.append(ServiceHistoryEntry(**entry))
    return {"history": history}


@router.put("/{vehicle_id}", response_model=VehicleMessage)
async def update_vehicle(
    vehicle_id: int,
    vehicle_update: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ALL_ROLES)),
):
    """
    Update a vehicle. Customers may only update their own.
    """
    db_vehicle = await _get_vehicle(db, vehicle_id)
    ensure_owner(current_user, db_vehicle.customer_id, "Access denied. You can only update your own vehicles.")

    # Update only provided fields
    update_data = vehicle_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(db_vehicle, field, value)

    await _commit(db)
    await db.refresh(db_vehicle)

    return {"message": "Vehicle updated successfully", "vehicle": VehicleSchema.model_validate(db_vehicle)}


@router.delete("/{vehicle_id}", response_model=Message)
async def delete_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.CUSTOMER, UserRole.ADMIN)),
):
    """
    Delete a vehicle. Customers may only delete their own.
    """
    db_vehicle = await db.get(Vehicle, vehicle_id)
    if current_user.role == UserRole.CUSTOMER and (db_vehicle is None or db_vehicle.customer_id != current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only delete your own vehicles."
        )
    if db_vehicle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vehicle not found"
        )

    invoiced = await db.execute(
        select(Invoice.id).join(JobCard, Invoice.jobcard_id == JobCard.id).where(JobCard.vehicle_id == vehicle_id).limit(1)
    )
    if invoiced.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a vehicle with invoices"
        )

    await db.execute(delete(Vehicle).where(Vehicle.id == vehicle_id))
    await db.commit()

    logger.info("Vehicle %s deleted", vehicle_id)
    return {"message": "Vehicle deleted successfully"}
