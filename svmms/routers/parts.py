"""
Parts inventory routes.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, or_, select
from typing import Optional

from svmms.auth import CurrentUser, STAFF, get_current_user, require_roles
from svmms.database import get_db
from svmms.errors import unique_violation
from svmms.models.jobcard import JobCardSparePart
from svmms.models.part import Part
from svmms.models.user import UserRole
from svmms.schemas.common import Message
from svmms.schemas.part import Part as PartSchema, PartCreate, PartEnvelope, PartList, PartMessage, PartUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parts", tags=["parts"], dependencies=[Depends(get_current_user)])

UNIQUE_MESSAGES = {"part_number": "Part number already exists"}


async def _get_part(db: AsyncSession, part_id: int) -> Part:
    part = await db.get(Part, part_id)
    if part is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Part not found"
        )
    return part


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise unique_violation(exc, UNIQUE_MESSAGES, "Part already exists")


@router.post("", response_model=PartMessage, status_code=status.HTTP_201_CREATED)
async def create_part(
    part: PartCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Add a part to inventory.
    """
    db_part = Part(**part.model_dump())
    db.add(db_part)
    await _commit(db)
    await db.refresh(db_part)

    logger.info("Part %s (%s) added with %s in stock", db_part.id, db_part.name, db_part.quantity)
    return {"message": "Part added successfully", "part": PartSchema.model_validate(db_part)}


@router.get("", response_model=PartList)
async def get_parts(search: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """
    Get all parts by name, optionally searched by name or part number.
    """
    query = select(Part)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Part.name.ilike(pattern), Part.part_number.ilike(pattern)))
    result = await db.execute(query.order_by(Part.name))
    return {"parts": [PartSchema.model_validate(part) for part in result.scalars().all()]}


@router.get("/low-stock", response_model=PartList)
async def get_low_stock_parts(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Get parts at or below their reorder level, scarcest first.
    """
    result = await db.execute(
        select(Part).where(Part.quantity <= Part.reorder_level).order_by(Part.quantity, Part.name)
    )
    return {"parts": [PartSchema.model_validate(part) for part in result.scalars().all()]}


@router.get("/{part_id}", response_model=PartEnvelope)
async def get_part(part_id: int, db: AsyncSession = Depends(get_db)):
    return {"part": PartSchema.model_validate(await _get_part(db, part_id))}


@router.put("/{part_id}", response_model=PartMessage)
async def update_part(
    part_id: int,
    part_update: PartUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*STAFF)),
):
    """
    Update a part.
    """
    db_part = await _get_part(db, part_id)

    # Update only provided fields
    for field, value in part_update.model_dump(exclude_unset=True).items():
        setattr(db_part, field, value)

    await _commit(db)
    await db.refresh(db_part)
    return {"message": "Part updated successfully", "part": PartSchema.model_validate(db_part)}


@router.delete("/{part_id}", response_model=Message)
async def delete_part(
    part_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    await _get_part(db, part_id)
    used = await db.execute(select(JobCardSparePart.id).where(JobCardSparePart.part_id == part_id).limit(1))
    if used.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a part that has been used on job cards"
        )
    await db.execute(delete(Part).where(Part.id == part_id))
    await db.commit()

    logger.info("Part %s deleted", part_id)
    return {"message": "Part deleted successfully"}
