"""
User administration routes (admin only).
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from svmms.auth import CurrentUser, get_current_user, require_roles
from svmms.database import get_db
from svmms.models.user import User, UserRole
from svmms.pagination import PageParams, paginate
from svmms.schemas.common import Message
from svmms.schemas.user import MechanicList, RoleUpdate, User as UserSchema, UserList, UserMessage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(get_current_user), Depends(require_roles(UserRole.ADMIN))],
)


@router.get("", response_model=UserList)
async def get_users(
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    page: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """
    Get users, newest first, optionally searched by name/email and filtered by role.
    """
    query = select(User)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role:
        query = query.where(User.role == role)
    query = query.order_by(User.created_at.desc(), User.id.desc())

    rows, pagination = await paginate(db, query, page)
    return {"users": [UserSchema.model_validate(row[0]) for row in rows], "pagination": pagination}


@router.get("/mechanics", response_model=MechanicList)
async def get_mechanics(db: AsyncSession = Depends(get_db)):
    """
    Get every mechanic.
    """
    result = await db.execute(
        select(User).where(User.role == UserRole.MECHANIC).order_by(User.name)
    )
    return {"mechanics": [UserSchema.model_validate(user) for user in result.scalars().all()]}


@router.put("/{user_id}/role", response_model=UserMessage)
async def update_user_role(
    user_id: int,
    role_update: RoleUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Change a user's role.
    """
    db_user = await db.get(User, user_id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    db_user.role = role_update.role
    await db.commit()
    await db.refresh(db_user)
    logger.info("User %s is now %s", db_user.id, db_user.role.value)
    return {"message": "User role updated successfully", "user": UserSchema.model_validate(db_user)}


@router.delete("/{user_id}", response_model=Message)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Delete a user together with their vehicles, bookings, job cards and invoices.
    """
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    db_user = await db.get(User, user_id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    # Owned rows go through ON DELETE CASCADE
    await db.execute(delete(User).where(User.id == user_id))
    await db.commit()
    logger.info("User %s deleted", user_id)
    return {"message": "User deleted successfully"}
