"""
Authentication routes: registration, login, tokens and password management.
"""
import logging
from datetime import datetime, timezone

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from svmms.auth import (
    CurrentUser,
    create_access_token,
    create_refresh_token,
    create_reset_token,
    decode_token,
    get_current_user,
    hash_password,
    password_fingerprint,
    require_roles,
    verify_password,
)
from svmms.config import get_settings
from svmms.database import get_db
from svmms.models.user import RefreshToken, User, UserRole
from svmms.schemas.common import Message
from svmms.schemas.user import (
    AccessToken,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RefreshRequest,
    ResetPasswordRequest,
    Token,
    User as UserSchema,
    UserCreate,
    UserEnvelope,
    UserMessage,
)

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["authentication"])


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def _revoke_refresh_tokens(db: AsyncSession, user_id: int) -> None:
    await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))


async def _create_user(db: AsyncSession, user_in: UserCreate, role: UserRole) -> User:
    if await _get_user_by_email(db, user_in.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists with this email"
        )

    db_user = User(
        name=user_in.name,
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        role=role,
        phone=user_in.phone,
        address=user_in.address,
    )
    db.add(db_user)
    await db.flush()
    return db_user


async def _issue_tokens(db: AsyncSession, user: User) -> dict:
    """Create an access/refresh pair and persist the refresh token."""
    access_token = create_access_token(user.id, user.email, user.role)
    refresh_token, expires_at = create_refresh_token(user.id, user.email)
    db.add(RefreshToken(user_id=user.id, token=refresh_token, expires_at=expires_at))
    await db.commit()
    await db.refresh(user)
    return {"accessToken": access_token, "refreshToken": refresh_token}


async def _get_user_for(db: AsyncSession, current_user: CurrentUser, user_id: int) -> User:
    if current_user.id != user_id and current_user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    db_user = await db.get(User, user_id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return db_user


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    """
    Register a new customer account.
    """
    db_user = await _create_user(db, user_in, UserRole.CUSTOMER)
    tokens = await _issue_tokens(db, db_user)
    logger.info("User %s registered", db_user.id)
    return {"message": "User registered successfully", **tokens, "user": UserSchema.model_validate(db_user)}


@router.post(
    "/create-user",
    response_model=UserMessage,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_user)],
)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
):
    """
    Create a user with any role (admin only).
    """
    db_user = await _create_user(db, user_in, user_in.role)
    await db.commit()
    await db.refresh(db_user)
    logger.info("User %s created by admin %s with role %s", db_user.id, current_user.id, db_user.role.value)
    return {"message": "User created successfully", "user": UserSchema.model_validate(db_user)}


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Login and receive an access token and a refresh token.
    """
    db_user = await _get_user_by_email(db, credentials.email)
    if not db_user or not verify_password(credentials.password, db_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    tokens = await _issue_tokens(db, db_user)
    return {"message": "Login successful", **tokens, "user": UserSchema.model_validate(db_user)}


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Get the current user's profile.
    """
    db_user = await db.get(User, current_user.id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"user": UserSchema.model_validate(db_user)}


@router.put("/users/{user_id}", response_model=UserMessage)
async def update_profile(
    user_id: int,
    profile: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Update a profile. Users may update their own, admins anyone's.
    """
    db_user = await _get_user_for(db, current_user, user_id)

    for field, value in profile.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(db_user, field, value)

    await db.commit()
    await db.refresh(db_user)
    return {"message": "Profile updated successfully", "user": UserSchema.model_validate(db_user)}


@router.put("/users/{user_id}/change-password", response_model=Message)
async def change_password(
    user_id: int,
    passwords: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Change a password after confirming the current one.
    """
    db_user = await _get_user_for(db, current_user, user_id)

    if not verify_password(passwords.oldPassword, db_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    db_user.password_hash = hash_password(passwords.newPassword)
    await _revoke_refresh_tokens(db, db_user.id)
    await db.commit()
    logger.info("Password changed for user %s", db_user.id)
    return {"message": "Password changed successfully"}


@router.post("/forgot-password", response_model=ForgotPasswordResponse, response_model_exclude_none=True)
async def forgot_password(request: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    """
    Issue a password reset token.

    The token is returned in the response; nothing is emailed.
    """
    db_user = await _get_user_by_email(db, request.email)
    if db_user is None:
        return {"message": "If an account exists with this email, a password reset link has been sent."}

    return {
        "message": "Password reset token generated",
        "resetToken": create_reset_token(db_user.id, db_user.email, db_user.password_hash),
    }


@router.post("/reset-password", response_model=Message)
async def reset_password(request: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    """
    Set a new password using a reset token.
    """
    try:
        payload = decode_token(request.token, settings.jwt_secret, "reset")
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )

    db_user = await db.get(User, payload.get("id"))
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if payload.get("pwd") != password_fingerprint(db_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )

    db_user.password_hash = hash_password(request.newPassword)
    await _revoke_refresh_tokens(db, db_user.id)
    await db.commit()
    logger.info("Password reset for user %s", db_user.id)
    return {"message": "Password reset successfully"}


@router.post("/refresh-token", response_model=AccessToken)
async def refresh_access_token(request: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """
    Exchange a refresh token for a new access token.
    """
    if not request.refreshToken:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token required")

    try:
        decode_token(request.refreshToken, settings.refresh_secret, "refresh")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    result = await db.execute(
        select(RefreshToken.user_id).where(
            RefreshToken.token == request.refreshToken,
            RefreshToken.expires_at > datetime.now(timezone.utc),
        )
    )
    user_id = result.scalar_one_or_none()
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token expired or invalid"
        )

    db_user = await db.get(User, user_id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return {"accessToken": create_access_token(db_user.id, db_user.email, db_user.role)}


@router.post("/logout", response_model=Message)
async def logout(request: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """
    Revoke a refresh token.
    """
    if request.refreshToken:
        await db.execute(delete(RefreshToken).where(RefreshToken.token == request.refreshToken))
        await db.commit()
    return {"message": "Logged out successfully"}
