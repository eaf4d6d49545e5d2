"""
Authentication and authorization helpers.

Passwords are hashed with bcrypt, tokens are HS256 JWTs. ``get_current_user``
verifies the bearer token and attaches the caller's identity to the request;
``require_roles`` gates a route on the caller's role.
"""
from datetime import datetime, timedelta, timezone
import hashlib
import secrets
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError

from svmms.config import get_settings
from svmms.models.user import UserRole

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Identity carried by an access token."""
    id: int
    email: str
    role: UserRole


# ==================== PASSWORDS ====================

def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ==================== TOKENS ====================

def _encode(payload: dict, secret: str, expires_in: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = {**payload, "iat": now, "exp": now + expires_in}
    return jwt.encode(claims, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, email: str, role: UserRole | str) -> str:
    role_value = role.value if isinstance(role, UserRole) else role
    return _encode(
        {"id": user_id, "email": email, "role": role_value, "type": "access"},
        settings.jwt_secret,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: int, email: str) -> tuple[str, datetime]:
    """Return a refresh token and its expiry timestamp."""
    expires_in = timedelta(days=settings.refresh_token_expire_days)
    # jti keeps two tokens issued within the same second distinct
    token = _encode(
        {"id": user_id, "email": email, "type": "refresh", "jti": secrets.token_hex(8)},
        settings.refresh_secret,
        expires_in,
    )
    return token, datetime.now(timezone.utc) + expires_in


def password_fingerprint(password_hash: str) -> str:
    """Short digest of a password hash; changes whenever the password does."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def create_reset_token(user_id: int, email: str, password_hash: str) -> str:
    # Bound to the current password, so the token stops working once used
    return _encode(
        {"id": user_id, "email": email, "type": "reset", "pwd": password_fingerprint(password_hash)},
        settings.jwt_secret,
        timedelta(minutes=settings.reset_token_expire_minutes),
    )


def decode_token(token: str, secret: str, expected_type: str) -> dict:
    """
    Decode and verify a token.

    Raises ``jwt.ExpiredSignatureError`` for expired tokens and
    ``jwt.InvalidTokenError`` for anything else that fails verification.
    """
    payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError("Unexpected token type")
    return payload


# ==================== DEPENDENCIES ====================

def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """
    Verify the bearer token and attach the caller to ``request.state.user``.
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("No token provided")

    try:
        payload = decode_token(credentials.credentials, settings.jwt_secret, "access")
        user = CurrentUser(id=payload["id"], email=payload["email"], role=payload["role"])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except (jwt.InvalidTokenError, KeyError, ValidationError):
        raise _unauthorized("Invalid token")

    request.state.user = user
    return user


def require_roles(*allowed_roles: UserRole):
    """
    Build a dependency that only lets the given roles through.

    It relies on ``get_current_user`` having run earlier in the chain.
    """
    allowed = frozenset(allowed_roles)

    async def role_checker(request: Request) -> CurrentUser:
        user = getattr(request.state, "user", None)
        if user is None:
            raise _unauthorized("Authentication required")
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions.",
            )
        return user

    return role_checker


STAFF = (UserRole.ADMIN, UserRole.MECHANIC)
ALL_ROLES = (UserRole.ADMIN, UserRole.MECHANIC, UserRole.CUSTOMER)


def customer_scope(user: CurrentUser) -> Optional[int]:
    """The customer id a caller is confined to, or None for staff."""
    return None if user.role.is_staff else user.id


def ensure_owner(user: CurrentUser, owner_id: int, message: str = "Access denied") -> None:
    """Reject a customer acting on another customer's record."""
    scope = customer_scope(user)
    if scope is not None and scope != owner_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
