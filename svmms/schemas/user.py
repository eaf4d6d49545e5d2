"""
Pydantic schemas for User and Authentication.
"""
import re
from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional
from svmms.models.user import UserRole
from svmms.schemas.common import Pagination

SPECIAL_CHARACTERS = re.compile(r'[!@#$%^&*(),.?":{}|<>]')


def check_password_strength(password: str, label: str = "Password") -> str:
    """Validate password strength"""
    if not 6 <= len(password) <= 16:
        raise ValueError(f"{label} must be between 6 and 16 characters")
    if not re.search(r"[A-Z]", password):
        raise ValueError(f"{label} must contain at least one uppercase letter")
    if not SPECIAL_CHARACTERS.search(password):
        raise ValueError(f"{label} must contain at least one special character")
    return password


def check_person_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("Name is required")
    if not re.fullmatch(r"[A-Za-z\s]+", name):
        raise ValueError("Name must contain only letters and spaces")
    return name


class UserBase(BaseModel):
    """Base user schema with common fields."""
    name: str
    email: EmailStr
    role: UserRole = UserRole.CUSTOMER
    phone: Optional[str] = None
    address: Optional[str] = None


class UserCreate(UserBase):
    """Schema for registering or creating a user."""
    password: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return check_person_name(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password_strength(value)


class ProfileUpdate(BaseModel):
    """Schema for updating a user's own profile."""
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return check_person_name(value) if value is not None else value


class RoleUpdate(BaseModel):
    """Schema for an admin changing a user's role."""
    role: UserRole


class PasswordChange(BaseModel):
    """Schema for changing a password."""
    oldPassword: str = Field(min_length=1)
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return check_password_strength(value, "New password")


class User(UserBase):
    """Schema for user responses."""
    id: int
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserEnvelope(BaseModel):
    user: User


class UserMessage(BaseModel):
    message: str
    user: User


class UserList(BaseModel):
    users: list[User]
    pagination: Pagination


class MechanicList(BaseModel):
    mechanics: list[User]


class LoginRequest(BaseModel):
    """Schema for login request."""
    email: EmailStr
    password: str = Field(min_length=1)


class Token(BaseModel):
    """Schema for authentication tokens."""
    message: str
    accessToken: str
    refreshToken: str
    user: User


class RefreshRequest(BaseModel):
    refreshToken: Optional[str] = None


class AccessToken(BaseModel):
    accessToken: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordResponse(BaseModel):
    message: str
    resetToken: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return check_password_strength(value, "New password")
