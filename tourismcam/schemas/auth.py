from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.security import is_valid_email, is_valid_phone


def _check_email(value: str) -> str:
    value = value.strip()
    if not is_valid_email(value):
        raise ValueError("Please enter a valid email address")
    return value


def _check_phone(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    if not is_valid_phone(value.strip()):
        raise ValueError("Please enter a valid phone number")
    return value.strip()


def _check_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Name is required and cannot be empty")
    if len(value) < 2:
        raise ValueError("Name must be at least 2 characters long")
    return value


def _check_password(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters long")
    return value


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    phone: str | None = None
    username: str | None = Field(default=None, min_length=3, max_length=40)

    @model_validator(mode="before")
    @classmethod
    def require_core_fields(cls, data: Any) -> Any:
        if isinstance(data, dict) and not all(data.get(k) for k in ("email", "password", "name")):
            raise ValueError("Email, password, and name are required")
        return data

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        return _check_phone(value)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)


class LogoutRequest(BaseModel):
    sessionId: str | None = None


class UpdateProfileRequest(BaseModel):
    name: str
    phone: str | None = None
    bio: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        return _check_phone(value)

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if len(value) > 500:
            raise ValueError("Bio cannot exceed 500 characters")
        return value or None


class PasswordResetRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)


class PasswordResetCompleteRequest(BaseModel):
    userId: str
    secret: str = Field(min_length=1)
    password: str
    passwordAgain: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)


class EmailVerificationRequest(BaseModel):
    userId: str
    secret: str = Field(min_length=1)


class UserPublic(BaseModel):
    id: str
    email: str
    name: str
    username: str | None = None
    phone: str | None = None
    bio: str | None = None
    role: str = "user"
    avatarUrl: str | None = None
    isVerified: bool = False
    postCount: int = 0


class RegisteredUser(BaseModel):
    id: str
    email: str
    name: str


class RegisterResponse(BaseModel):
    message: str
    user: RegisteredUser


class LoginResponse(BaseModel):
    message: str
    user: UserPublic
    token: str
    sessionId: str


class UserResponse(BaseModel):
    user: UserPublic


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    message: str
    status: str
    timestamp: str
