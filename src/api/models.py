"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
The stateless input predicates (email format, password strength, name
length, code shape) live here so the domain only sees well-formed input.
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20
NAME_MAX_LENGTH = 50


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    email: EmailStr
    name: str = Field(..., description="Display name (1-50 characters)")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="8-20 characters with upper case, lower case and a digit",
    )

    @field_validator("name")
    @classmethod
    def name_length(cls, value: str) -> str:
        value = value.strip()
        if not 1 <= len(value) <= NAME_MAX_LENGTH:
            raise ValueError(f"Name must be between 1 and {NAME_MAX_LENGTH} characters")
        return value

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", value):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", value):
            raise ValueError("Password must contain at least one number")
        return value


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    message: str
    email: str
    code_expires_at: datetime


class VerifyCodeRequest(BaseModel):
    """Request model for code verification."""

    email: EmailStr
    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^[0-9]{6}$",
        description="6-digit verification code",
    )


class ResendCodeRequest(BaseModel):
    email: EmailStr


class ResendCodeResponse(BaseModel):
    message: str
    code_expires_at: datetime
    can_resend_after: datetime


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str


class SessionResponse(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int
    expires_at: datetime


class AuthResponse(BaseModel):
    """
    Response model for verify-code, login and refresh-token.

    ``session`` is null with a ``warning`` when the account was created but
    no session could be issued; the client should log in.
    """

    user: UserResponse
    session: SessionResponse | None
    warning: str | None = None


class ProfileResponse(BaseModel):
    id: str
    email: str
    name: str
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error; extra keys such as attempts_remaining are allowed."""

    model_config = ConfigDict(extra="allow")

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: ErrorDetail
