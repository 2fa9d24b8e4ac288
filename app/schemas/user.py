from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from app.models.user import Role
from app.schemas.base import BaseSchema


def check_password_strength(v: str) -> str:
    if not any(c.isalpha() for c in v):
        raise ValueError("Password must contain at least one letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


class UserCreate(BaseSchema):
    """Schema for account registration."""

    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    confirm_password: str = Field(..., min_length=8, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def validate_passwords_match(self) -> "UserCreate":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserLogin(BaseSchema):
    """Login with either email or username."""

    login: str = Field(..., min_length=1, description="Email address or username")
    password: str


class RefreshTokenRequest(BaseSchema):
    refresh_token: str


class UserResponse(BaseSchema):
    """Schema for user response."""

    id: str
    username: str
    email: str
    role: Role
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class TokenResponse(BaseSchema):
    """Schema for authentication token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(BaseSchema):
    """Account plus a fresh token pair, returned by register and login."""

    user: UserResponse
    tokens: TokenResponse


class LogoutResponse(BaseSchema):
    message: str
    revoked_before: int = Field(..., description="Token version that is no longer accepted")


class ForgotPasswordRequest(BaseSchema):
    """Schema for forgot password request."""

    email: EmailStr


class ForgotPasswordResponse(BaseSchema):
    message: str
    # Handed back directly while the portal sends no email
    token: Optional[str] = None


class ResetPasswordRequest(BaseSchema):
    """Schema for reset password request."""

    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)
    confirm_password: str = Field(..., min_length=8, max_length=100)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def validate_passwords_match(self) -> "ResetPasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class MessageResponse(BaseSchema):
    message: str
