"""User and authentication schemas for request/response validation."""

from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from .base import BaseModelSchema, BaseSchema


class RegisterRequest(BaseSchema):
    """Schema for user registration request."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=6, max_length=128, description="Plain text password")
    username: str = Field(..., min_length=1, max_length=100, description="Display name")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate that username is not blank."""
        if not v.strip():
            raise ValueError("Username cannot be empty")
        return v.strip()


class LoginRequest(BaseSchema):
    """Schema for login request. Either email or username identifies the user."""

    email: Optional[str] = Field(None, max_length=255, description="Email address")
    username: Optional[str] = Field(None, max_length=100, description="Display name")
    password: str = Field(..., min_length=1, description="Plain text password")

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.email or self.username):
            raise ValueError("Either email or username is required")
        return self

    @property
    def identifier(self) -> str:
        return (self.email or self.username).strip()


class UserResponse(BaseModelSchema):
    """Schema for user response data."""

    email: str
    username: str
    identity: str


class AuthResponse(BaseSchema):
    """Schema for authentication response."""

    user: UserResponse
    token: str
    provider_token: Optional[str] = None
