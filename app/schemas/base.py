"""Base schemas for the application."""

from datetime import datetime
from typing import Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.exceptions.base import ErrorCode

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema class with common configuration.

    Fields are exposed in camelCase on the wire and accepted in either case.
    """
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class BaseModelSchema(BaseSchema):
    """Base schema for locally owned database models."""
    id: UUID
    created_at: datetime
    updated_at: datetime


class ApiEnvelope(BaseSchema, Generic[T]):
    """Uniform response envelope for conversation operations.

    ``error`` keeps the human readable message; ``error_code`` tells callers
    which kind of failure occurred without parsing that message.
    """
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, data: T | None = None) -> "ApiEnvelope[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_code: ErrorCode, data: T | None = None) -> "ApiEnvelope[T]":
        return cls(success=False, data=data, error=error, error_code=error_code)
