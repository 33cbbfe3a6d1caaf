# ruff: noqa: D107
"""Base exception classes."""

from enum import Enum
from typing import Any

from fastapi import HTTPException


class ErrorCode(str, Enum):
    """Error kinds surfaced to API callers."""

    AUTH_ERROR = "AUTH_ERROR"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_STATUS_CODES = {
    ErrorCode.AUTH_ERROR: 401,
    ErrorCode.CONFLICT: 409,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.GATEWAY_ERROR: 502,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.INTERNAL_ERROR: 500,
}


class BaseAppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.error_code = ErrorCode(error_code)
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={"message": message, "error_code": self.error_code.value, "details": details},
            headers=headers,
        )

    def __str__(self) -> str:
        return self.message


class AuthError(BaseAppException):
    """Exception raised when credentials or a session token are rejected."""

    def __init__(
        self,
        message: str = "Invalid credentials",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            error_code=ErrorCode.AUTH_ERROR,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ConflictError(BaseAppException):
    """Exception raised when a resource already exists."""

    def __init__(
        self,
        message: str = "Resource already exists",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=409, error_code=ErrorCode.CONFLICT, details=details)


class NotFoundError(BaseAppException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=404, error_code=ErrorCode.NOT_FOUND, details=details)


class ValidationError(BaseAppException):
    """Exception raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=422,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
        )
