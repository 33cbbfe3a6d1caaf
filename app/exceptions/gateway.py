# ruff: noqa: D107
"""Conversation provider exceptions."""

from typing import Any

from twilio.base.exceptions import TwilioException, TwilioRestException

from .base import BaseAppException, ErrorCode, NotFoundError


class GatewayError(BaseAppException):
    """Exception raised when the conversation provider call fails."""

    def __init__(
        self,
        message: str = "Conversation provider error",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.cause = cause
        super().__init__(
            message=message,
            status_code=502,
            error_code=ErrorCode.GATEWAY_ERROR,
            details=details,
        )


def map_provider_error(error: Exception, resource: str) -> BaseAppException:
    """Translate a Twilio client failure into an application exception.

    A provider 404 becomes ``NotFoundError``; every other failure, including
    transport errors that never reached the provider, becomes ``GatewayError``.
    """
    if isinstance(error, TwilioRestException):
        details = {"provider_status": error.status, "provider_code": error.code}
        if error.status == 404:
            return NotFoundError(f"{resource} not found", details=details)
        return GatewayError(f"Provider rejected request: {error.msg}", cause=error, details=details)
    if isinstance(error, TwilioException):
        return GatewayError(f"Provider error: {error}", cause=error)
    return GatewayError(f"Provider transport failure: {error}", cause=error)
