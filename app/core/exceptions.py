"""
Base exception classes for application-wide error handling.

Service calls report expected failures through ServiceResult. These
exceptions cover the places where a failure has to cross a boundary that
is not a service return value, such as validating an inbound websocket
event before it is dispatched.

Exception Hierarchy:
    BaseApplicationError (base)
    └── ValidationError - Input validation failures

Usage:
    from core.exceptions import ValidationError

    raise ValidationError(
        "Malformed event payload",
        error_code="INVALID_PAYLOAD",
        details={"conversationId": ["This field is required."]},
    )

    try:
        event = parse_client_event(content)
    except ValidationError as e:
        await self.send_json(error_event(name, e.message, e.error_code, e.details))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Note:
        For REST request bodies, use DRF serializer validation.
        Use this where there is no DRF request cycle (websocket events).
    """

    default_error_code: str = "VALIDATION_ERROR"
