"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views, consumers and
    models. Views and consumers handle transport concerns (HTTP status codes,
    socket acknowledgements), models handle data, services handle logic.
    Because both transports call the same service, a rule such as
    "only participants may send" lives in exactly one place.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, authorization)
    - Exceptions: Use for unexpected failures (bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class ConversationService(BaseService):
        @classmethod
        def get_or_create_direct(cls, user, other_user_id) -> ServiceResult[...]:
            if user.id == other_user_id:
                return ServiceResult.failure(
                    "Cannot start a conversation with yourself",
                    error_code="SELF_CONVERSATION",
                )

            with cls.atomic():
                ...

            cls.get_logger().info(f"Created conversation {conversation.id}")
            return ServiceResult.success((conversation, True))

    # In view
    result = ConversationService.get_or_create_direct(request.user, other_id)
    if result.success:
        return Response(serializer(result.data).data, status=201)
    return Response(
        {"error": result.error, "error_code": result.error_code}, status=400
    )
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")
U = TypeVar("U")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, authorization errors,
    persistence failures that the caller must report but not retry).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        result = MessageService.send_message(conversation, sender, content)
        if result.success:
            message = result.data
        else:
            logger.warning(f"Send rejected: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Example:
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code="NOT_PARTICIPANT",
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Args:
            exc: The caught exception
            error_code: Optional error code (defaults to exception class name)
        """
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def map(self, func: Callable[[T], U]) -> ServiceResult[U]:
        """
        Transform the data if successful.

        Returns the failure unchanged if the result failed.

        Example:
            result = MessageService.edit_message(message, user, content)
            payload = result.map(build_message_event)
        """
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data))
        return self  # type: ignore[return-value]

    def __bool__(self) -> bool:
        """Allow using result in boolean context (same as result.success)."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management
    - Exception-to-result conversion

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        error_code: str | None = None,
        public_message: str | None = None,
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Additional context for logging
            error_code: Error code for the result (defaults to class name)
            public_message: Message returned to the caller instead of str(exc)
            log_level: Logging level (default ERROR)

        Example:
            try:
                with cls.atomic():
                    message = Message.objects.create(...)
            except DatabaseError as e:
                return cls.handle_exception(e, "send message", "PERSISTENCE_FAILED")
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=True)
        if public_message is not None:
            return ServiceResult.failure(
                public_message, error_code or exc.__class__.__name__.upper()
            )
        return ServiceResult.from_exception(exc, error_code)
