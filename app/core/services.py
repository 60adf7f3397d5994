"""
Service layer primitives.

ServiceResult is the return type for operations whose failures are part of
normal business flow (provider declined, payout in the wrong state). Anything
unexpected is raised instead.

Usage:
    from core.services import BaseService, ServiceResult

    class PayoutOrchestrator(BaseService):
        @classmethod
        def reject_payout(cls, payout_id, reason) -> ServiceResult[Payout]:
            if not reason:
                return ServiceResult.failure(
                    "A rejection reason is required",
                    error_code="REJECTION_REASON_REQUIRED",
                )
            with cls.atomic():
                ...
            return ServiceResult.success(payout)
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

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Success/failure wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Payload on success
        error: Message on failure
        error_code: Machine-readable failure code
        errors: Field-level errors, for validation failures
        details: Extra failure context (provider status code, ids)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    details: dict[str, Any] | None = field(default=None)

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        """Alias for success()."""
        return cls(success=True, data=data)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
            details=details,
        )

    @classmethod
    def from_exception(cls, exc: Exception) -> ServiceResult[T]:
        """
        Build a failure from a caught exception.

        Application errors keep their own code and details; anything else
        is reported under the exception class name.
        """
        error_code = getattr(exc, "error_code", None) or exc.__class__.__name__.upper()
        return cls(
            success=False,
            error=getattr(exc, "message", None) or str(exc),
            error_code=error_code,
            details=getattr(exc, "details", None) or None,
        )

    def to_response(self) -> dict[str, Any]:
        """Render as a response body (data must already be serialized)."""
        if self.success:
            return {"success": True, "data": self.data}
        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        if self.details:
            response["details"] = self.details
        return response

    def map(self, func: Callable[[T], Any]) -> ServiceResult:
        """Apply func to data when successful; failures pass through."""
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data))
        return self

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for stateless services.

    Services expose classmethods only. Subclasses get a logger named after
    the class and a transaction helper.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """Run the block inside a database transaction."""
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """Log an exception and convert it into a failed ServiceResult."""
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=log_level >= logging.ERROR)
        return ServiceResult.from_exception(exc)


__all__ = [
    "BaseService",
    "ServiceResult",
]
