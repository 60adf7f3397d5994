"""
Application error hierarchy and the DRF exception handler that renders it.

Every domain error carries a human-readable message, a machine-readable
error code and an optional details dict. Views never build error payloads
by hand: they raise (or let services raise) one of these classes and
`api_exception_handler` turns it into a JSON response with the matching
HTTP status.

Exception Hierarchy:
    BaseApplicationError
    ├── ValidationError       -> 400
    ├── NotFoundError         -> 404
    ├── PermissionDeniedError -> 403
    ├── ConflictError         -> 409
    ├── RateLimitError        -> 429
    └── ExternalServiceError  -> 502

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError(
        f"Payout {payout_id} not found",
        error_code="PAYOUT_NOT_FOUND",
        details={"payout_id": str(payout_id)},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import status

if TYPE_CHECKING:
    from typing import Any

    from rest_framework.response import Response

logger = logging.getLogger(__name__)


class BaseApplicationError(Exception):
    """
    Base class for all domain errors.

    Attributes:
        message: Human-readable description, safe to show an operator
        error_code: Stable code clients can branch on
        details: Extra context (field names, ids, provider codes)
        http_status: Status used by api_exception_handler
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = status.HTTP_400_BAD_REQUEST

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

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an API response body."""
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

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
    """Input failed a business rule before anything was persisted."""

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = status.HTTP_400_BAD_REQUEST


class NotFoundError(BaseApplicationError):
    """A single resource that was expected to exist does not."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """Caller is authenticated but not allowed to perform the operation."""

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = status.HTTP_403_FORBIDDEN


class ConflictError(BaseApplicationError):
    """
    Operation conflicts with the current state of a resource.

    Covers invalid state transitions, stale optimistic-lock reads and
    lock contention.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = status.HTTP_409_CONFLICT


class RateLimitError(BaseApplicationError):
    """Too many requests; include retry_after in details when known."""

    default_error_code: str = "RATE_LIMIT_EXCEEDED"
    http_status: int = status.HTTP_429_TOO_MANY_REQUESTS


class ExternalServiceError(BaseApplicationError):
    """
    A third-party service (the disbursement provider) failed.

    The provider's own detail text goes in `message` when it has one;
    the HTTP status it answered with goes in details["status_code"].
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = status.HTTP_502_BAD_GATEWAY


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """
    DRF exception handler that understands BaseApplicationError.

    Falls back to DRF's default handler for everything else (serializer
    errors, authentication failures, 404s raised by get_object_or_404).
    """
    # DRF views import the auth classes, which need the app registry
    from rest_framework.response import Response
    from rest_framework.views import exception_handler

    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            "Application error returned to client",
            extra={
                "error_code": exc.error_code,
                "view": view.__class__.__name__ if view else None,
                "http_status": exc.http_status,
            },
        )
        return Response(exc.to_dict(), status=exc.http_status)
    return exception_handler(exc, context)


__all__ = [
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "RateLimitError",
    "ExternalServiceError",
    "api_exception_handler",
]
