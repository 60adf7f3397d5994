"""
Payout-specific exceptions.

Exception Hierarchy:
    PayoutValidationError (ValidationError)   - bounds / recipient fields
    PayoutNotFoundError (NotFoundError)       - unknown payout id
    ProviderError (ExternalServiceError)      - provider failure, when raised
    InvalidTransitionError (ConflictError)    - wraps django-fsm TransitionNotAllowed
    StaleRecordError (ConflictError)          - optimistic locking conflict
    LockAcquisitionError (ConflictError)      - distributed lock timeout

The provider adapter itself never raises; ProviderError exists for callers
that prefer an exception (ProviderResult.raise_for_failure()).

Usage:
    from payments.exceptions import InvalidTransitionError

    try:
        payout.reject(reason)
    except TransitionNotAllowed:
        raise InvalidTransitionError.for_payout(payout, "reject")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


class PayoutValidationError(ValidationError):
    """
    A payout request or command failed validation before any provider call.

    Example:
        raise PayoutValidationError(
            "Minimum payout amount for gcash is ₱100",
            error_code="AMOUNT_BELOW_MINIMUM",
            details={"field": "amount"},
        )
    """

    default_error_code: str = "PAYOUT_VALIDATION_ERROR"


class PayoutNotFoundError(NotFoundError):
    default_error_code: str = "PAYOUT_NOT_FOUND"

    @classmethod
    def for_id(cls, payout_id: Any) -> PayoutNotFoundError:
        return cls(
            f"Payout {payout_id} not found",
            details={"payout_id": str(payout_id)},
        )


class ProviderError(ExternalServiceError):
    """
    The disbursement provider rejected a request or could not be reached.

    Attributes:
        status_code: HTTP status from the provider, None for transport errors
        provider_code: Provider's structured error code, when it sent one
    """

    default_error_code: str = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        provider_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        details["status_code"] = status_code
        if provider_code:
            details["provider_code"] = provider_code
        super().__init__(message, error_code=error_code, details=details)
        self.status_code = status_code
        self.provider_code = provider_code


class InvalidTransitionError(ConflictError):
    """
    A payout command is not allowed from the payout's current status.

    The payout is left exactly as it was.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"

    @classmethod
    def for_payout(cls, payout: Any, transition: str) -> InvalidTransitionError:
        return cls(
            f"Cannot {transition} payout in '{payout.status}' status",
            details={
                "payout_id": str(payout.pk),
                "current_status": payout.status,
                "transition": transition,
            },
        )


class StaleRecordError(ConflictError):
    """
    The record changed between read and write (version mismatch).

    Raised by payments.locks.check_version; the caller should reload and
    decide again rather than retrying blindly.
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """Another process holds the distributed lock for this resource."""

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


__all__ = [
    "InvalidTransitionError",
    "LockAcquisitionError",
    "PayoutNotFoundError",
    "PayoutValidationError",
    "ProviderError",
    "StaleRecordError",
]
