"""
Adapter for the PayMongo disbursement API.

All provider traffic goes through PayMongoAdapter. Every operation returns a
ProviderResult; transport errors, non-2xx answers and malformed bodies are
translated into a failed result carrying the provider's first error detail
(or the transport error message) and the HTTP status. Nothing raises across
this boundary.

Resources:
    POST /payouts               create_payout
    GET  /payouts/{id}          retrieve_payout
    GET  /payouts               list_payouts (limit/after/before cursors)
    POST /batch_payouts         create_batch_payout
    POST /account_validations   validate_bank_account

Configuration (via settings):
    PAYMONGO_SECRET_KEY: API secret key (Basic auth username, empty password)
    PAYMONGO_API_BASE: Base URL (default: https://api.paymongo.com/v1)
    PAYMONGO_TIMEOUT_SECONDS: Per-request timeout (default: 10)
    PAYMONGO_RATE_LIMIT_PER_SECOND: Token bucket refill rate (default: 2.0)

Usage:
    adapter = PayMongoAdapter.from_settings()
    result = adapter.create_payout(payout)
    if result.success:
        provider_id = result.data["id"]
    else:
        logger.warning(result.error, extra={"status_code": result.code})
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import requests
from django.conf import settings

from payments.adapters.rate_limit import TokenBucketRateLimiter
from payments.exceptions import ProviderError
from payments.state_machines import E_WALLET_METHODS, PayoutStatus

if TYPE_CHECKING:
    from typing import Any

    from payments.models import Payout


DEFAULT_API_BASE = "https://api.paymongo.com/v1"

GENERIC_PROVIDER_ERROR = "Disbursement provider request failed"

# Friendly text for provider error codes the operator is likely to see
PROVIDER_ERROR_MESSAGES: dict[str, str] = {
    "insufficient_balance": "Insufficient balance in PayMongo account",
    "invalid_account": "Invalid recipient account details",
    "duplicate_request": "Duplicate payout request detected",
    "account_not_found": "Recipient account not found",
    "service_unavailable": "PayMongo service temporarily unavailable",
}

# Provider payout status -> local payout status
PROVIDER_STATUS_MAP: dict[str, str] = {
    "pending": PayoutStatus.PROCESSING,
    "processing": PayoutStatus.PROCESSING,
    "paid": PayoutStatus.COMPLETED,
    "failed": PayoutStatus.FAILED,
    "cancelled": PayoutStatus.FAILED,
}


def map_provider_status(provider_status: str | None) -> str:
    """Translate a provider payout status; unknown values read as processing."""
    return PROVIDER_STATUS_MAP.get((provider_status or "").lower(), PayoutStatus.PROCESSING)


def friendly_error_message(provider_code: str | None) -> str:
    return PROVIDER_ERROR_MESSAGES.get(provider_code or "", "An error occurred processing the payout")


def to_minor_units(amount: Any) -> int:
    """Pesos to centavos, rounded half-up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ProviderResult:
    """
    Discriminated result of a provider call.

    Attributes:
        success: Whether the provider accepted the request
        data: Provider `data` payload on success
        error: Provider detail text or transport error message on failure
        code: HTTP status of the failed response, None for transport errors
        provider_code: Provider's structured error code, when present
        has_more: Pagination flag for list operations
    """

    success: bool
    data: Any = None
    error: str | None = None
    code: int | None = None
    provider_code: str | None = None
    has_more: bool = False
    duration_ms: float = field(default=0.0, repr=False)

    @classmethod
    def ok(cls, data: Any, has_more: bool = False) -> ProviderResult:
        return cls(success=True, data=data, has_more=has_more)

    @classmethod
    def failed(
        cls,
        error: str,
        code: int | None = None,
        provider_code: str | None = None,
    ) -> ProviderResult:
        return cls(success=False, error=error, code=code, provider_code=provider_code)

    def raise_for_failure(self, **details: Any) -> ProviderResult:
        """Raise ProviderError on failure; extra kwargs land in its details."""
        if not self.success:
            raise ProviderError(
                self.error or GENERIC_PROVIDER_ERROR,
                status_code=self.code,
                provider_code=self.provider_code,
                details=details,
            )
        return self


# =============================================================================
# Payload Builders
# =============================================================================


def recipient_properties(method: str, recipient: dict[str, Any]) -> dict[str, Any]:
    """Shape recipient fields into the provider's `properties` object."""
    if method in E_WALLET_METHODS:
        return {
            "account_number": recipient.get("account_number"),
            "account_name": recipient.get("account_name"),
        }
    return {
        "bank_code": recipient.get("bank_code"),
        "account_number": recipient.get("account_number"),
        "account_name": recipient.get("account_name"),
        "account_type": recipient.get("account_type") or "savings",
    }


def payout_attributes(payout: Payout) -> dict[str, Any]:
    description = (payout.metadata or {}).get("description") or f"Payout for Host #{payout.host_id}"
    return {
        "amount": to_minor_units(payout.amount),
        "currency": payout.currency,
        "description": description,
        "metadata": {
            "host_id": payout.host_id,
            "payout_id": str(payout.pk),
            "booking_ids": list(payout.booking_ids or []),
        },
        "type": payout.method,
        "properties": recipient_properties(payout.method, payout.recipient or {}),
    }


# =============================================================================
# Adapter
# =============================================================================


class PayMongoAdapter:
    """
    HTTP client for the disbursement provider.

    Holds a requests.Session with Basic auth and a TokenBucketRateLimiter.
    One instance is shared per process; the limiter therefore paces all
    provider calls made from that process.
    """

    def __init__(
        self,
        secret_key: str,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 10,
        rate_limiter: TokenBucketRateLimiter | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter()
        self.session = session or requests.Session()
        # requests encodes (user, "") as base64("user:")
        self.session.auth = (secret_key, "")
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @classmethod
    def from_settings(cls) -> PayMongoAdapter:
        return cls(
            secret_key=settings.PAYMONGO_SECRET_KEY,
            base_url=getattr(settings, "PAYMONGO_API_BASE", DEFAULT_API_BASE),
            timeout=getattr(settings, "PAYMONGO_TIMEOUT_SECONDS", 10),
            rate_limiter=TokenBucketRateLimiter(
                rate_per_second=getattr(settings, "PAYMONGO_RATE_LIMIT_PER_SECOND", 2.0),
            ),
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Operations
    # =========================================================================

    def create_payout(self, payout: Payout) -> ProviderResult:
        return self._request(
            "POST",
            "/payouts",
            operation="create_payout",
            json={"data": {"attributes": payout_attributes(payout)}},
            log_context={
                "payout_id": str(payout.pk),
                "host_id": payout.host_id,
                "method": payout.method,
                "amount": str(payout.amount),
            },
        )

    def retrieve_payout(self, provider_payout_id: str) -> ProviderResult:
        return self._request(
            "GET",
            f"/payouts/{provider_payout_id}",
            operation="retrieve_payout",
            log_context={"provider_payout_id": provider_payout_id},
            level=logging.DEBUG,
        )

    def list_payouts(
        self,
        limit: int = 10,
        after: str | None = None,
        before: str | None = None,
    ) -> ProviderResult:
        params: dict[str, Any] = {"limit": limit}
        if after:
            params["after"] = after
        if before:
            params["before"] = before
        return self._request(
            "GET",
            "/payouts",
            operation="list_payouts",
            params=params,
            log_context={"limit": limit, "after": after, "before": before},
        )

    def create_batch_payout(self, payouts: list[Payout]) -> ProviderResult:
        """Submit several payouts in one provider request."""
        return self._request(
            "POST",
            "/batch_payouts",
            operation="create_batch_payout",
            json={
                "data": {
                    "attributes": {
                        "payouts": [payout_attributes(payout) for payout in payouts],
                    }
                }
            },
            log_context={"payout_count": len(payouts)},
        )

    def validate_bank_account(self, bank_code: str, account_number: str) -> ProviderResult:
        """
        Pre-flight check of a bank account.

        Returns data {"valid": bool, "account_name": str | None}.
        """
        result = self._request(
            "POST",
            "/account_validations",
            operation="validate_bank_account",
            json={
                "data": {
                    "attributes": {
                        "bank_code": bank_code,
                        "account_number": account_number,
                    }
                }
            },
            log_context={"bank_code": bank_code},
        )
        if not result.success:
            return result
        attributes = (result.data or {}).get("attributes") or {}
        return ProviderResult.ok(
            {
                "valid": attributes.get("status") == "valid",
                "account_name": attributes.get("account_name"),
            }
        )

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        log_context: dict[str, Any] | None = None,
        level: int = logging.INFO,
    ) -> ProviderResult:
        logger = self.get_logger()
        log_context = {"operation": operation, **(log_context or {})}

        waited = self.rate_limiter.acquire()
        start_time = time.monotonic()
        logger.log(level, "Starting provider operation", extra={**log_context, "rate_limit_wait": waited})

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                f"Provider request failed: {type(e).__name__}",
                extra={**log_context, "duration_ms": duration_ms},
            )
            result = ProviderResult.failed(str(e) or GENERIC_PROVIDER_ERROR)
            result.duration_ms = duration_ms
            return result

        duration_ms = (time.monotonic() - start_time) * 1000
        body = self._parse_body(response)

        if not response.ok:
            detail, provider_code = self._first_error(body)
            logger.warning(
                "Provider returned an error",
                extra={
                    **log_context,
                    "status_code": response.status_code,
                    "provider_code": provider_code,
                    "duration_ms": duration_ms,
                },
            )
            if not detail:
                detail = friendly_error_message(provider_code) if provider_code else GENERIC_PROVIDER_ERROR
            result = ProviderResult.failed(
                detail,
                code=response.status_code,
                provider_code=provider_code,
            )
            result.duration_ms = duration_ms
            return result

        logger.log(
            level,
            "Provider operation completed",
            extra={**log_context, "status_code": response.status_code, "duration_ms": duration_ms},
        )
        result = ProviderResult.ok(body.get("data"), has_more=bool(body.get("has_more", False)))
        result.duration_ms = duration_ms
        return result

    @staticmethod
    def _parse_body(response: requests.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _first_error(body: dict[str, Any]) -> tuple[str | None, str | None]:
        errors = body.get("errors") or []
        if not errors or not isinstance(errors[0], dict):
            return None, None
        return errors[0].get("detail"), errors[0].get("code")


__all__ = [
    "PROVIDER_ERROR_MESSAGES",
    "PayMongoAdapter",
    "ProviderResult",
    "friendly_error_message",
    "map_provider_status",
    "payout_attributes",
    "recipient_properties",
    "to_minor_units",
]
