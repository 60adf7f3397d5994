"""
Adapters for external payment services.

All disbursement provider calls go through PayMongoAdapter so that auth,
pacing, error translation and logging are handled in one place.

Usage:
    from payments.adapters import PayMongoAdapter

    adapter = PayMongoAdapter.from_settings()
    result = adapter.validate_bank_account("BPI", "1234567890")
"""

from payments.adapters.paymongo_adapter import (
    PROVIDER_ERROR_MESSAGES,
    PayMongoAdapter,
    ProviderResult,
    friendly_error_message,
    map_provider_status,
    payout_attributes,
    recipient_properties,
    to_minor_units,
)
from payments.adapters.rate_limit import TokenBucketRateLimiter

__all__ = [
    "PROVIDER_ERROR_MESSAGES",
    "PayMongoAdapter",
    "ProviderResult",
    "TokenBucketRateLimiter",
    "friendly_error_message",
    "map_provider_status",
    "payout_attributes",
    "recipient_properties",
    "to_minor_units",
]
