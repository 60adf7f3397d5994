"""
Status enums for payout, booking and refund records.

PayoutStatus drives the django-fsm field on Payout. The groupings below are
the single source of truth for "which statuses count as what"; stats,
filters and reconciliation all read them instead of listing statuses inline.
"""

from django.db import models


class PayoutStatus(models.TextChoices):
    """
    Payout lifecycle.

    State Flow:
        PENDING -> APPROVED -> PROCESSING -> COMPLETED
        PENDING -> REJECTED
        PENDING/APPROVED/PROCESSING -> FAILED

    Terminal states: COMPLETED, REJECTED, FAILED
    """

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    REJECTED = "rejected", "Rejected"
    FAILED = "failed", "Failed"


# Funds committed but not yet confirmed delivered
IN_FLIGHT_STATUSES = frozenset({PayoutStatus.APPROVED, PayoutStatus.PROCESSING})

TERMINAL_STATUSES = frozenset(
    {PayoutStatus.COMPLETED, PayoutStatus.REJECTED, PayoutStatus.FAILED}
)

OPEN_STATUSES = frozenset({PayoutStatus.PENDING}) | IN_FLIGHT_STATUSES

# Denominator of the payout success rate
SETTLED_STATUSES = TERMINAL_STATUSES


class PayoutMethod(models.TextChoices):
    """Disbursement rails supported by the provider."""

    GCASH = "gcash", "GCash"
    PAYMAYA = "paymaya", "PayMaya"
    BANK_TRANSFER = "bank_transfer", "Bank Transfer"
    INSTAPAY = "instapay", "InstaPay"
    PESONET = "pesonet", "PESONet"


E_WALLET_METHODS = frozenset({PayoutMethod.GCASH, PayoutMethod.PAYMAYA})

BANK_METHODS = frozenset(
    {PayoutMethod.BANK_TRANSFER, PayoutMethod.INSTAPAY, PayoutMethod.PESONET}
)


class BookingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


# Bookings whose price counts as recognized revenue
REVENUE_BOOKING_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


class RefundStatus(models.TextChoices):
    """
    Refund lifecycle, owned by the refunds collaborator.

    Only COMPLETED refunds reduce recognized commission.
    """

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    COMPLETED = "completed", "Completed"
    REJECTED = "rejected", "Rejected"
