"""
Payment models.

    Payout                Disbursement of host earnings (FSM-managed)
    PayoutAuditEntry      Append-only status change trail
    BookingRevenueRecord  Booking projection used for reconciliation
    RefundRecord          Refund projection used for reconciliation
"""

from payments.models.audit import PayoutAuditEntry
from payments.models.payout import Payout
from payments.models.revenue import BookingRevenueRecord, RefundRecord

__all__ = [
    "BookingRevenueRecord",
    "Payout",
    "PayoutAuditEntry",
    "RefundRecord",
]
