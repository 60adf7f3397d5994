"""
Status enums and groupings for payment models.
"""

from payments.state_machines.states import (
    BANK_METHODS,
    E_WALLET_METHODS,
    IN_FLIGHT_STATUSES,
    OPEN_STATUSES,
    REVENUE_BOOKING_STATUSES,
    SETTLED_STATUSES,
    TERMINAL_STATUSES,
    BookingStatus,
    PayoutMethod,
    PayoutStatus,
    RefundStatus,
)

__all__ = [
    "BANK_METHODS",
    "E_WALLET_METHODS",
    "IN_FLIGHT_STATUSES",
    "OPEN_STATUSES",
    "REVENUE_BOOKING_STATUSES",
    "SETTLED_STATUSES",
    "TERMINAL_STATUSES",
    "BookingStatus",
    "PayoutMethod",
    "PayoutStatus",
    "RefundStatus",
]
