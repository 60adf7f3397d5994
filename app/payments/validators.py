"""
Pre-flight validation of payout requests.

PayoutValidator answers "may this request become a pending payout?" using
FeePolicy bounds and the recipient fields each method needs. It returns a
ValidationOutcome and never raises, persists or calls the provider.

Usage:
    outcome = PayoutValidator(FeePolicy.from_settings()).validate(request)
    if not outcome:
        return ServiceResult.failure(outcome.reason, error_code=outcome.error_code)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from payments.policy import to_decimal
from payments.state_machines import PayoutMethod

if TYPE_CHECKING:
    from typing import Any

    from payments.policy import FeePolicy


@dataclass
class PayoutRequest:
    """A host withdrawal request as accepted from the booking side."""

    host_id: int
    amount: Any
    method: str
    recipient: dict[str, Any] = field(default_factory=dict)
    booking_ids: list[int] = field(default_factory=list)
    description: str = ""


@dataclass(frozen=True)
class ValidationOutcome:
    """Ok when reason is None; otherwise Rejected(reason)."""

    reason: str | None = None
    error_code: str | None = None
    field_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def accepted(cls) -> ValidationOutcome:
        return cls()

    @classmethod
    def rejected(
        cls, reason: str, error_code: str, field_name: str | None = None
    ) -> ValidationOutcome:
        return cls(reason=reason, error_code=error_code, field_name=field_name)


REQUIRED_RECIPIENT_FIELDS = ("account_number", "account_name")


def required_recipient_fields(method: str) -> tuple[str, ...]:
    if method == PayoutMethod.BANK_TRANSFER:
        return ("bank_code",) + REQUIRED_RECIPIENT_FIELDS
    return REQUIRED_RECIPIENT_FIELDS


def _plain(value: Decimal) -> str:
    return format(value.normalize(), "f")


def _grouped(value: Decimal) -> str:
    return format(value.normalize(), ",f")


class PayoutValidator:
    def __init__(self, fee_policy: FeePolicy) -> None:
        self.fee_policy = fee_policy

    def validate(self, request: PayoutRequest) -> ValidationOutcome:
        method = request.method
        symbol = self.fee_policy.config.currency_symbol

        try:
            amount = to_decimal(request.amount)
        except (InvalidOperation, ValueError, TypeError):
            return ValidationOutcome.rejected(
                "Payout amount must be a number", "INVALID_AMOUNT", "amount"
            )
        if not amount.is_finite() or amount <= 0:
            return ValidationOutcome.rejected(
                "Payout amount must be greater than zero", "INVALID_AMOUNT", "amount"
            )

        minimum, maximum = self.fee_policy.bounds(method)
        if amount < minimum:
            return ValidationOutcome.rejected(
                f"Minimum payout amount for {method} is {symbol}{_plain(minimum)}",
                "AMOUNT_BELOW_MINIMUM",
                "amount",
            )
        if amount > maximum:
            return ValidationOutcome.rejected(
                f"Maximum payout amount for {method} is {symbol}{_grouped(maximum)}",
                "AMOUNT_ABOVE_MAXIMUM",
                "amount",
            )

        recipient = request.recipient or {}
        missing = [
            name
            for name in required_recipient_fields(method)
            if not str(recipient.get(name) or "").strip()
        ]
        if missing:
            return ValidationOutcome.rejected(
                f"Missing required recipient field(s) for {method}: {', '.join(missing)}",
                "MISSING_RECIPIENT_FIELDS",
                "recipient",
            )

        fee = self.fee_policy.fee(method, amount)
        if amount < fee:
            return ValidationOutcome.rejected(
                f"Payout amount does not cover the {symbol}{_plain(fee)} {method} fee",
                "AMOUNT_BELOW_FEE",
                "amount",
            )

        return ValidationOutcome.accepted()


__all__ = [
    "PayoutRequest",
    "PayoutValidator",
    "ValidationOutcome",
    "required_recipient_fields",
]
