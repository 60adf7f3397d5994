"""
Fee and limit policy for payout methods.

The tables live in configuration (settings.PAYOUT_POLICY), are parsed once
into an immutable PayoutPolicyConfig and handed to FeePolicy at
construction. Nothing here touches the database or the provider.

Usage:
    from payments.policy import FeePolicy

    policy = FeePolicy.from_settings()
    policy.fee("bank_transfer", Decimal("5000"))     # Decimal("25.00")
    policy.bounds("gcash")                            # (Decimal("100"), Decimal("50000"))
    policy.net_amount("bank_transfer", 5000)          # Decimal("4975.00")

Unknown methods resolve to the default method's policy instead of raising,
so a newly enabled rail works before its row is configured.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings

if TYPE_CHECKING:
    from typing import Any

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce int/str/float/Decimal to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class MethodPolicy:
    """
    Fee and bounds for one payout method.

    fee = fixed_fee + amount * percentage / 100
    """

    fixed_fee: Decimal
    percentage: Decimal = Decimal("0")
    minimum: Decimal = Decimal("1")
    maximum: Decimal = Decimal("1000000")

    def __post_init__(self) -> None:
        if self.fixed_fee < 0 or self.percentage < 0:
            raise ValueError("Fee terms must not be negative")
        if self.minimum > self.maximum:
            raise ValueError(
                f"Minimum {self.minimum} exceeds maximum {self.maximum}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MethodPolicy:
        return cls(
            fixed_fee=to_decimal(data.get("fixed_fee", 0)),
            percentage=to_decimal(data.get("percentage", 0)),
            minimum=to_decimal(data.get("minimum", 1)),
            maximum=to_decimal(data.get("maximum", 1000000)),
        )


DEFAULT_METHOD_POLICIES: dict[str, dict[str, Any]] = {
    "gcash": {"fixed_fee": 15, "percentage": 0, "minimum": 100, "maximum": 50000},
    "paymaya": {"fixed_fee": 15, "percentage": 0, "minimum": 100, "maximum": 50000},
    "bank_transfer": {"fixed_fee": 25, "percentage": 0, "minimum": 100, "maximum": 1000000},
    "instapay": {"fixed_fee": 15, "percentage": 0, "minimum": 1, "maximum": 50000},
    "pesonet": {"fixed_fee": 30, "percentage": 0, "minimum": 1, "maximum": 1000000},
}


@dataclass(frozen=True)
class PayoutPolicyConfig:
    """
    Complete payout policy: operating currency plus one MethodPolicy per rail.

    default_method names the row used for unknown methods and must exist.
    """

    methods: dict[str, MethodPolicy]
    currency: str = "PHP"
    default_method: str = "bank_transfer"
    currency_symbol: str = field(default="₱")

    def __post_init__(self) -> None:
        if self.default_method not in self.methods:
            raise ValueError(
                f"Default method '{self.default_method}' has no policy row"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayoutPolicyConfig:
        raw_methods = data.get("methods") or DEFAULT_METHOD_POLICIES
        return cls(
            methods={
                name: MethodPolicy.from_dict(row) for name, row in raw_methods.items()
            },
            currency=data.get("currency", "PHP"),
            default_method=data.get("default_method", "bank_transfer"),
            currency_symbol=data.get("currency_symbol", "₱"),
        )

    @classmethod
    def from_settings(cls) -> PayoutPolicyConfig:
        return cls.from_dict(getattr(settings, "PAYOUT_POLICY", {}) or {})


# =============================================================================
# Fee Policy
# =============================================================================


class FeePolicy:
    """Pure fee and bounds lookups over an injected PayoutPolicyConfig."""

    def __init__(self, config: PayoutPolicyConfig) -> None:
        self.config = config

    @classmethod
    def from_settings(cls) -> FeePolicy:
        return cls(PayoutPolicyConfig.from_settings())

    @property
    def currency(self) -> str:
        return self.config.currency

    def policy_for(self, method: str) -> MethodPolicy:
        methods = self.config.methods
        return methods.get(method) or methods[self.config.default_method]

    def fee(self, method: str, amount: Any) -> Decimal:
        policy = self.policy_for(method)
        variable = to_decimal(amount) * policy.percentage / Decimal("100")
        return quantize_money(policy.fixed_fee + variable)

    def bounds(self, method: str) -> tuple[Decimal, Decimal]:
        policy = self.policy_for(method)
        return policy.minimum, policy.maximum

    def net_amount(self, method: str, amount: Any) -> Decimal:
        return quantize_money(to_decimal(amount)) - self.fee(method, amount)


__all__ = [
    "DEFAULT_METHOD_POLICIES",
    "FeePolicy",
    "MethodPolicy",
    "PayoutPolicyConfig",
    "quantize_money",
    "to_decimal",
]
