"""
Tests for PayoutValidator.
"""

from decimal import Decimal

import pytest

from payments.policy import FeePolicy, MethodPolicy, PayoutPolicyConfig
from payments.validators import (
    PayoutRequest,
    PayoutValidator,
    ValidationOutcome,
    required_recipient_fields,
)

BANK_RECIPIENT = {
    "bank_code": "BPI",
    "account_number": "1234567890",
    "account_name": "Juan Dela Cruz",
}
WALLET_RECIPIENT = {"account_number": "09171234567", "account_name": "Maria Santos"}


@pytest.fixture
def validator():
    return PayoutValidator(FeePolicy(PayoutPolicyConfig.from_dict({})))


def make_request(**overrides):
    data = {
        "host_id": 1,
        "amount": Decimal("5000"),
        "method": "bank_transfer",
        "recipient": dict(BANK_RECIPIENT),
    }
    data.update(overrides)
    return PayoutRequest(**data)


class TestBounds:
    def test_valid_bank_transfer(self, validator):
        outcome = validator.validate(make_request())

        assert outcome.ok
        assert bool(outcome) is True
        assert outcome.reason is None

    def test_below_minimum(self, validator):
        outcome = validator.validate(
            make_request(method="gcash", amount=50, recipient=WALLET_RECIPIENT)
        )

        assert not outcome
        assert outcome.reason == "Minimum payout amount for gcash is ₱100"
        assert outcome.error_code == "AMOUNT_BELOW_MINIMUM"
        assert outcome.field_name == "amount"

    def test_above_maximum(self, validator):
        outcome = validator.validate(
            make_request(method="gcash", amount=60000, recipient=WALLET_RECIPIENT)
        )

        assert outcome.reason == "Maximum payout amount for gcash is ₱50,000"
        assert outcome.error_code == "AMOUNT_ABOVE_MAXIMUM"

    def test_bounds_are_inclusive(self, validator):
        assert validator.validate(make_request(method="gcash", amount=100, recipient=WALLET_RECIPIENT))
        assert validator.validate(make_request(method="gcash", amount=50000, recipient=WALLET_RECIPIENT))

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, "NaN"])
    def test_invalid_amounts(self, validator, amount):
        outcome = validator.validate(make_request(amount=amount))

        assert outcome.error_code == "INVALID_AMOUNT"
        assert outcome.field_name == "amount"

    def test_amount_must_cover_fee(self):
        config = PayoutPolicyConfig(
            methods={"bank_transfer": MethodPolicy(fixed_fee=Decimal("25"), minimum=Decimal("1"))}
        )
        outcome = PayoutValidator(FeePolicy(config)).validate(make_request(amount=20))

        assert outcome.error_code == "AMOUNT_BELOW_FEE"
        assert "₱25" in outcome.reason


class TestRecipientFields:
    def test_bank_transfer_requires_bank_code(self, validator):
        recipient = {k: v for k, v in BANK_RECIPIENT.items() if k != "bank_code"}

        outcome = validator.validate(make_request(recipient=recipient))

        assert outcome.error_code == "MISSING_RECIPIENT_FIELDS"
        assert outcome.field_name == "recipient"
        assert "bank_code" in outcome.reason

    def test_e_wallet_does_not_require_bank_code(self, validator):
        outcome = validator.validate(
            make_request(method="paymaya", amount=1000, recipient=WALLET_RECIPIENT)
        )

        assert outcome.ok

    def test_blank_values_count_as_missing(self, validator):
        outcome = validator.validate(
            make_request(recipient={**BANK_RECIPIENT, "account_name": "   "})
        )

        assert "account_name" in outcome.reason

    def test_required_fields_per_method(self):
        assert required_recipient_fields("bank_transfer") == (
            "bank_code",
            "account_number",
            "account_name",
        )
        assert required_recipient_fields("gcash") == ("account_number", "account_name")

    def test_bounds_checked_before_recipient(self, validator):
        outcome = validator.validate(make_request(method="gcash", amount=50, recipient={}))

        assert outcome.error_code == "AMOUNT_BELOW_MINIMUM"


class TestValidationOutcome:
    def test_accepted(self):
        assert ValidationOutcome.accepted().ok

    def test_rejected(self):
        outcome = ValidationOutcome.rejected("nope", "CODE", "amount")

        assert not outcome.ok
        assert outcome.reason == "nope"
