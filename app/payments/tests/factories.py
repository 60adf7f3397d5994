"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import (
        BookingRevenueRecordFactory,
        PayoutFactory,
        RefundRecordFactory,
        StaffUserFactory,
    )

    # Pending ₱5,000 bank transfer payout
    payout = PayoutFactory()

    # GCash payout for a specific host
    payout = PayoutFactory(host_id=7, method=PayoutMethod.GCASH, fee=Decimal("15.00"))

    # Completed payout for reporting fixtures (skips the state machine)
    payout = PayoutFactory(status=PayoutStatus.COMPLETED)
"""

from decimal import Decimal

import factory

from payments.models import BookingRevenueRecord, Payout, RefundRecord
from payments.state_machines import BookingStatus, PayoutMethod, RefundStatus


class StaffUserFactory(factory.django.DjangoModelFactory):
    """Operator account with admin API access."""

    class Meta:
        model = "auth.User"
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"operator{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_staff = True
    is_active = True


class PayoutFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Payout instances.

    Default creates a PENDING ₱5,000 bank transfer with the ₱25 fee.

    Passing status= sets the initial value directly; tests of the
    lifecycle itself should call the transitions instead.
    """

    class Meta:
        model = Payout
        skip_postgeneration_save = True

    host_id = factory.Sequence(lambda n: n + 1)
    amount = Decimal("5000.00")
    fee = Decimal("25.00")
    net_amount = factory.LazyAttribute(lambda o: o.amount - o.fee)
    currency = "PHP"
    method = PayoutMethod.BANK_TRANSFER
    recipient = factory.LazyFunction(
        lambda: {
            "bank_code": "BPI",
            "account_number": "1234567890",
            "account_name": "Juan Dela Cruz",
        }
    )
    booking_ids = factory.LazyFunction(list)
    metadata = factory.LazyFunction(dict)


class BookingRevenueRecordFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = BookingRevenueRecord

    booking_id = factory.Sequence(lambda n: 1000 + n)
    host_id = 1
    total_price = Decimal("10000.00")
    status = BookingStatus.COMPLETED


class RefundRecordFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = RefundRecord

    refund_id = factory.Sequence(lambda n: 5000 + n)
    booking_id = factory.Sequence(lambda n: 1000 + n)
    refund_amount = Decimal("1000.00")
    status = RefundStatus.COMPLETED
