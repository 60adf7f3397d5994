"""
Read-only projections of booking and refund data.

Bookings and refunds are owned by other parts of the marketplace; these
tables mirror the columns reconciliation needs. Commission is never stored,
it is derived at aggregation time.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from payments.state_machines import BookingStatus, RefundStatus


class BookingRevenueRecord(models.Model):
    booking_id = models.PositiveBigIntegerField(unique=True)
    host_id = models.PositiveBigIntegerField(db_index=True)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        db_index=True,
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Booking #{self.booking_id} ({self.status}, {self.total_price})"


class RefundRecord(models.Model):
    refund_id = models.PositiveBigIntegerField(unique=True)
    booking_id = models.PositiveBigIntegerField(db_index=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=RefundStatus.choices,
        db_index=True,
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Refund #{self.refund_id} ({self.status}, {self.refund_amount})"
