"""
Payments app configuration.

This app provides the host payout lifecycle and platform reconciliation:
- Payout state machine with operator-gated transitions
- PayMongo disbursement adapter
- Batch disbursement
- Platform earnings metrics and CSV export
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
