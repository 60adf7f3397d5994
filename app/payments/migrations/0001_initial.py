import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BookingRevenueRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_id", models.PositiveBigIntegerField(unique=True)),
                ("host_id", models.PositiveBigIntegerField(db_index=True)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="RefundRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("refund_id", models.PositiveBigIntegerField(unique=True)),
                ("booking_id", models.PositiveBigIntegerField(db_index=True)),
                ("refund_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
                ),
                ("host_id", models.PositiveBigIntegerField(db_index=True, help_text="Host receiving the payout")),
                (
                    "booking_ids",
                    models.JSONField(
                        blank=True, default=list, help_text="Bookings whose earnings this payout settles"
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, help_text="Gross payout amount", max_digits=12)),
                (
                    "fee",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Provider fee charged for the method",
                        max_digits=12,
                    ),
                ),
                ("net_amount", models.DecimalField(decimal_places=2, help_text="Amount minus fee", max_digits=12)),
                ("currency", models.CharField(default="PHP", help_text="ISO 4217 currency code", max_length=3)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("gcash", "GCash"),
                            ("paymaya", "PayMaya"),
                            ("bank_transfer", "Bank Transfer"),
                            ("instapay", "InstaPay"),
                            ("pesonet", "PESONet"),
                        ],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                ("recipient", models.JSONField(default=dict, help_text="Method-specific account properties")),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current lifecycle status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("transaction_ref", models.CharField(blank=True, default="", max_length=255)),
                ("proof_url", models.URLField(blank=True, default="", max_length=500)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("failure_reason", models.TextField(blank=True, default="")),
                (
                    "provider_payout_id",
                    models.CharField(
                        blank=True,
                        help_text="Payout id returned by the disbursement provider",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("version", models.PositiveIntegerField(default=1, help_text="Incremented on each save")),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("processing_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "verbose_name": "Payout",
                "verbose_name_plural": "Payouts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["host_id", "status"], name="payout_host_status_idx"),
                    models.Index(fields=["status", "created_at"], name="payout_status_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(amount__gt=0), name="payout_amount_positive"),
                    models.CheckConstraint(condition=models.Q(fee__gte=0), name="payout_fee_non_negative"),
                    models.CheckConstraint(
                        condition=models.Q(net_amount__gte=0), name="payout_net_amount_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutAuditEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
                ),
                (
                    "from_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                            ("failed", "Failed"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                (
                    "to_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("rejected", "Rejected"),
                            ("failed", "Failed"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "actor",
                    models.CharField(
                        help_text="Operator username, or 'system' for automatic changes", max_length=255
                    ),
                ),
                ("note", models.TextField(blank=True, default="")),
                (
                    "payout",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_entries",
                        to="payments.payout",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payout audit entry",
                "verbose_name_plural": "Payout audit entries",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
