"""
Payout model: one disbursement of host earnings through the provider.

A payout is created pending when a host withdrawal request is accepted and
only moves through PayoutOrchestrator commands. Records are never deleted,
and once completed, rejected or failed they can no longer be saved.

Usage:
    from payments.models import Payout

    payout.approve(transaction_ref="TX123")       # pending -> approved
    payout.mark_processing(provider_payout_id)    # approved -> processing
    payout.complete(proof_url=None)               # processing -> completed
    payout.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import F
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.exceptions import InvalidTransitionError
from payments.state_machines import (
    IN_FLIGHT_STATUSES,
    TERMINAL_STATUSES,
    PayoutMethod,
    PayoutStatus,
)


class Payout(UUIDPrimaryKeyMixin, BaseModel):
    """
    Money leaving the platform to a host's e-wallet or bank account.

    State Flow:
        PENDING -> APPROVED -> PROCESSING -> COMPLETED
        PENDING -> REJECTED
        PENDING/APPROVED/PROCESSING -> FAILED

    APPROVED is the operator's attestation gate; the provider payout is
    created between APPROVED and PROCESSING, so a payout is only ever
    observed in APPROVED inside the orchestrator's transaction.

    Fields:
        host_id: Owning host (external user id)
        amount: Gross amount requested
        fee: Provider fee from FeePolicy at creation time
        net_amount: amount - fee, what the host receives
        method: Disbursement rail
        recipient: account_number, account_name, bank_code, account_type
        status: FSM-managed lifecycle status
        version: Optimistic locking counter
    """

    # ==========================================================================
    # Identity
    # ==========================================================================

    host_id = models.PositiveBigIntegerField(
        db_index=True,
        help_text="Host receiving the payout",
    )

    booking_ids = models.JSONField(
        default=list,
        blank=True,
        help_text="Bookings whose earnings this payout settles",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Gross payout amount",
    )

    fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Provider fee charged for the method",
    )

    net_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount minus fee",
    )

    currency = models.CharField(
        max_length=3,
        default="PHP",
        help_text="ISO 4217 currency code",
    )

    # ==========================================================================
    # Method & Recipient
    # ==========================================================================

    method = models.CharField(
        max_length=32,
        choices=PayoutMethod.choices,
        db_index=True,
    )

    recipient = models.JSONField(
        default=dict,
        help_text="Method-specific account properties",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PayoutStatus.PENDING,
        choices=PayoutStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current lifecycle status (managed by FSM)",
    )

    transaction_ref = models.CharField(max_length=255, blank=True, default="")
    proof_url = models.URLField(max_length=500, blank=True, default="")
    rejection_reason = models.TextField(blank=True, default="")
    failure_reason = models.TextField(blank=True, default="")

    provider_payout_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Payout id returned by the disbursement provider",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented on each save",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    approved_at = models.DateTimeField(null=True, blank=True)
    processing_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["host_id", "status"], name="payout_host_status_idx"),
            models.Index(fields=["status", "created_at"], name="payout_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payout_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(fee__gte=0),
                name="payout_fee_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(net_amount__gte=0),
                name="payout_net_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.status}, {self.amount} {self.currency})"

    def save(self, *args, **kwargs):
        is_update = self.pk and not self._state.adding
        if is_update:
            stored_status = (
                type(self).objects.filter(pk=self.pk).values_list("status", flat=True).first()
            )
            # Terminal records are immutable
            if stored_status in TERMINAL_STATUSES:
                raise InvalidTransitionError(
                    f"Payout in '{stored_status}' status cannot be modified",
                    error_code="PAYOUT_IMMUTABLE",
                    details={"payout_id": str(self.pk), "current_status": stored_status},
                )
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PayoutStatus.PENDING,
        target=PayoutStatus.APPROVED,
    )
    def approve(self, transaction_ref: str):
        """Operator attests funds may move. PENDING -> APPROVED."""
        self.transaction_ref = transaction_ref
        self.approved_at = timezone.now()

    @transition(
        field=status,
        source=PayoutStatus.APPROVED,
        target=PayoutStatus.PROCESSING,
    )
    def mark_processing(self, provider_payout_id: str | None = None):
        """Provider accepted the payout. APPROVED -> PROCESSING."""
        self.provider_payout_id = provider_payout_id or None
        self.processing_at = timezone.now()

    @transition(
        field=status,
        source=PayoutStatus.PROCESSING,
        target=PayoutStatus.COMPLETED,
    )
    def complete(self, proof_url: str | None = None):
        """Operator confirms delivery. PROCESSING -> COMPLETED."""
        self.proof_url = proof_url or ""
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=PayoutStatus.PENDING,
        target=PayoutStatus.REJECTED,
    )
    def reject(self, reason: str):
        """PENDING -> REJECTED."""
        self.rejection_reason = reason
        self.rejected_at = timezone.now()

    @transition(
        field=status,
        source=[PayoutStatus.PENDING, PayoutStatus.APPROVED, PayoutStatus.PROCESSING],
        target=PayoutStatus.FAILED,
    )
    def fail(self, reason: str | None = None):
        """Unrecoverable provider error. Any open status -> FAILED."""
        self.failed_at = timezone.now()
        if reason:
            self.failure_reason = reason

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_in_flight(self) -> bool:
        return self.status in IN_FLIGHT_STATUSES

    @property
    def reachable_statuses(self) -> set[str]:
        """Statuses reachable from the current one in a single transition."""
        return {t.target for t in self.get_available_status_transitions()}
