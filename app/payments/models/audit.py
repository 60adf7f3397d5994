"""
Append-only audit trail of payout status changes.

Written in the same transaction as the transition it records, so the trail
and the payout never disagree. Used for dispute resolution.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel

from payments.state_machines import PayoutStatus


class PayoutAuditEntry(BaseModel):
    """
    One applied transition: who moved which payout from where to where.

    from_status is blank for the entry recorded when the payout is created.
    """

    payout = models.ForeignKey(
        "payments.Payout",
        on_delete=models.PROTECT,
        related_name="audit_entries",
    )
    from_status = models.CharField(
        max_length=20,
        choices=PayoutStatus.choices,
        blank=True,
        default="",
    )
    to_status = models.CharField(max_length=20, choices=PayoutStatus.choices)
    actor = models.CharField(
        max_length=255,
        help_text="Operator username, or 'system' for automatic changes",
    )
    note = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Payout audit entry"
        verbose_name_plural = "Payout audit entries"

    def __str__(self) -> str:
        return f"{self.payout_id}: {self.from_status or '-'} -> {self.to_status} by {self.actor}"
