"""
Abstract model mixins.

    UUIDPrimaryKeyMixin: non-guessable UUID primary key, used for records
    that are exposed in admin URLs (payouts).
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Replace the auto-increment primary key with a UUID.

    Usage:
        class Payout(UUIDPrimaryKeyMixin, BaseModel):
            amount = models.DecimalField(...)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


__all__ = ["UUIDPrimaryKeyMixin"]
