"""
Abstract base models shared by every app.

    BaseModel            created_at / updated_at timestamps
    UUIDPrimaryKeyMixin  (core.model_mixins) UUID primary key

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class Payout(UUIDPrimaryKeyMixin, BaseModel):
        ...

List mixins before BaseModel.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract model with creation and modification timestamps.

    Fields:
        created_at: Set once on insert
        updated_at: Refreshed on every save
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
