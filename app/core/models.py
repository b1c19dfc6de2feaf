"""
Abstract base model shared by the domain apps.

Usage:
    from core.models import BaseModel

    class VerificationToken(BaseModel):
        token = models.CharField(max_length=64, unique=True)

For a UUID primary key, combine with core.model_mixins.UUIDPrimaryKeyMixin.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model with creation and modification timestamps.

    Fields:
        created_at: set once on insert, indexed for time-based queries
        updated_at: refreshed on every save
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
