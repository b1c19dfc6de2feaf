"""
WebhookEvent model.

Each verified Stripe event is stored once, keyed by its event id. An event
whose row is PROCESSED is never applied again, so redelivered events are
harmless.

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=payload["id"],
        defaults={"event_type": payload["type"], "payload": payload},
    )
    if event.is_processed:
        return HttpResponse("Already processed")
"""

from __future__ import annotations

from typing import Any

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.choices import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Stored Stripe webhook event.

    Fields:
        stripe_event_id: Stripe Event ID (evt_xxx), unique
        event_type: e.g. checkout.session.completed
        payload: Full event JSON
        status: Processing status
        processed_at: When processing succeeded
        error_message: Last processing error
        retry_count: Number of processing attempts
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Event ID (evt_xxx)",
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g. 'checkout.session.completed')",
    )
    payload = models.JSONField(help_text="Full webhook payload from Stripe")

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    # ==========================================================================
    # Status
    # ==========================================================================

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_pending(self) -> bool:
        return self.status == WebhookEventStatus.PENDING

    @property
    def is_processing(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSING

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        """Failed and below WEBHOOK_MAX_RETRIES attempts."""
        return self.is_failed and self.retry_count < settings.WEBHOOK_MAX_RETRIES

    def mark_processing(self) -> None:
        """Start an attempt. Caller saves."""
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        """Caller saves."""
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """Caller saves."""
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    # ==========================================================================
    # Payload access
    # ==========================================================================

    def get_object(self) -> dict[str, Any] | None:
        """
        The embedded Stripe object (payload.data.object), or None when the
        payload does not carry one.
        """
        try:
            obj = self.payload.get("data", {}).get("object")
        except (AttributeError, TypeError):
            return None
        return obj if isinstance(obj, dict) and obj else None

    def get_object_id(self) -> str | None:
        obj = self.get_object()
        return obj.get("id") if obj else None

    def get_object_type(self) -> str | None:
        """Object kind, e.g. 'checkout.session' or 'subscription'."""
        obj = self.get_object()
        return obj.get("object") if obj else None
