"""
Billing models.

- WebhookEvent: every verified Stripe event, for idempotent processing
"""

from payments.models.webhook_event import WebhookEvent

__all__ = [
    "WebhookEvent",
]
