"""
Choice enums for billing models.
"""

from django.db import models


class WebhookEventStatus(models.TextChoices):
    """
    Processing status of a stored Stripe event.

    Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED → (retry) PROCESSING → ...
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
