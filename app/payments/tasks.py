"""
Celery tasks for Stripe webhook processing.

- process_webhook_event: apply one stored event (queued by the webhook view)
- retry_failed_webhooks: re-queue FAILED events below the retry limit
- cleanup_stuck_webhooks: reset events left PROCESSING by a dead worker
- cleanup_old_webhooks: delete processed events past retention

The periodic tasks are scheduled by migration 0002_webhook_maintenance_schedule
(django-celery-beat).

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from payments.choices import WebhookEventStatus
from payments.models import WebhookEvent

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

MAX_WEBHOOK_RETRIES = getattr(settings, "WEBHOOK_MAX_RETRIES", 5)
STUCK_PROCESSING_THRESHOLD_MINUTES = 30
RETRY_BATCH_SIZE = 100


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Apply a stored Stripe event.

    The event is claimed under a row lock: PENDING or FAILED moves to
    PROCESSING and that is committed before any handler runs, so handlers
    that call Stripe do not hold the lock. A delivery that finds the event
    PROCESSED or PROCESSING stops there. Events left PROCESSING by a dead
    worker are reset by cleanup_stuck_webhooks.

    Returns:
        {"status": "not_found" | "already_processed" | "in_progress" |
         "processed" | "handler_failed", ...}

    Raises:
        Exception: Re-raised after marking the event FAILED so Celery retries
    """
    from payments.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)
    log_context = {"webhook_event_id": str(webhook_event_id)}

    logger.info("Processing webhook event", extra=log_context)

    claimed = False
    try:
        with transaction.atomic():
            try:
                webhook_event = WebhookEvent.objects.select_for_update().get(
                    id=webhook_event_id
                )
            except WebhookEvent.DoesNotExist:
                logger.error("WebhookEvent not found", extra=log_context)
                return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

            log_context["stripe_event_id"] = webhook_event.stripe_event_id

            if webhook_event.is_processed:
                logger.info("WebhookEvent already processed, skipping", extra=log_context)
                return {
                    "status": "already_processed",
                    "webhook_event_id": str(webhook_event_id),
                }

            if webhook_event.is_processing:
                logger.info(
                    "WebhookEvent is being processed by another worker, skipping",
                    extra=log_context,
                )
                return {
                    "status": "in_progress",
                    "webhook_event_id": str(webhook_event_id),
                }

            webhook_event.mark_processing()
            webhook_event.save(update_fields=["status", "retry_count", "updated_at"])
        claimed = True

        logger.info(
            f"Dispatching webhook: {webhook_event.event_type}",
            extra={
                **log_context,
                "event_type": webhook_event.event_type,
                "retry_count": webhook_event.retry_count,
            },
        )

        with transaction.atomic():
            result = dispatch_webhook(webhook_event)

        if result.success:
            webhook_event.mark_processed()
        else:
            webhook_event.mark_failed(result.error or "Handler returned failure")
        webhook_event.save(
            update_fields=["status", "processed_at", "error_message", "updated_at"]
        )

    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        updates = {
            "status": WebhookEventStatus.FAILED,
            "error_message": error_msg,
            "updated_at": timezone.now(),
        }
        # A committed claim has already counted this attempt.
        if not claimed:
            updates["retry_count"] = F("retry_count") + 1
        WebhookEvent.objects.filter(id=webhook_event_id).update(**updates)
        logger.exception(
            "Webhook processing failed with exception",
            extra={**log_context, "error": error_msg},
        )
        raise

    if result.success:
        logger.info("Webhook processed successfully", extra=log_context)
        return {
            "status": "processed",
            "webhook_event_id": str(webhook_event_id),
            "stripe_event_id": webhook_event.stripe_event_id,
        }

    logger.warning(
        f"Webhook handler failed: {result.error}",
        extra={**log_context, "error_code": result.error_code},
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": result.error,
        "error_code": result.error_code,
    }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Re-queue FAILED events that are still below the retry limit, oldest
    first, in batches of RETRY_BATCH_SIZE.
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in failed_webhooks:
        process_webhook_event.delay(str(webhook.id))
        queued_count += 1
        logger.info(
            "Queued failed webhook for retry",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "retry_count": webhook.retry_count,
            },
        )

    logger.info(
        f"Queued {queued_count} failed webhooks for retry",
        extra={"queued_count": queued_count},
    )
    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Mark events that have been PROCESSING for longer than
    STUCK_PROCESSING_THRESHOLD_MINUTES as FAILED so they are retried.
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        stuck_since = webhook.updated_at
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save(update_fields=["status", "error_message", "updated_at"])
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "stuck_since": stuck_since.isoformat(),
            },
        )

    if reset_count:
        logger.info(
            f"Reset {reset_count} stuck webhooks",
            extra={"reset_count": reset_count},
        )
    return {"reset_count": reset_count}


@shared_task
def cleanup_old_webhooks(days: int | None = None) -> dict:
    """
    Delete PROCESSED events older than ``days`` (WEBHOOK_RETENTION_DAYS by
    default). Failed events are kept for inspection.
    """
    if days is None:
        days = getattr(settings, "WEBHOOK_RETENTION_DAYS", 90)
    cutoff = timezone.now() - timedelta(days=days)

    deleted_count, _ = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSED,
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={"deleted_count": deleted_count, "cutoff_date": cutoff.isoformat()},
        )
    return {"deleted_count": deleted_count}
