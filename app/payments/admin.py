"""
Payment admin configuration.
"""

from django.contrib import admin, messages

from payments.choices import WebhookEventStatus
from payments.models import WebhookEvent
from payments.tasks import process_webhook_event


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Read-only view of received Stripe events with a manual retry action."""

    list_display = (
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "created_at",
        "processed_at",
    )
    list_filter = ("status", "event_type")
    search_fields = ("stripe_event_id", "event_type")
    readonly_fields = (
        "id",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "error_message",
        "retry_count",
        "created_at",
        "updated_at",
    )
    actions = ["requeue_events"]

    @admin.action(description="Re-queue selected events for processing")
    def requeue_events(self, request, queryset):
        count = 0
        for event in queryset.exclude(status=WebhookEventStatus.PROCESSED):
            process_webhook_event.delay(str(event.id))
            count += 1
        self.message_user(request, f"Queued {count} event(s).", messages.SUCCESS)

    def has_add_permission(self, request):
        return False
