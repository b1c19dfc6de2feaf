"""
Stripe webhook intake and handlers.

Events are verified, stored once per Stripe event id and processed by a
Celery task that dispatches to the handler registered for the event type.

Usage:
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""
