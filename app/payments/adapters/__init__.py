"""
Adapters for external billing services.

All Stripe calls go through StripeAdapter.

Usage:
    from payments.adapters import StripeAdapter

    subscriptions = StripeAdapter.list_subscriptions(user.stripe_customer_id)
"""

from payments.adapters.stripe_adapter import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    StripeAdapter,
    SubscriptionResult,
    build_card_update_urls,
    build_upgrade_urls,
    is_retryable_stripe_error,
)

__all__ = [
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "StripeAdapter",
    "SubscriptionResult",
    "build_card_update_urls",
    "build_upgrade_urls",
    "is_retryable_stripe_error",
]
