"""
Handlers for Stripe webhook events.

Each handler takes a WebhookEvent and returns a ServiceResult. A failure
marks the event FAILED so the retry task picks it up again; unknown event
types are acknowledged without doing anything.

Registered events:
    - checkout.session.completed: link the Stripe customer and upgrade the
      account, or, for a card-update session, set the new default card
    - customer.subscription.deleted: downgrade the account to free once
      the customer has no live subscription left

Usage:
    @register_handler("invoice.paid")
    def handle_invoice_paid(webhook_event: WebhookEvent) -> ServiceResult:
        ...
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from accounts.services import AccountService
from core.exceptions import BaseApplicationError, NotFoundError
from core.services import ServiceResult
from payments.adapters import StripeAdapter
from payments.exceptions import StripeError

if TYPE_CHECKING:
    from payments.models import WebhookEvent

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================

WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """Register the decorated function as the handler for event_type."""

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Run the handler registered for the event's type.

    Returns:
        The handler's ServiceResult, or success(None) for unhandled types
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event)


# =============================================================================
# Checkout Handlers
# =============================================================================


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Apply a completed Checkout Session.

    Subscription sessions carry metadata["userId"]; the session's customer
    is merged in as "customerId" and the account is upgraded. Setup
    sessions (card update) make the collected card the customer's default.
    Sessions that are missing, of another kind or not complete are
    acknowledged without changes.
    """
    log_context = {"stripe_event_id": webhook_event.stripe_event_id}
    session = webhook_event.get_object()

    if session is None:
        logger.warning(
            "checkout.session.completed: event carries no object",
            extra=log_context,
        )
        return ServiceResult.success(None)

    if session.get("object") != "checkout.session":
        logger.warning(
            "checkout.session.completed: object is not a checkout session",
            extra={**log_context, "object_type": session.get("object")},
        )
        return ServiceResult.success(None)

    log_context["session_id"] = session.get("id")

    if session.get("status") != "complete":
        logger.info(
            "checkout.session.completed: session not complete, ignoring",
            extra={**log_context, "status": session.get("status")},
        )
        return ServiceResult.success(None)

    if session.get("mode") == "setup":
        return _apply_card_update(session, log_context)

    metadata = session.get("metadata") or {}
    if not metadata:
        logger.warning(
            "checkout.session.completed: session has no metadata",
            extra=log_context,
        )
        return ServiceResult.success(None)

    metadata = {**metadata, "customerId": session.get("customer")}

    try:
        user = AccountService.save_customer_id_and_upgrade(metadata)
    except NotFoundError as e:
        logger.error(
            "checkout.session.completed: account not found",
            extra={**log_context, "user_id": metadata.get("userId")},
        )
        return ServiceResult.failure(e.message, error_code="ACCOUNT_NOT_FOUND")
    except BaseApplicationError as e:
        logger.error(
            f"checkout.session.completed: upgrade failed: {e.error_code}",
            extra={**log_context, "user_id": metadata.get("userId")},
        )
        return ServiceResult.from_exception(e)

    logger.info(
        "checkout.session.completed: account upgraded",
        extra={**log_context, "user_id": user.pk},
    )
    return ServiceResult.success(user)


def _apply_card_update(session: dict, log_context: dict) -> ServiceResult:
    customer_id = session.get("customer")
    setup_intent_id = session.get("setup_intent")

    if not customer_id or not setup_intent_id:
        logger.warning(
            "checkout.session.completed: setup session without customer or setup intent",
            extra=log_context,
        )
        return ServiceResult.success(None)

    try:
        payment_method_id = StripeAdapter.set_default_payment_method_from_setup_intent(
            customer_id, setup_intent_id
        )
    except StripeError as e:
        logger.error(
            f"checkout.session.completed: could not set default card: {e.error_code}",
            extra={**log_context, "customer_id": customer_id},
        )
        return ServiceResult.from_exception(e)

    logger.info(
        "checkout.session.completed: default card updated",
        extra={**log_context, "customer_id": customer_id},
    )
    return ServiceResult.success(payment_method_id)


# =============================================================================
# Subscription Handlers
# =============================================================================


@register_handler("customer.subscription.deleted")
def handle_subscription_deleted(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Downgrade the account whose subscription ended.

    Fires for immediate cancellations (the account is already free, so
    this is a no-op) and for subscriptions that reached the end of a
    period scheduled with cancel_at_period_end.

    Stripe does not order deliveries, and failed events are replayed
    later, so the event may describe an old subscription of a member who
    has since upgraded again. The role only drops when Stripe reports no
    live subscription left for the customer.
    """
    subscription = webhook_event.get_object() or {}
    customer_id = subscription.get("customer")
    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "subscription_id": subscription.get("id"),
        "customer_id": customer_id,
    }

    if not customer_id:
        logger.warning(
            "customer.subscription.deleted: no customer on subscription",
            extra=log_context,
        )
        return ServiceResult.success(None)

    user = AccountService.get_by_customer_id(customer_id)
    if user is None:
        logger.warning(
            "customer.subscription.deleted: no account for customer",
            extra=log_context,
        )
        return ServiceResult.success(None)

    if not user.is_premium:
        return ServiceResult.success(user)

    try:
        subscriptions = StripeAdapter.list_subscriptions(customer_id)
    except StripeError as e:
        logger.error(
            f"customer.subscription.deleted: could not list subscriptions: {e.error_code}",
            extra={**log_context, "user_id": user.pk},
        )
        return ServiceResult.from_exception(e)

    live_ids = [sub.id for sub in subscriptions if sub.is_live]
    if live_ids:
        logger.info(
            "customer.subscription.deleted: customer still subscribed, role kept",
            extra={**log_context, "user_id": user.pk, "live_subscription_ids": live_ids},
        )
        return ServiceResult.success(user)

    user = AccountService.downgrade_by_customer_id(customer_id)

    logger.info(
        "customer.subscription.deleted: account downgraded",
        extra={**log_context, "user_id": user.pk},
    )
    return ServiceResult.success(user)
