"""
Stripe API adapter for membership billing.

Every Stripe call made by the application goes through StripeAdapter so
that timeouts, retries, logging and error translation are handled in one
place.

Features:
- Bounded timeout and automatic network retries on every call
- SDK exceptions translated to payments.exceptions.StripeError subclasses
- Structured logging with timing metrics (the API key is never logged)

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries made by the SDK (default: 2)
- MEMBERSHIP_PLAN_CURRENCY / MEMBERSHIP_PLAN_AMOUNT / MEMBERSHIP_PLAN_NAME:
  price of the monthly premium plan

Usage:
    from payments.adapters import CreateCheckoutSessionParams, StripeAdapter

    session = StripeAdapter.create_checkout_session(
        CreateCheckoutSessionParams(
            user_id=user.pk,
            email=user.email,
            request_url=request.build_absolute_uri(),
        )
    )
    # Render a page that redirects to Checkout with session.id
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable


# Paths of the member pages that start a Checkout flow. Success/cancel
# URLs are derived from the URL of the request that started the flow.
UPGRADE_PATH = "/user/upgrade"
ACCOUNT_PATH = "/user"
UPDATE_CARD_PATH = "/user/update-card"

# Subscription statuses under which Stripe keeps charging the customer.
LIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing", "past_due"})


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for a premium-plan Checkout Session.

    Attributes:
        user_id: Account id, stored as metadata["userId"] and read back by
            the checkout.session.completed webhook
        email: Prefilled on the Checkout page when no customer exists yet
        request_url: Absolute URL of the upgrade request
        customer_id: Existing Stripe customer to bill (reused after a
            previous cancellation)
    """

    user_id: int | str
    email: str
    request_url: str
    customer_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.user_id in (None, ""):
            raise ValueError("user_id is required")
        if not self.request_url:
            raise ValueError("request_url is required")
        if not self.email and not self.customer_id:
            raise ValueError("email or customer_id is required")


@dataclass
class CheckoutSessionResult:
    """
    Result from Checkout Session creation.

    Attributes:
        id: Checkout Session ID (cs_xxx), handed to Stripe.js on the client
        url: Hosted Checkout URL
        mode: "subscription" or "setup"
        success_url / cancel_url: Where Checkout sends the browser back
        raw_response: Full Stripe response dict
    """

    id: str
    url: str | None
    mode: str
    success_url: str
    cancel_url: str
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class SubscriptionResult:
    """
    Result from Subscription operations.

    Attributes:
        id: Subscription ID (sub_xxx)
        customer_id: Owning customer (cus_xxx)
        status: active, canceled, past_due, ...
        cancel_at_period_end: Whether cancellation is scheduled
        raw_response: Full Stripe response dict
    """

    id: str
    customer_id: str | None
    status: str
    cancel_at_period_end: bool = False
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_live(self) -> bool:
        """Still billing or about to bill the customer."""
        return self.status in LIVE_SUBSCRIPTION_STATUSES


# =============================================================================
# Helpers
# =============================================================================


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    True when the error is a transient Stripe failure worth retrying.

    Used by Celery tasks and by the member pages to pick between "try again"
    and a permanent failure message.
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def _base_url(request_url: str) -> str:
    """Request URL without query string or trailing slash."""
    return request_url.split("?", 1)[0].rstrip("/")


def build_upgrade_urls(request_url: str) -> tuple[str, str]:
    """
    Success and cancel URLs for the premium-plan Checkout.

    Example:
        >>> build_upgrade_urls("https://host/user/upgrade")
        ('https://host/login?success=true', 'https://host')
    """
    url = _base_url(request_url)
    success_url = url.replace(UPGRADE_PATH, "") + "/login?success=true"
    cancel_url = url.split(ACCOUNT_PATH, 1)[0]
    return success_url, cancel_url


def build_card_update_urls(request_url: str) -> tuple[str, str]:
    """
    Success and cancel URLs for the card-update Checkout.

    Example:
        >>> build_card_update_urls("https://host/user/update-card/")
        ('https://host/user?success=true', 'https://host/user')
    """
    base = _base_url(request_url).replace(UPDATE_CARD_PATH, "")
    return f"{base}/user?success=true", f"{base}/user"


def _to_dict(stripe_object: Any) -> dict[str, Any]:
    to_dict = getattr(stripe_object, "to_dict", None)
    return to_dict() if callable(to_dict) else {}


def _object_id(value: Any) -> str | None:
    """ID of an expandable field, which is either a string or an object."""
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods; no instance state is kept. Safe to call
    from web requests and Celery workers alike.

    Usage:
        subscriptions = StripeAdapter.list_subscriptions("cus_123")
        StripeAdapter.cancel_subscriptions(subscriptions)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure the Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 2)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _call(cls, operation: str, log_context: dict[str, Any], func, *args, **kwargs):
        """
        Run one SDK call with logging, timing and error translation.

        Raises:
            StripeError: Translated from any SDK exception
        """
        logger = cls.get_logger()
        log_context = {"operation": operation, **log_context}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            response = func(*args, **kwargs)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return response

    # =========================================================================
    # Checkout
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a subscription-mode Checkout Session for the premium plan.

        One line item: the monthly plan priced from settings, quantity 1,
        card payments only.

        Returns:
            CheckoutSessionResult with the session id for the client

        Raises:
            StripeInvalidRequestError: Invalid parameters or API key
            StripeAPIUnavailableError: Stripe unreachable
            StripeRateLimitError: Rate limited
        """
        cls._configure_stripe()
        success_url, cancel_url = build_upgrade_urls(params.request_url)
        metadata = {**params.metadata, "userId": str(params.user_id)}

        session_params: dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": settings.MEMBERSHIP_PLAN_CURRENCY,
                        "product_data": {"name": settings.MEMBERSHIP_PLAN_NAME},
                        "unit_amount": settings.MEMBERSHIP_PLAN_AMOUNT,
                        "recurring": {"interval": "month"},
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "client_reference_id": str(params.user_id),
            "subscription_data": {"metadata": metadata},
        }
        if params.customer_id:
            session_params["customer"] = params.customer_id
        else:
            session_params["customer_email"] = params.email

        session = cls._call(
            "create_checkout_session",
            {"user_id": str(params.user_id), "has_customer": bool(params.customer_id)},
            stripe.checkout.Session.create,
            **session_params,
        )

        return CheckoutSessionResult(
            id=session.id,
            url=getattr(session, "url", None),
            mode="subscription",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            raw_response=_to_dict(session),
        )

    @classmethod
    def create_card_update_session(
        cls,
        customer_id: str,
        request_url: str,
    ) -> CheckoutSessionResult:
        """
        Create a setup-mode Checkout Session to collect a new card for an
        existing customer.

        The checkout.session.completed webhook for this session makes the
        collected card the customer's default.
        """
        cls._configure_stripe()
        success_url, cancel_url = build_card_update_urls(request_url)

        session = cls._call(
            "create_card_update_session",
            {"customer_id": customer_id},
            stripe.checkout.Session.create,
            mode="setup",
            payment_method_types=["card"],
            customer=customer_id,
            success_url=success_url,
            cancel_url=cancel_url,
        )

        return CheckoutSessionResult(
            id=session.id,
            url=getattr(session, "url", None),
            mode="setup",
            success_url=success_url,
            cancel_url=cancel_url,
            raw_response=_to_dict(session),
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    @classmethod
    def list_subscriptions(cls, customer_id: str) -> list[SubscriptionResult]:
        """
        List the customer's subscriptions in the order Stripe returns them.
        """
        cls._configure_stripe()

        response = cls._call(
            "list_subscriptions",
            {"customer_id": customer_id},
            stripe.Subscription.list,
            customer=customer_id,
        )

        return [cls._subscription_result(sub) for sub in response.data]

    @classmethod
    def cancel_subscriptions(
        cls,
        subscriptions: Iterable[SubscriptionResult],
    ) -> list[SubscriptionResult]:
        """
        Cancel each subscription immediately, in order.

        Stops at the first failure; subscriptions before it stay cancelled.

        Raises:
            StripeError: From the first cancellation that failed
        """
        cls._configure_stripe()

        cancelled = []
        for subscription in subscriptions:
            sub = cls._call(
                "cancel_subscription",
                {
                    "subscription_id": subscription.id,
                    "cancelled_so_far": len(cancelled),
                },
                stripe.Subscription.cancel,
                subscription.id,
            )
            cancelled.append(cls._subscription_result(sub))
        return cancelled

    @classmethod
    def cancel_subscription_at_period_end(cls, customer_id: str) -> bool:
        """
        Schedule the customer's first subscription to end at period end.

        Returns:
            True when a subscription was scheduled, False when the customer
            has no subscriptions
        """
        cls._configure_stripe()

        customer = cls._call(
            "retrieve_customer",
            {"customer_id": customer_id},
            stripe.Customer.retrieve,
            customer_id,
            expand=["subscriptions"],
        )
        subscriptions = getattr(customer, "subscriptions", None)
        data = list(getattr(subscriptions, "data", None) or [])
        if not data:
            cls.get_logger().info(
                "No subscription to cancel at period end",
                extra={"customer_id": customer_id},
            )
            return False

        cls._call(
            "cancel_subscription_at_period_end",
            {"customer_id": customer_id, "subscription_id": data[0].id},
            stripe.Subscription.modify,
            data[0].id,
            cancel_at_period_end=True,
        )
        return True

    # =========================================================================
    # Payment Methods
    # =========================================================================

    @classmethod
    def get_default_payment_method_id(cls, customer_id: str) -> str | None:
        """
        The customer's invoice default payment method, or None if unset.

        Raises:
            StripeInvalidRequestError: Customer does not exist or was deleted
        """
        cls._configure_stripe()

        customer = cls._call(
            "retrieve_customer",
            {"customer_id": customer_id},
            stripe.Customer.retrieve,
            customer_id,
        )
        if getattr(customer, "deleted", False):
            raise StripeInvalidRequestError(
                f"Customer {customer_id} has been deleted",
                stripe_code="resource_missing",
                details={"customer_id": customer_id},
            )

        invoice_settings = getattr(customer, "invoice_settings", None)
        return _object_id(getattr(invoice_settings, "default_payment_method", None))

    @classmethod
    def detach_payment_method(cls, payment_method_id: str) -> None:
        cls._configure_stripe()

        cls._call(
            "detach_payment_method",
            {"payment_method_id": payment_method_id},
            stripe.PaymentMethod.detach,
            payment_method_id,
        )

    @classmethod
    def set_default_payment_method_from_setup_intent(
        cls,
        customer_id: str,
        setup_intent_id: str,
    ) -> str:
        """
        Make the card collected by a SetupIntent the customer's default.

        Returns:
            The payment method id now set as default

        Raises:
            StripeInvalidRequestError: SetupIntent carries no payment method
        """
        cls._configure_stripe()

        setup_intent = cls._call(
            "retrieve_setup_intent",
            {"customer_id": customer_id, "setup_intent_id": setup_intent_id},
            stripe.SetupIntent.retrieve,
            setup_intent_id,
        )
        payment_method_id = _object_id(getattr(setup_intent, "payment_method", None))
        if not payment_method_id:
            raise StripeInvalidRequestError(
                f"SetupIntent {setup_intent_id} has no payment method",
                stripe_code="payment_method_missing",
                details={"setup_intent_id": setup_intent_id},
            )

        cls._call(
            "set_default_payment_method",
            {"customer_id": customer_id, "payment_method_id": payment_method_id},
            stripe.Customer.modify,
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )
        return payment_method_id

    # =========================================================================
    # Webhooks
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            Parsed event dict

        Raises:
            StripeInvalidRequestError: Bad signature or malformed payload
        """
        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
            return json.loads(body)
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Malformed webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e

    # =========================================================================
    # Conversion
    # =========================================================================

    @staticmethod
    def _subscription_result(sub: Any) -> SubscriptionResult:
        return SubscriptionResult(
            id=sub.id,
            customer_id=_object_id(getattr(sub, "customer", None)),
            status=getattr(sub, "status", ""),
            cancel_at_period_end=bool(getattr(sub, "cancel_at_period_end", False)),
            raw_response=_to_dict(sub),
        )

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate an SDK exception to a StripeError subclass and raise it.

        Raises:
            StripeCardDeclinedError: Card declined
            StripeInvalidRequestError: Bad params, unknown object, bad API key
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: Network failure, 5xx or unknown error
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, StripeError):
            raise error

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {type(error).__name__}",
                stripe_code="unknown_error",
            ) from error
