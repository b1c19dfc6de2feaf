"""
Billing exceptions.

Exception Hierarchy:
    PaymentError (base for the billing domain)
    ├── BillingCustomerMissingError - account has no Stripe customer yet
    └── PaymentProcessingError - a billing operation failed
        └── StripeError - base for errors raised by StripeAdapter
            ├── StripeCardDeclinedError - card declined (permanent)
            ├── StripeInvalidRequestError - bad params / unknown object /
            │                               bad signature (permanent)
            ├── StripeRateLimitError - rate limited (transient)
            ├── StripeAPIUnavailableError - network or 5xx (transient)
            └── StripeTimeoutError - request timed out (transient)

StripeAdapter translates every SDK exception into one of the Stripe*
classes, so callers never import the stripe package to handle errors.

Usage:
    from payments.exceptions import StripeError

    try:
        StripeAdapter.cancel_subscriptions(subscriptions)
    except StripeError as e:
        if e.is_retryable:
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Billing Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for the billing domain."""

    default_error_code: str = "PAYMENT_ERROR"


class BillingCustomerMissingError(PaymentError):
    """
    Raised when an operation needs a Stripe customer but the account was
    never linked to one (it never completed a checkout).
    """

    default_error_code: str = "NO_BILLING_CUSTOMER"


class PaymentProcessingError(PaymentError):
    """A billing operation could not be completed."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for errors coming back from Stripe.

    Attributes:
        stripe_code: Stripe's error code (e.g. resource_missing)
        decline_code: Card decline code, when Stripe sent one
        is_retryable: True for transient failures that may succeed later
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """The card was declined (e.g. when detaching or attaching it)."""

    default_error_code: str = "CARD_DECLINED"


class StripeInvalidRequestError(StripeError):
    """
    Stripe rejected the request.

    Covers unknown customers/subscriptions (resource_missing), invalid
    parameters, a bad API key and webhook signature failures.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Network failure or 5xx from Stripe."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    The request timed out.

    The call may have succeeded on Stripe's side; read state back before
    acting on the assumption that it failed.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


RETRYABLE_ERROR_CODES = frozenset(
    cls.default_error_code
    for cls in (StripeRateLimitError, StripeAPIUnavailableError, StripeTimeoutError)
)


__all__ = [
    "PaymentError",
    "BillingCustomerMissingError",
    "PaymentProcessingError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    "RETRYABLE_ERROR_CODES",
]
