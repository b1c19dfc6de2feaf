"""
Membership billing orchestration.

MembershipService sits between the member pages and StripeAdapter. It
decides whether an action is allowed, calls Stripe and keeps the
account's role in step with what happened on the billing side.

Cancellation saga (cancel_membership):
    1. Require a Stripe customer on the account
    2. List the customer's subscriptions; none means nothing to cancel
    3. Cancel them all immediately; on failure stop, role unchanged
    4. Downgrade the role to ROLE_FREE (billing has already stopped)
    5. Detach the default card; a failure here becomes a warning on the
       report and never undoes steps 3-4

Usage:
    from payments.services import MembershipService

    result = MembershipService.start_upgrade(request.user, request.build_absolute_uri())
    if result.success:
        session_id = result.data.id
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from accounts.services import AccountService
from core.services import BaseService, ServiceResult
from payments.adapters import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    StripeAdapter,
    is_retryable_stripe_error,
)
from payments.exceptions import BillingCustomerMissingError, PaymentError, StripeError

if TYPE_CHECKING:
    from accounts.models import User


# =============================================================================
# Data Types
# =============================================================================


class CancellationOutcome(str, enum.Enum):
    CANCELLED = "cancelled"
    CANCELLED_WITH_WARNINGS = "cancelled_with_warnings"
    SCHEDULED = "scheduled"
    NO_SUBSCRIPTION = "no_subscription"


@dataclass
class CancellationReport:
    """
    What a cancellation did.

    Attributes:
        outcome: Overall result
        cancelled_subscription_ids: Subscriptions cancelled on Stripe
        detached_payment_method_id: Card removed from the customer, if any
        warnings: Follow-up steps that failed after billing was cancelled
    """

    outcome: CancellationOutcome
    cancelled_subscription_ids: list[str] = field(default_factory=list)
    detached_payment_method_id: str | None = None
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# Membership Service
# =============================================================================


class MembershipService(BaseService):
    """Premium membership lifecycle on top of StripeAdapter."""

    # Stripe adapter - can be injected for testing
    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        """Set the Stripe adapter class (for testing)."""
        cls._stripe_adapter = adapter

    # =========================================================================
    # Upgrade and card update
    # =========================================================================

    @classmethod
    def start_upgrade(
        cls,
        user: User,
        request_url: str,
    ) -> ServiceResult[CheckoutSessionResult]:
        """
        Open a Checkout Session for the premium plan.

        An account that already has a Stripe customer is billed on that
        customer again.

        Returns:
            success(CheckoutSessionResult), or failure with ALREADY_PREMIUM
            or the Stripe error code
        """
        invalid = cls.validate_required(request_url=request_url)
        if invalid:
            return invalid

        if user.is_premium:
            return ServiceResult.failure(
                "This account is already a premium member",
                error_code="ALREADY_PREMIUM",
            )

        params = CreateCheckoutSessionParams(
            user_id=user.pk,
            email=user.email,
            request_url=request_url,
            customer_id=user.stripe_customer_id or None,
        )
        try:
            session = cls.get_stripe_adapter().create_checkout_session(params)
        except StripeError as e:
            return cls._stripe_failure(e, "Checkout session creation", user)

        cls.get_logger().info(
            "Checkout session created",
            extra={"user_id": user.pk, "session_id": session.id},
        )
        return ServiceResult.success(session)

    @classmethod
    def start_card_update(
        cls,
        user: User,
        request_url: str,
    ) -> ServiceResult[CheckoutSessionResult]:
        """
        Open a setup-mode Checkout Session to replace the billing card.

        Returns:
            success(CheckoutSessionResult), or failure with
            NO_BILLING_CUSTOMER or the Stripe error code
        """
        try:
            customer_id = cls._require_customer(user)
            session = cls.get_stripe_adapter().create_card_update_session(
                customer_id, request_url
            )
        except StripeError as e:
            return cls._stripe_failure(e, "Card update session creation", user)
        except PaymentError as e:
            return cls.handle_exception(e, "Card update", log_level=logging.WARNING)

        return ServiceResult.success(session)

    # =========================================================================
    # Cancellation
    # =========================================================================

    @classmethod
    def cancel_membership(cls, user: User) -> ServiceResult[CancellationReport]:
        """
        Cancel all subscriptions now and downgrade the account.

        Returns:
            success(CancellationReport) with outcome CANCELLED,
            CANCELLED_WITH_WARNINGS or NO_SUBSCRIPTION; failure when the
            account has no customer or Stripe could not cancel
        """
        logger = cls.get_logger()
        adapter = cls.get_stripe_adapter()

        try:
            customer_id = cls._require_customer(user)
        except PaymentError as e:
            return cls.handle_exception(e, "Cancellation", log_level=logging.WARNING)

        log_context = {"user_id": user.pk, "customer_id": customer_id}
        logger.info("Starting membership cancellation", extra=log_context)

        try:
            subscriptions = adapter.list_subscriptions(customer_id)
        except StripeError as e:
            return cls._stripe_failure(e, "Listing subscriptions", user)

        if not subscriptions:
            logger.info("No subscriptions to cancel", extra=log_context)
            return ServiceResult.success(
                CancellationReport(outcome=CancellationOutcome.NO_SUBSCRIPTION)
            )

        try:
            cancelled = adapter.cancel_subscriptions(subscriptions)
        except StripeError as e:
            return cls._stripe_failure(e, "Cancelling subscriptions", user)

        report = CancellationReport(
            outcome=CancellationOutcome.CANCELLED,
            cancelled_subscription_ids=[sub.id for sub in cancelled],
        )
        logger.info(
            "Subscriptions cancelled",
            extra={**log_context, "subscription_ids": report.cancelled_subscription_ids},
        )

        AccountService.downgrade_to_free(user.pk)
        user.refresh_from_db(fields=["role"])

        try:
            payment_method_id = adapter.get_default_payment_method_id(customer_id)
            if payment_method_id:
                adapter.detach_payment_method(payment_method_id)
                report.detached_payment_method_id = payment_method_id
        except StripeError as e:
            logger.warning(
                "Could not detach payment method after cancellation",
                extra={**log_context, "error_code": e.error_code},
            )
            report.warnings.append("The saved card could not be removed.")
            report.outcome = CancellationOutcome.CANCELLED_WITH_WARNINGS

        logger.info(
            "Membership cancelled",
            extra={**log_context, "outcome": report.outcome.value},
        )
        return ServiceResult.success(report)

    @classmethod
    def cancel_at_period_end(cls, user: User) -> ServiceResult[CancellationReport]:
        """
        Schedule the subscription to end at the close of the paid period.

        The role stays premium until Stripe sends
        customer.subscription.deleted.
        """
        try:
            customer_id = cls._require_customer(user)
            scheduled = cls.get_stripe_adapter().cancel_subscription_at_period_end(
                customer_id
            )
        except StripeError as e:
            return cls._stripe_failure(e, "Scheduling cancellation", user)
        except PaymentError as e:
            return cls.handle_exception(e, "Cancellation", log_level=logging.WARNING)

        outcome = (
            CancellationOutcome.SCHEDULED
            if scheduled
            else CancellationOutcome.NO_SUBSCRIPTION
        )
        cls.get_logger().info(
            "Period-end cancellation requested",
            extra={"user_id": user.pk, "outcome": outcome.value},
        )
        return ServiceResult.success(CancellationReport(outcome=outcome))

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_customer(user: User) -> str:
        if not user.stripe_customer_id:
            raise BillingCustomerMissingError(
                "This account has no billing customer",
                details={"user_id": user.pk},
            )
        return user.stripe_customer_id

    @classmethod
    def _stripe_failure(cls, error: StripeError, context: str, user: User) -> ServiceResult:
        level = logging.WARNING if is_retryable_stripe_error(error) else logging.ERROR
        cls.get_logger().log(
            level,
            f"{context} failed",
            extra={
                "user_id": user.pk,
                "error_code": error.error_code,
                "stripe_code": error.stripe_code,
                "is_retryable": error.is_retryable,
            },
        )
        return ServiceResult.from_exception(error)
