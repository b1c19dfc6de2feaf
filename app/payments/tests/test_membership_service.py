"""
Tests for MembershipService.

StripeAdapter is replaced through MembershipService.set_stripe_adapter()
(see the mock_adapter fixture), so no Stripe call leaves the process.
"""

import pytest

from accounts.models import Role
from payments.adapters import CheckoutSessionResult
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
)
from payments.services import CancellationOutcome, MembershipService


def _session(mode="subscription"):
    return CheckoutSessionResult(
        id="cs_test_1",
        url=None,
        mode=mode,
        success_url="https://host/login?success=true",
        cancel_url="https://host",
    )


# =============================================================================
# Adapter injection
# =============================================================================


class TestAdapterInjection:
    def test_default_adapter(self):
        from payments.adapters import StripeAdapter

        assert MembershipService.get_stripe_adapter() is StripeAdapter

    def test_injected_adapter(self, mock_adapter):
        assert MembershipService.get_stripe_adapter() is mock_adapter


# =============================================================================
# Upgrade
# =============================================================================


@pytest.mark.django_db
class TestStartUpgrade:
    def test_creates_session_for_new_customer(self, member, mock_adapter):
        mock_adapter.create_checkout_session.return_value = _session()

        result = MembershipService.start_upgrade(member, "https://host/user/upgrade")

        assert result.success
        assert result.data.id == "cs_test_1"
        params = mock_adapter.create_checkout_session.call_args.args[0]
        assert params.user_id == member.pk
        assert params.email == member.email
        assert params.customer_id is None

    def test_reuses_existing_customer(self, member, mock_adapter):
        member.stripe_customer_id = "cus_returning"
        member.save(update_fields=["stripe_customer_id"])
        mock_adapter.create_checkout_session.return_value = _session()

        MembershipService.start_upgrade(member, "https://host/user/upgrade")

        params = mock_adapter.create_checkout_session.call_args.args[0]
        assert params.customer_id == "cus_returning"

    def test_premium_member_rejected(self, premium_member, mock_adapter):
        result = MembershipService.start_upgrade(premium_member, "https://host/user/upgrade")

        assert not result.success
        assert result.error_code == "ALREADY_PREMIUM"
        mock_adapter.create_checkout_session.assert_not_called()

    def test_missing_request_url(self, member, mock_adapter):
        result = MembershipService.start_upgrade(member, "")

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"
        assert "request_url" in result.errors
        mock_adapter.create_checkout_session.assert_not_called()

    def test_stripe_failure(self, member, mock_adapter):
        mock_adapter.create_checkout_session.side_effect = StripeAPIUnavailableError(
            "down", stripe_code="api_error"
        )

        result = MembershipService.start_upgrade(member, "https://host/user/upgrade")

        assert not result.success
        assert result.error_code == "STRIPE_UNAVAILABLE"
        member.refresh_from_db()
        assert not member.is_premium


@pytest.mark.django_db
class TestStartCardUpdate:
    def test_creates_setup_session(self, premium_member, mock_adapter):
        mock_adapter.create_card_update_session.return_value = _session(mode="setup")

        result = MembershipService.start_card_update(
            premium_member, "https://host/user/update-card/"
        )

        assert result.success
        mock_adapter.create_card_update_session.assert_called_once_with(
            "cus_test123", "https://host/user/update-card/"
        )

    def test_without_customer(self, member, mock_adapter):
        result = MembershipService.start_card_update(member, "https://host/user/update-card/")

        assert result.error_code == "NO_BILLING_CUSTOMER"
        mock_adapter.create_card_update_session.assert_not_called()


# =============================================================================
# Immediate cancellation
# =============================================================================


@pytest.mark.django_db
class TestCancelMembership:
    def test_full_cancellation(self, premium_member, mock_adapter):
        result = MembershipService.cancel_membership(premium_member)

        assert result.success
        report = result.data
        assert report.outcome == CancellationOutcome.CANCELLED
        assert report.cancelled_subscription_ids == ["sub_test123"]
        assert report.detached_payment_method_id == "pm_test123"
        assert report.warnings == []
        mock_adapter.list_subscriptions.assert_called_once_with("cus_test123")
        mock_adapter.detach_payment_method.assert_called_once_with("pm_test123")

        premium_member.refresh_from_db()
        assert premium_member.role.name == Role.Name.FREE
        assert premium_member.stripe_customer_id == "cus_test123"

    def test_caller_user_object_reflects_downgrade(self, premium_member, mock_adapter):
        MembershipService.cancel_membership(premium_member)

        assert not premium_member.is_premium

    def test_without_customer(self, member, mock_adapter):
        result = MembershipService.cancel_membership(member)

        assert result.error_code == "NO_BILLING_CUSTOMER"
        mock_adapter.list_subscriptions.assert_not_called()

    def test_no_subscriptions(self, premium_member, mock_adapter):
        mock_adapter.list_subscriptions.return_value = []

        result = MembershipService.cancel_membership(premium_member)

        assert result.data.outcome == CancellationOutcome.NO_SUBSCRIPTION
        mock_adapter.cancel_subscriptions.assert_not_called()
        premium_member.refresh_from_db()
        assert premium_member.is_premium

    def test_list_failure_keeps_premium(self, premium_member, mock_adapter):
        mock_adapter.list_subscriptions.side_effect = StripeAPIUnavailableError("down")

        result = MembershipService.cancel_membership(premium_member)

        assert not result.success
        premium_member.refresh_from_db()
        assert premium_member.is_premium

    def test_cancel_failure_keeps_premium_and_card(self, premium_member, mock_adapter):
        mock_adapter.cancel_subscriptions.side_effect = StripeInvalidRequestError(
            "No such subscription", stripe_code="resource_missing"
        )

        result = MembershipService.cancel_membership(premium_member)

        assert not result.success
        assert result.error_code == "INVALID_STRIPE_REQUEST"
        mock_adapter.detach_payment_method.assert_not_called()
        premium_member.refresh_from_db()
        assert premium_member.is_premium

    def test_detach_failure_is_a_warning(self, premium_member, mock_adapter):
        mock_adapter.detach_payment_method.side_effect = StripeCardDeclinedError("nope")

        result = MembershipService.cancel_membership(premium_member)

        assert result.success
        assert result.data.outcome == CancellationOutcome.CANCELLED_WITH_WARNINGS
        assert result.data.warnings == ["The saved card could not be removed."]
        assert result.data.detached_payment_method_id is None
        premium_member.refresh_from_db()
        assert premium_member.role.name == Role.Name.FREE

    def test_deleted_customer_is_a_warning(self, premium_member, mock_adapter):
        mock_adapter.get_default_payment_method_id.side_effect = StripeInvalidRequestError(
            "deleted", stripe_code="resource_missing"
        )

        result = MembershipService.cancel_membership(premium_member)

        assert result.data.outcome == CancellationOutcome.CANCELLED_WITH_WARNINGS
        mock_adapter.detach_payment_method.assert_not_called()

    def test_no_default_card(self, premium_member, mock_adapter):
        mock_adapter.get_default_payment_method_id.return_value = None

        result = MembershipService.cancel_membership(premium_member)

        assert result.data.outcome == CancellationOutcome.CANCELLED
        mock_adapter.detach_payment_method.assert_not_called()

    def test_logs_cancellation(self, premium_member, mock_adapter, caplog):
        with caplog.at_level("INFO"):
            MembershipService.cancel_membership(premium_member)

        assert "Membership cancelled" in caplog.text


# =============================================================================
# Period-end cancellation
# =============================================================================


@pytest.mark.django_db
class TestCancelAtPeriodEnd:
    def test_scheduled(self, premium_member, mock_adapter):
        result = MembershipService.cancel_at_period_end(premium_member)

        assert result.data.outcome == CancellationOutcome.SCHEDULED
        mock_adapter.cancel_subscription_at_period_end.assert_called_once_with("cus_test123")
        premium_member.refresh_from_db()
        assert premium_member.is_premium

    def test_no_subscription(self, premium_member, mock_adapter):
        mock_adapter.cancel_subscription_at_period_end.return_value = False

        result = MembershipService.cancel_at_period_end(premium_member)

        assert result.data.outcome == CancellationOutcome.NO_SUBSCRIPTION

    def test_without_customer(self, member, mock_adapter):
        result = MembershipService.cancel_at_period_end(member)

        assert result.error_code == "NO_BILLING_CUSTOMER"
        mock_adapter.cancel_subscription_at_period_end.assert_not_called()

    def test_stripe_failure(self, premium_member, mock_adapter):
        mock_adapter.cancel_subscription_at_period_end.side_effect = (
            StripeAPIUnavailableError("down")
        )

        result = MembershipService.cancel_at_period_end(premium_member)

        assert not result.success
        assert result.error_code == "STRIPE_UNAVAILABLE"
