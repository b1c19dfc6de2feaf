"""
Pytest fixtures shared by the payments tests.

Sections:
    - Account Fixtures
    - Mock Stripe Objects
    - Adapter Injection
"""

from typing import Any
from unittest.mock import MagicMock

import pytest

from accounts.tests.factories import UserFactory
from payments.adapters import StripeAdapter, SubscriptionResult
from payments.services import MembershipService


# =============================================================================
# Account Fixtures
# =============================================================================


@pytest.fixture
def member(db):
    """Free member that has never paid."""
    return UserFactory(email="free@example.com")


@pytest.fixture
def premium_member(db):
    return UserFactory(
        email="premium@example.com",
        premium=True,
        stripe_customer_id="cus_test123",
    )


# =============================================================================
# Mock Stripe Objects
# =============================================================================


class MockStripeObject:
    """Attribute access over a dict, like a StripeObject."""

    def __init__(self, values: dict[str, Any]):
        self._values = values

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        value = self._values.get(name)
        if isinstance(value, dict):
            return MockStripeObject(value)
        if isinstance(value, list):
            return [MockStripeObject(v) if isinstance(v, dict) else v for v in value]
        return value

    def to_dict(self) -> dict[str, Any]:
        return self._values


@pytest.fixture
def stripe_object():
    """Build a MockStripeObject from keyword arguments."""

    def _create(**values):
        return MockStripeObject(values)

    return _create


# =============================================================================
# Adapter Injection
# =============================================================================


@pytest.fixture
def mock_adapter():
    """
    StripeAdapter stand-in injected into MembershipService.

    Defaults describe a customer with one active subscription and a
    default card.
    """
    adapter = MagicMock(spec=StripeAdapter)
    subscription = SubscriptionResult(
        id="sub_test123", customer_id="cus_test123", status="active"
    )
    adapter.list_subscriptions.return_value = [subscription]
    adapter.cancel_subscriptions.return_value = [
        SubscriptionResult(id="sub_test123", customer_id="cus_test123", status="canceled")
    ]
    adapter.get_default_payment_method_id.return_value = "pm_test123"
    adapter.cancel_subscription_at_period_end.return_value = True

    MembershipService.set_stripe_adapter(adapter)
    yield adapter
    MembershipService.set_stripe_adapter(None)
