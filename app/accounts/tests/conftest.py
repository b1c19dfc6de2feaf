"""
Fixtures for accounts tests.

Roles come from migration 0002_seed_roles, so every test database already
holds ROLE_FREE, ROLE_PREMIUM and ROLE_ADMIN.
"""

import pytest
from django.test import Client

from accounts.models import Role
from accounts.tests.factories import UserFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Free member."""
    return UserFactory(email="member@example.com")


@pytest.fixture
def premium_user(db):
    """Premium member with a linked Stripe customer."""
    return UserFactory(
        email="premium@example.com",
        premium=True,
        stripe_customer_id="cus_premium123",
    )


@pytest.fixture
def staff_user(db):
    return UserFactory(email="staff@example.com", is_staff=True)


@pytest.fixture
def premium_role(db):
    return Role.get_by_name(Role.Name.PREMIUM)


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def client_for():
    """Return a function that builds a test client logged in as a user."""

    def _login(user):
        client = Client()
        client.force_login(user)
        return client

    return _login


@pytest.fixture
def member_client(client_for, user):
    return client_for(user)


@pytest.fixture
def premium_client(client_for, premium_user):
    return client_for(premium_user)


@pytest.fixture
def staff_client(client_for, staff_user):
    return client_for(staff_user)
