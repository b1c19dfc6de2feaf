"""
Tests for AccountService.

Test Organization:
    - Each service method has its own test class
    - Tests use descriptive names following the pattern: test_<scenario>_<expected_outcome>
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

from accounts.models import Role, User, VerificationToken
from accounts.services import AccountService
from accounts.tests.factories import UserFactory, VerificationTokenFactory
from core.exceptions import ConflictError, NotFoundError, ValidationError


# =============================================================================
# Email rules
# =============================================================================


@pytest.mark.django_db
class TestIsEmailChanged:
    def test_same_email_is_unchanged(self, user):
        assert AccountService.is_email_changed({"id": user.pk, "email": user.email}) is False

    def test_comparison_ignores_case(self, user):
        form_data = {"id": user.pk, "email": user.email.upper()}

        assert AccountService.is_email_changed(form_data) is False

    def test_different_email_is_changed(self, user):
        form_data = {"id": user.pk, "email": "other@example.com"}

        assert AccountService.is_email_changed(form_data) is True

    def test_unknown_account_raises(self, db):
        with pytest.raises(NotFoundError):
            AccountService.is_email_changed({"id": 999999, "email": "x@example.com"})


@pytest.mark.django_db
class TestIsEmailRegistered:
    def test_registered_email(self, user):
        assert AccountService.is_email_registered("MEMBER@example.com") is True

    def test_unregistered_email(self, user):
        assert AccountService.is_email_registered("nobody@example.com") is False

    def test_own_email_excluded(self, user):
        assert (
            AccountService.is_email_registered(user.email, exclude_user_id=user.pk)
            is False
        )


# =============================================================================
# Profile
# =============================================================================


@pytest.mark.django_db
class TestUpdate:
    def test_updates_editable_fields(self, user):
        AccountService.update(
            user.pk,
            {"name": "Jiro", "address": "Osaka", "age": 28, "role": "ignored"},
        )

        user.refresh_from_db()
        assert user.name == "Jiro"
        assert user.address == "Osaka"
        assert user.age == 28
        assert user.role.name == Role.Name.FREE

    def test_changes_email(self, user):
        AccountService.update(user.pk, {"email": "renamed@example.com"})

        user.refresh_from_db()
        assert user.email == "renamed@example.com"

    def test_keeping_own_email_is_allowed(self, user):
        AccountService.update(user.pk, {"email": user.email, "name": "Same"})

        user.refresh_from_db()
        assert user.name == "Same"

    def test_email_of_another_account_rejected(self, user):
        UserFactory(email="taken@example.com")

        with pytest.raises(ValidationError) as exc_info:
            AccountService.update(user.pk, {"email": "Taken@example.com", "name": "X"})

        assert exc_info.value.error_code == "EMAIL_EXISTS"
        assert "email" in exc_info.value.details["errors"]
        user.refresh_from_db()
        assert user.email == "member@example.com"
        assert user.name != "X"

    def test_unknown_account_raises(self, db):
        with pytest.raises(NotFoundError):
            AccountService.update(999999, {"name": "Ghost"})


# =============================================================================
# Billing link and roles
# =============================================================================


@pytest.mark.django_db
class TestSaveCustomerIdAndUpgrade:
    def test_links_customer_and_upgrades(self, user):
        result = AccountService.save_customer_id_and_upgrade(
            {"userId": str(user.pk), "customerId": "cus_new123"}
        )

        user.refresh_from_db()
        assert result.pk == user.pk
        assert user.stripe_customer_id == "cus_new123"
        assert user.is_premium

    def test_applying_twice_is_idempotent(self, user):
        metadata = {"userId": str(user.pk), "customerId": "cus_twice"}

        AccountService.save_customer_id_and_upgrade(metadata)
        AccountService.save_customer_id_and_upgrade(metadata)

        user.refresh_from_db()
        assert user.stripe_customer_id == "cus_twice"
        assert user.is_premium

    def test_reuses_customer_after_downgrade(self, premium_user):
        AccountService.downgrade_to_free(premium_user.pk)

        AccountService.save_customer_id_and_upgrade(
            {"userId": premium_user.pk, "customerId": "cus_premium123"}
        )

        premium_user.refresh_from_db()
        assert premium_user.is_premium

    @pytest.mark.parametrize("user_id", [None, "", "abc"])
    def test_malformed_user_id_is_not_found(self, db, user_id):
        with pytest.raises(NotFoundError) as exc_info:
            AccountService.save_customer_id_and_upgrade(
                {"userId": user_id, "customerId": "cus_1"}
            )

        assert exc_info.value.error_code == "ACCOUNT_NOT_FOUND"

    def test_unknown_user_is_not_found(self, db):
        with pytest.raises(NotFoundError):
            AccountService.save_customer_id_and_upgrade(
                {"userId": "999999", "customerId": "cus_1"}
            )

    def test_missing_customer_id_rejected(self, user):
        with pytest.raises(ValidationError) as exc_info:
            AccountService.save_customer_id_and_upgrade({"userId": str(user.pk)})

        assert exc_info.value.error_code == "MISSING_CUSTOMER_ID"
        user.refresh_from_db()
        assert not user.is_premium

    def test_customer_owned_by_another_account_conflicts(self, user, premium_user):
        with pytest.raises(ConflictError) as exc_info:
            AccountService.save_customer_id_and_upgrade(
                {"userId": str(user.pk), "customerId": premium_user.stripe_customer_id}
            )

        assert exc_info.value.error_code == "CUSTOMER_ALREADY_LINKED"
        user.refresh_from_db()
        assert user.stripe_customer_id is None
        assert not user.is_premium


@pytest.mark.django_db
class TestChangeRole:
    def test_changes_role(self, user):
        AccountService.change_role(user.pk, Role.Name.PREMIUM)

        user.refresh_from_db()
        assert user.is_premium

    def test_same_role_is_noop(self, premium_user):
        updated_at = premium_user.updated_at

        AccountService.change_role(premium_user.pk, Role.Name.PREMIUM)

        premium_user.refresh_from_db()
        assert premium_user.updated_at == updated_at

    def test_unknown_role_raises(self, user):
        with pytest.raises(NotFoundError):
            AccountService.change_role(user.pk, "ROLE_UNKNOWN")

    def test_downgrade_to_free_keeps_customer(self, premium_user):
        AccountService.downgrade_to_free(premium_user.pk)

        premium_user.refresh_from_db()
        assert premium_user.role.name == Role.Name.FREE
        assert premium_user.stripe_customer_id == "cus_premium123"


@pytest.mark.django_db
class TestDowngradeByCustomerId:
    def test_downgrades_owner(self, premium_user):
        result = AccountService.downgrade_by_customer_id("cus_premium123")

        premium_user.refresh_from_db()
        assert result.pk == premium_user.pk
        assert not premium_user.is_premium

    def test_unknown_customer_returns_none(self, db):
        assert AccountService.downgrade_by_customer_id("cus_nobody") is None


@pytest.mark.django_db
class TestGetByCustomerId:
    def test_finds_owner(self, premium_user):
        assert AccountService.get_by_customer_id("cus_premium123") == premium_user

    @pytest.mark.parametrize("customer_id", ["cus_nobody", "", None])
    def test_no_owner(self, user, customer_id):
        assert AccountService.get_by_customer_id(customer_id) is None


# =============================================================================
# Deletion
# =============================================================================


@pytest.mark.django_db
class TestDeleteAccount:
    def test_deletes_user_and_tokens(self, user):
        VerificationTokenFactory(user=user)
        VerificationTokenFactory(user=user)
        other_token = VerificationTokenFactory()

        AccountService.delete_account(user.pk)

        assert not User.objects.filter(pk=user.pk).exists()
        assert not VerificationToken.objects.filter(user_id=user.pk).exists()
        assert VerificationToken.objects.filter(pk=other_token.pk).exists()

    def test_unknown_account_raises(self, db):
        with pytest.raises(NotFoundError):
            AccountService.delete_account(999999)

    def test_token_failure_keeps_account(self, user):
        VerificationTokenFactory(user=user)

        with patch(
            "accounts.services.VerificationToken.objects.filter",
            side_effect=DatabaseError("boom"),
        ):
            with pytest.raises(DatabaseError):
                AccountService.delete_account(user.pk)

        assert User.objects.filter(pk=user.pk).exists()
        assert VerificationToken.objects.filter(user=user).count() == 1
