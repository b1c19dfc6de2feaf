"""
Account service.

All writes to a member's role, billing link or profile go through
AccountService. Each mutation locks the user row with select_for_update()
inside a transaction so concurrent requests and webhook deliveries for
the same account apply one after another.

Usage:
    from accounts.services import AccountService

    if AccountService.is_email_changed(form_data) and AccountService.is_email_registered(email):
        ...
    AccountService.save_customer_id_and_upgrade({"userId": "42", "customerId": "cus_123"})
"""

import logging

from accounts.models import Role, User, VerificationToken
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.services import BaseService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name",
    "furigana",
    "postal_code",
    "address",
    "phone_number",
    "email",
    "age",
    "occupation",
)


class AccountService(BaseService):
    """Account reads and mutations."""

    # =========================================================================
    # Email rules
    # =========================================================================

    @staticmethod
    def is_email_changed(form_data):
        """
        Whether the submitted email differs from the stored one.

        Args:
            form_data: Dict with "id" (account id) and "email"

        Raises:
            NotFoundError: If the account does not exist
        """
        user = AccountService._get_user(form_data["id"])
        return (form_data.get("email") or "").strip().lower() != user.email.lower()

    @staticmethod
    def is_email_registered(email, exclude_user_id=None):
        """Whether any other account already uses this email."""
        queryset = User.objects.filter(email__iexact=(email or "").strip())
        if exclude_user_id is not None:
            queryset = queryset.exclude(pk=exclude_user_id)
        return queryset.exists()

    # =========================================================================
    # Profile
    # =========================================================================

    @classmethod
    def update(cls, user_id, data):
        """
        Apply edited profile fields.

        Args:
            user_id: Account id
            data: Cleaned form data; keys outside EDITABLE_FIELDS are ignored

        Raises:
            ValidationError: EMAIL_EXISTS when the email belongs to another account
            NotFoundError: If the account does not exist
        """
        with cls.atomic():
            user = cls._get_user(user_id, lock=True)

            email = data.get("email")
            if email and email.lower() != user.email.lower():
                if cls.is_email_registered(email, exclude_user_id=user.pk):
                    raise ValidationError(
                        "This email address is already registered",
                        error_code="EMAIL_EXISTS",
                        details={"errors": {"email": ["This email address is already registered."]}},
                    )
                data = {**data, "email": User.objects.normalize_email(email)}

            changed = []
            for field in EDITABLE_FIELDS:
                if field in data:
                    setattr(user, field, data[field])
                    changed.append(field)
            user.save(update_fields=changed + ["updated_at"])

        logger.info(
            "Account profile updated",
            extra={"user_id": user.pk, "fields": changed},
        )
        return user

    # =========================================================================
    # Billing link and roles
    # =========================================================================

    @classmethod
    def save_customer_id_and_upgrade(cls, metadata):
        """
        Link a Stripe customer to the account named in checkout metadata
        and promote it to premium.

        Applying the same metadata twice leaves the account unchanged.

        Args:
            metadata: Dict with "userId" and "customerId"

        Raises:
            NotFoundError: ACCOUNT_NOT_FOUND when userId is missing, malformed
                or unknown
            ValidationError: MISSING_CUSTOMER_ID
            ConflictError: CUSTOMER_ALREADY_LINKED when another account owns
                the customer
        """
        raw_user_id = metadata.get("userId")
        customer_id = metadata.get("customerId")

        try:
            user_id = int(raw_user_id)
        except (TypeError, ValueError):
            raise NotFoundError(
                "Checkout metadata does not name a valid account",
                error_code="ACCOUNT_NOT_FOUND",
                details={"user_id": raw_user_id},
            ) from None

        if not customer_id:
            raise ValidationError(
                "Checkout metadata has no customer id",
                error_code="MISSING_CUSTOMER_ID",
                details={"user_id": user_id},
            )

        with cls.atomic():
            user = cls._get_user(user_id, lock=True)

            if user.stripe_customer_id == customer_id and user.is_premium:
                logger.info(
                    "Account already upgraded for this customer",
                    extra={"user_id": user.pk, "customer_id": customer_id},
                )
                return user

            if (
                User.objects.filter(stripe_customer_id=customer_id)
                .exclude(pk=user.pk)
                .exists()
            ):
                raise ConflictError(
                    "Stripe customer is linked to another account",
                    error_code="CUSTOMER_ALREADY_LINKED",
                    details={"user_id": user.pk, "customer_id": customer_id},
                )

            user.stripe_customer_id = customer_id
            user.role = Role.get_by_name(Role.Name.PREMIUM)
            user.save(update_fields=["stripe_customer_id", "role", "updated_at"])

        logger.info(
            "Account upgraded to premium",
            extra={"user_id": user.pk, "customer_id": customer_id},
        )
        return user

    @classmethod
    def change_role(cls, user_id, role_name):
        """
        Set the account's role.

        Raises:
            NotFoundError: Unknown account or role
        """
        with cls.atomic():
            user = cls._get_user(user_id, lock=True)
            role = Role.get_by_name(role_name)
            if user.role_id == role.pk:
                return user
            previous = user.role.name if user.role else None
            user.role = role
            user.save(update_fields=["role", "updated_at"])

        logger.info(
            "Account role changed",
            extra={"user_id": user.pk, "from_role": previous, "to_role": role_name},
        )
        return user

    @classmethod
    def downgrade_to_free(cls, user_id):
        return cls.change_role(user_id, Role.Name.FREE)

    @classmethod
    def get_by_customer_id(cls, customer_id):
        """The account linked to a Stripe customer, or None."""
        if not customer_id:
            return None
        return (
            User.objects.select_related("role")
            .filter(stripe_customer_id=customer_id)
            .first()
        )

    @classmethod
    def downgrade_by_customer_id(cls, customer_id):
        """
        Downgrade the account linked to a Stripe customer.

        Returns:
            The updated user, or None when no account owns the customer
        """
        user_id = (
            User.objects.filter(stripe_customer_id=customer_id)
            .values_list("pk", flat=True)
            .first()
        )
        if user_id is None:
            logger.warning(
                "No account for Stripe customer",
                extra={"customer_id": customer_id},
            )
            return None
        return cls.downgrade_to_free(user_id)

    # =========================================================================
    # Deletion
    # =========================================================================

    @classmethod
    def delete_account(cls, user_id):
        """
        Delete the account and its verification tokens in one transaction.

        If removing the tokens fails, the account is left untouched.

        Raises:
            NotFoundError: If the account does not exist
        """
        with cls.atomic():
            user = cls._get_user(user_id, lock=True)
            tokens_deleted, _ = VerificationToken.objects.filter(user_id=user.pk).delete()
            User.objects.filter(pk=user.pk).delete()

        logger.info(
            "Account deleted",
            extra={"user_id": user_id, "tokens_deleted": tokens_deleted},
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _get_user(user_id, lock=False):
        queryset = User.objects.select_related("role")
        if lock:
            queryset = queryset.select_for_update(of=("self",))
        try:
            return queryset.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(
                f"Account {user_id} not found",
                error_code="ACCOUNT_NOT_FOUND",
                details={"user_id": user_id},
            ) from None
