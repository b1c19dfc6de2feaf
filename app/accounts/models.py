"""
Accounts models.

- Role: membership tier (free, premium, admin)
- User: email-login member with profile data and a Stripe customer link
- VerificationToken: email verification tokens owned by a user

Related files:
    - managers.py: UserManager (assigns the free role on creation)
    - services.py: AccountService, the only writer of User.role
"""

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone

from accounts.managers import UserManager
from core.exceptions import NotFoundError
from core.models import BaseModel


class Role(BaseModel):
    """
    Membership tier.

    Rows are seeded by migration 0002_seed_roles and referenced, never
    owned, by users.
    """

    class Name(models.TextChoices):
        FREE = "ROLE_FREE", "Free member"
        PREMIUM = "ROLE_PREMIUM", "Premium member"
        ADMIN = "ROLE_ADMIN", "Administrator"

    name = models.CharField(
        max_length=50,
        unique=True,
        choices=Name.choices,
        help_text="Role identifier, e.g. ROLE_PREMIUM",
    )

    class Meta:
        db_table = "accounts_role"
        ordering = ["id"]

    def __str__(self):
        return self.name

    @classmethod
    def get_by_name(cls, name):
        """
        Fetch a role by name.

        Raises:
            NotFoundError: If the role has not been seeded
        """
        try:
            return cls.objects.get(name=name)
        except cls.DoesNotExist:
            raise NotFoundError(
                f"Role {name} does not exist",
                error_code="ROLE_NOT_FOUND",
                details={"role": name},
            ) from None


class User(AbstractBaseUser, PermissionsMixin):
    """
    Member account using email as the login identifier.

    Fields:
        email: Login identifier, unique
        name / furigana: Display name and its phonetic reading
        postal_code, address, phone_number: Contact details
        age, occupation: Optional profile data
        role: Membership tier (ROLE_FREE on creation)
        stripe_customer_id: Billing customer, set by a completed checkout
            and kept after cancellation so the next upgrade reuses it
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(max_length=50, blank=True, default="")
    furigana = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Phonetic reading of the name",
    )
    postal_code = models.CharField(max_length=10, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    phone_number = models.CharField(max_length=20, blank=True, default="")
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    occupation = models.CharField(max_length=100, blank=True, default="")

    role = models.ForeignKey(
        Role,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="users",
        help_text="Membership tier",
    )
    stripe_customer_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Stripe customer ID (cus_xxx)",
    )

    email_verified = models.BooleanField(
        default=False,
        help_text="Whether the user's email has been verified",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name or self.email.split("@")[0]

    @property
    def is_premium(self):
        """True when the member holds the premium role."""
        return self.role is not None and self.role.name == Role.Name.PREMIUM

    @property
    def has_billing_customer(self):
        return bool(self.stripe_customer_id)


class VerificationToken(BaseModel):
    """
    Email verification token.

    Deleted together with its user; AccountService.delete_account removes
    tokens explicitly before the user row.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="verification_tokens",
        help_text="User this token belongs to",
    )
    token = models.CharField(
        max_length=64,
        unique=True,
        db_index=True,
    )
    expires_at = models.DateTimeField(db_index=True)
    used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "accounts_verification_token"
        verbose_name = "verification token"
        verbose_name_plural = "verification tokens"

    def __str__(self):
        return f"VerificationToken({self.user_id})"

    @property
    def is_valid(self):
        """Unused and not expired."""
        return self.used_at is None and self.expires_at > timezone.now()
