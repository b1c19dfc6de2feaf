"""
Custom user manager for email-based authentication.

New members start on the free tier: create_user attaches the ROLE_FREE
row unless a role is passed explicitly.
"""

from django.contrib.auth.models import BaseUserManager


class UserManager(BaseUserManager):
    """
    Manager for the email-login User model.

    Usage:
        user = User.objects.create_user(
            email="member@example.com",
            password="securepassword",
            name="Taro Yamada",
        )
        assert user.role.name == Role.Name.FREE
    """

    def _default_role(self, role_name):
        role_model = self.model._meta.get_field("role").related_model
        return role_model.get_by_name(role_name)

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a member.

        Raises:
            ValueError: If email is not provided
            NotFoundError: If the default role row has not been seeded
        """
        if not email:
            raise ValueError("The Email field must be set")

        email = self.normalize_email(email)

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        if "role" not in extra_fields:
            extra_fields["role"] = self._default_role("ROLE_FREE")

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser holding the admin role.

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("email_verified", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        if "role" not in extra_fields:
            extra_fields["role"] = self._default_role("ROLE_ADMIN")

        return self.create_user(email, password, **extra_fields)
