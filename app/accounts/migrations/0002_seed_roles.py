"""
Seed the membership roles.

UserManager.create_user assigns ROLE_FREE, so the rows must exist before
the first member registers.
"""

from django.db import migrations

ROLE_NAMES = ("ROLE_FREE", "ROLE_PREMIUM", "ROLE_ADMIN")


def create_roles(apps, schema_editor):
    Role = apps.get_model("accounts", "Role")
    for name in ROLE_NAMES:
        Role.objects.get_or_create(name=name)


def remove_roles(apps, schema_editor):
    Role = apps.get_model("accounts", "Role")
    Role.objects.filter(name__in=ROLE_NAMES, users__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_roles, remove_roles),
    ]
