"""
Celery configuration for the membership site.

Workers run the Stripe webhook tasks in payments.tasks; celery-beat runs
the webhook maintenance tasks on the schedules stored by
django-celery-beat (see payments migration 0002).

Redis is both the message broker and the result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
