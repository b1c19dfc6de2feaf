"""
Schedule the webhook maintenance tasks with celery-beat.

- retry_failed_webhooks: every 5 minutes
- cleanup_stuck_webhooks: every 15 minutes
- cleanup_old_webhooks: daily at 03:30
"""

from django.db import migrations

INTERVAL_TASKS = (
    (
        "Retry Failed Stripe Webhooks",
        "payments.tasks.retry_failed_webhooks",
        5,
        "Re-queues failed webhook events that are below the retry limit.",
    ),
    (
        "Reset Stuck Stripe Webhooks",
        "payments.tasks.cleanup_stuck_webhooks",
        15,
        "Marks events left in processing by a dead worker as failed.",
    ),
)
CLEANUP_TASK_NAME = "Delete Old Stripe Webhooks"


def create_periodic_tasks(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for name, task, minutes, description in INTERVAL_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=minutes,
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=name,
            defaults={
                "task": task,
                "interval": schedule,
                "enabled": True,
                "description": description,
            },
        )

    crontab, _ = CrontabSchedule.objects.get_or_create(
        minute="30",
        hour="3",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )
    PeriodicTask.objects.get_or_create(
        name=CLEANUP_TASK_NAME,
        defaults={
            "task": "payments.tasks.cleanup_old_webhooks",
            "crontab": crontab,
            "enabled": True,
            "description": "Deletes processed webhook events past retention.",
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    names = [name for name, *_ in INTERVAL_TASKS] + [CLEANUP_TASK_NAME]
    PeriodicTask.objects.filter(name__in=names).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
