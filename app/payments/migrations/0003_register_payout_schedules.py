"""
Add celery-beat schedules for the settlement pipeline.

Creates the periodic tasks that transfer due host payouts, reconcile
payouts stuck in processing, create payouts deferred by missing bank
details and retry failed Paystack webhooks.
"""

from django.db import migrations

# (name, task, every, period, description)
SCHEDULES = [
    (
        "Process Scheduled Payouts",
        "payments.tasks.process_scheduled_payouts",
        15,
        "minutes",
        "Transfers one batch of due host payouts through Paystack.",
    ),
    (
        "Reconcile Processing Payouts",
        "payments.tasks.reconcile_processing_payouts",
        30,
        "minutes",
        "Verifies payouts stuck in processing with Paystack.",
    ),
    (
        "Create Missing Host Payouts",
        "payments.tasks.create_missing_host_payouts",
        1,
        "hours",
        "Creates host payouts deferred because bank details were not verified.",
    ),
    (
        "Retry Failed Webhooks",
        "payments.tasks.retry_failed_webhooks",
        5,
        "minutes",
        "Re-queues failed Paystack webhook events that have retries left.",
    ),
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for payouts and webhooks."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for name, task, every, period, description in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=every,
            period=period,
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


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[name for name, *_ in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0002_payout_booking"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
