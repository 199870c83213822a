"""
Celery configuration for the settlement backend.

Celery runs everything that must not block a web request or that runs on a
schedule:
- Polling a pending payment after an STK push
- Processing queued Paystack webhook events
- Scheduled payout batches, reconciliation sweeps and missing-payout jobs

Redis is both the message broker and the result backend. Periodic schedules
live in the database (django-celery-beat) and are registered by a data
migration in the payments app.

Usage:
    from celery import shared_task

    @shared_task
    def process_scheduled_payouts():
        ...

    process_scheduled_payouts.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
