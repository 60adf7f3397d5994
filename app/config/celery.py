"""
Celery configuration for the Django application.

Celery runs work that should not block an admin request, such as large
batch disbursements. Redis is both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps.

Usage:
    from payments.tasks import disburse_batch_task

    disburse_batch_task.delay(payout_ids, actor="ops")

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

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
