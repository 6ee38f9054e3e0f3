"""
Celery configuration for certwatch.

Runs the scheduled report and notification batches (see CELERY_BEAT_SCHEDULE
in settings/base.py).
"""

import os

from celery import Celery

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'certwatch.settings.dev')

app = Celery('certwatch')

# Load configuration from Django settings with the CELERY namespace
app.config_from_object('django.conf:settings', namespace='CELERY')

# Tasks live in certwatch.tasks
app.autodiscover_tasks()
