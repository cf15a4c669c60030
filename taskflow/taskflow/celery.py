"""Taskflow Celery application.

Fan-out notification jobs and report generation run on this app. Settings
come from Django settings under the CELERY_ namespace; with
CELERY_TASK_ALWAYS_EAGER the jobs run in-process.

Usage:
    celery -A taskflow worker --loglevel=info --concurrency=4
"""

import logging
import os

from celery import Celery

logger = logging.getLogger(__name__)

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "taskflow.settings")


def create_celery_app() -> Celery:
    """Create and configure the Celery application."""
    app = Celery("taskflow")

    app.config_from_object("django.conf:settings", namespace="CELERY")

    # Auto-discover <app>.tasks modules of every installed app
    app.autodiscover_tasks()

    return app


app = create_celery_app()
