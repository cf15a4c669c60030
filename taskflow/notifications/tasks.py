"""Celery jobs for notification fan-out and report generation.

Payloads are JSON snapshots produced by notifications.events; a job
rebuilds the typed event and hands it to the service layer. Per-recipient
delivery failures never fail a job. Malformed payloads and unknown report
types do, so the queue can record and retry them per its own policy.
"""

import logging

from celery import shared_task
from django.contrib.auth import get_user_model

from notifications.events import parse_project_event, parse_task_event
from notifications.services.project import handle_project_event
from notifications.services.report import notify_report_failed, notify_report_ready
from notifications.services.task import handle_task_event
from projects.services.reports import build_report
from taskflow.exceptions import InvalidJobError

logger = logging.getLogger(__name__)

User = get_user_model()


@shared_task(
    name="notifications.tasks.send_project_notifications",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def send_project_notifications(self, payload: dict) -> dict:
    event = parse_project_event(payload)
    logger.info(
        "Project notification job started: %s project %s (event=%s)",
        event.action, event.project.id, event.event_id,
    )

    delivered = handle_project_event(event)

    logger.info(
        "Project notification job completed: %s project %s, %d delivered",
        event.action, event.project.id, delivered,
    )
    return {"event_id": event.event_id, "action": event.action, "delivered": delivered}


@shared_task(
    name="notifications.tasks.send_task_notifications",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def send_task_notifications(self, payload: dict) -> dict:
    event = parse_task_event(payload)
    logger.info(
        "Task notification job started: %s task %s (event=%s)",
        event.action, event.task.id, event.event_id,
    )

    delivered = handle_task_event(event)

    logger.info(
        "Task notification job completed: %s task %s, %d delivered",
        event.action, event.task.id, delivered,
    )
    return {"event_id": event.event_id, "action": event.action, "delivered": delivered}


@shared_task(
    name="notifications.tasks.generate_report",
    bind=True,
    max_retries=0,
)
def generate_report(self, report_type: str, user_id: int, parameters: dict | None = None) -> dict:
    """
    Build a report and tell the requesting user where it is.
    On failure the user is told too, and the error propagates.
    """
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise InvalidJobError(f"Report requested by unknown user {user_id!r}")

    try:
        path = build_report(report_type, parameters or {})
    except Exception as exc:
        logger.error("Report %s for user %s failed: %s", report_type, user_id, exc, exc_info=True)
        notify_report_failed(recipient=user, report_type=report_type, error=str(exc))
        raise

    notify_report_ready(recipient=user, report_type=report_type, path=path)
    logger.info("Report %s for user %s written to %s", report_type, user_id, path)

    return {"report_type": report_type, "path": path}
