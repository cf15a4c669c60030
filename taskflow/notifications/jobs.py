"""
Producers for the fan-out jobs.

Enqueueing is fire-and-forget. If the broker is unreachable after the
entity change has committed, the fan-out is lost and only logged; the
committed change stands.
"""

import logging

from kombu.exceptions import KombuError

from notifications.tasks import (
    generate_report,
    send_project_notifications,
    send_task_notifications,
)

logger = logging.getLogger(__name__)


def _enqueue(job, event):
    try:
        job.delay(event.model_dump(mode="json"))
    except (KombuError, OSError):
        logger.exception(
            "Could not enqueue %s for %s event %s",
            job.name, event.action, event.event_id,
        )
        return False
    return True


def enqueue_project_event(event):
    return _enqueue(send_project_notifications, event)


def enqueue_task_event(event):
    return _enqueue(send_task_notifications, event)


def enqueue_report(*, report_type, user, parameters=None):
    try:
        generate_report.delay(report_type, user.pk, parameters or {})
    except (KombuError, OSError):
        logger.exception("Could not enqueue %s report for user %s", report_type, user.pk)
        return False
    return True
