"""
Best-effort webhook posting for project events.

Failures are logged and swallowed; they never fail the job.
"""

import logging

import httpx
from django.conf import settings

from notifications.events import ProjectCreated
from taskflow.exceptions import WebhookError

logger = logging.getLogger(__name__)


def build_project_webhook_message(event):
    project = event.project

    if isinstance(event, ProjectCreated):
        text = f"New project created: *{project.name}*"
    else:
        text = f"Project updated: *{project.name}*"

    return {
        "text": text,
        "attachments": [
            {
                "color": "good",
                "fields": [
                    {
                        "title": "Manager",
                        "value": project.manager_name,
                        "short": True,
                    },
                    {
                        "title": "Status",
                        "value": project.status.replace("-", " ").capitalize(),
                        "short": True,
                    },
                ],
            }
        ],
    }


def send_webhook(url, message):
    try:
        response = httpx.post(
            url,
            json=message,
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise WebhookError(f"Webhook post to {url} failed: {exc}") from exc


def post_project_webhook(event):
    """Returns True when the webhook accepted the message."""
    url = settings.TASKFLOW_WEBHOOK_URL
    if not url:
        return False

    try:
        send_webhook(url, build_project_webhook_message(event))
    except WebhookError as exc:
        logger.error(
            "Webhook notification failed for project %s: %s",
            event.project.id, exc,
        )
        return False

    return True
