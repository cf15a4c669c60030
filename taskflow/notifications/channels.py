"""
Delivery channels.

A channel delivers one NotificationContent to one recipient and raises
DeliveryError when it cannot. Channels are listed in the
NOTIFICATION_CHANNELS setting and run in that order.
"""

from smtplib import SMTPException
from typing import Any

from django.conf import settings
from django.core.mail import BadHeaderError, send_mail
from django.db import DatabaseError, transaction
from pydantic import BaseModel, Field, field_validator

from notifications.models import Notification
from projects.models import Project
from task_management.models import Task
from taskflow.exceptions import DeliveryError


class NotificationContent(BaseModel):
    """What to deliver; channels decide how."""

    kind: str
    category: str
    priority: str = Notification.Priority.INFO.value
    title: str
    message: str
    email_subject: str = ""
    email_body: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)
    project_id: int | None = None
    task_id: int | None = None
    dedup_key: str = ""

    @field_validator("kind", "category", "priority", mode="before")
    @classmethod
    def _plain_str(cls, value):
        # TextChoices members become their plain value
        return str(value)


class NotificationChannel:
    name = "base"

    def send(self, recipient, content: NotificationContent):
        raise NotImplementedError


# ============================================================
# IN-APP
# ============================================================

class InAppChannel(NotificationChannel):
    name = "in_app"

    def send(self, recipient, content):
        # Subjects may have been deleted since the event was captured
        project_id = content.project_id
        if project_id and not Project.objects.filter(pk=project_id).exists():
            project_id = None

        task_id = content.task_id
        if task_id and not Task.objects.filter(pk=task_id).exists():
            task_id = None

        try:
            with transaction.atomic():
                Notification.objects.create(
                    recipient=recipient,
                    category=content.category,
                    kind=content.kind,
                    priority=content.priority,
                    title=content.title,
                    message=content.message,
                    payload=content.payload,
                    project_id=project_id,
                    task_id=task_id,
                    dedup_key=content.dedup_key,
                )
        except DatabaseError as exc:
            raise DeliveryError(
                f"Could not store notification for user {recipient.pk}: {exc}",
                recipient_id=recipient.pk,
                channel=self.name,
            ) from exc


# ============================================================
# EMAIL
# ============================================================

class EmailChannel(NotificationChannel):
    name = "email"

    def send(self, recipient, content):
        if not recipient.email:
            return

        try:
            send_mail(
                subject=content.email_subject or content.title,
                message=content.email_body or content.message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[recipient.email],
                fail_silently=False,
            )
        except (SMTPException, OSError, BadHeaderError) as exc:
            raise DeliveryError(
                f"Could not email user {recipient.pk}: {exc}",
                recipient_id=recipient.pk,
                channel=self.name,
            ) from exc
