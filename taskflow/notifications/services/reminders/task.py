"""
notifications/services/reminders/task.py

Scheduled deadline reminders for assigned tasks.
"""

from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from notifications.channels import NotificationContent
from notifications.events import TaskSnapshot
from notifications.models import Notification
from notifications.services.dispatcher import notify
from task_management.models import Task


def task_deadline_content(task, *, overdue):
    if overdue:
        title = "Task overdue"
        message = (
            f"The task “{task.title}” in “{task.project_name}” was due on "
            f"{task.due_date:%d %B %Y, %H:%M} and is not done yet."
        )
        email_subject = "Notice: Task Overdue"
        priority = Notification.Priority.DANGER
    else:
        title = "Task due soon"
        message = (
            f"The task “{task.title}” in “{task.project_name}” is due on "
            f"{task.due_date:%d %B %Y, %H:%M}."
        )
        email_subject = "Reminder: Task Deadline"
        priority = Notification.Priority.WARNING

    return NotificationContent(
        kind=Notification.Kind.TASK_DEADLINE,
        category=Notification.Category.REMINDER,
        priority=priority,
        title=title,
        message=message,
        email_subject=email_subject,
        email_body=(
            f"Good day.\n\n"
            f"{message}\n\n"
            f"Please ensure the task is completed as soon as possible.\n\n"
            f"— Taskflow"
        ),
        payload={"task": task.model_dump(mode="json"), "overdue": overdue},
        project_id=task.project_id,
        task_id=task.id,
    )


def send_task_deadline_reminders(now=None):
    """
    Sends reminders for open, assigned tasks:
    - due within TASK_DEADLINE_WINDOW_HOURS: to the assignee
    - overdue: to the assignee, and to the creator when different

    Returns the number of reminders delivered.
    """
    now = now or timezone.now()
    window_end = now + timedelta(hours=settings.TASK_DEADLINE_WINDOW_HOURS)
    delivered = 0

    # =====================================================
    # 1. DUE SOON
    # =====================================================
    due_soon = (
        Task.objects
        .select_related("project", "assigned_to")
        .filter(
            due_date__gte=now,
            due_date__lte=window_end,
            assigned_to__isnull=False,
        )
        .exclude(status=Task.Status.DONE)
    )

    for task in due_soon:
        if not task.assigned_to.is_active:
            continue

        content = task_deadline_content(TaskSnapshot.from_task(task), overdue=False)
        if notify(task.assigned_to, content):
            delivered += 1

    # =====================================================
    # 2. OVERDUE
    # =====================================================
    overdue = (
        Task.objects
        .select_related("project", "assigned_to", "created_by")
        .filter(
            due_date__lt=now,
            assigned_to__isnull=False,
        )
        .exclude(status=Task.Status.DONE)
    )

    for task in overdue:
        content = task_deadline_content(TaskSnapshot.from_task(task), overdue=True)

        recipients = [task.assigned_to]
        if task.created_by_id != task.assigned_to_id:
            recipients.append(task.created_by)

        for user in recipients:
            if user.is_active and notify(user, content):
                delivered += 1

    return delivered
