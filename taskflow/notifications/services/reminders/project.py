from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from notifications.channels import NotificationContent
from notifications.events import ProjectSnapshot
from notifications.models import Notification
from notifications.services.dispatcher import notify
from projects.models import Project


# ============================================================
# SEND PROJECT DEADLINE REMINDERS
# ============================================================

def send_project_deadline_reminders(today=None):
    """
    Reminds the manager of every open project due within
    PROJECT_DEADLINE_WINDOW_DAYS (today included).

    Returns the number of reminders delivered.
    """
    today = today or timezone.localdate()
    window_end = today + timedelta(days=settings.PROJECT_DEADLINE_WINDOW_DAYS)
    delivered = 0

    projects = (
        Project.objects
        .select_related("manager")
        .filter(
            due_date__gte=today,
            due_date__lte=window_end,
        )
        .exclude(status__in=Project.CLOSED_STATUSES)
    )

    for project in projects:
        if not project.manager.is_active:
            continue

        days_remaining = (project.due_date - today).days

        if days_remaining > 0:
            day_word = "day" if days_remaining == 1 else "days"
            message = (
                f"The project “{project.name}” you manage "
                f"is due in {days_remaining} {day_word}."
            )
        else:
            message = f"The project “{project.name}” you manage is due today."

        snapshot = ProjectSnapshot.from_project(project)

        content = NotificationContent(
            kind=Notification.Kind.PROJECT_DEADLINE,
            category=Notification.Category.REMINDER,
            priority=(
                Notification.Priority.WARNING
                if days_remaining > 0
                else Notification.Priority.DANGER
            ),
            title="Project deadline approaching",
            message=message,
            email_subject="Reminder: Project Deadline",
            email_body=(
                f"Good day.\n\n"
                f"This is a reminder that the project “{project.name}” "
                f"is scheduled for completion on {project.due_date:%A, %d %B %Y}.\n\n"
                f"— Taskflow"
            ),
            payload={
                "project": snapshot.model_dump(mode="json"),
                "days_remaining": days_remaining,
            },
            project_id=project.pk,
        )

        if notify(project.manager, content):
            delivered += 1

    return delivered
