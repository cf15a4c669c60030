from notifications.channels import NotificationContent
from notifications.events import TaskCommentAdded, TaskCreated, TaskStatusChanged
from notifications.models import Notification

from .dispatcher import notify, notify_users


SIGNATURE = "— Taskflow"


def _status_label(status):
    return status.replace("-", " ").capitalize()


def _task_payload(task, **extra):
    return {"task": task.model_dump(mode="json"), **extra}


# ============================================================
# TASK ASSIGNED (IMMEDIATE, TO THE NEW ASSIGNEE)
# ============================================================

def notify_task_assigned(*, task, recipient):
    due = f" It is due on {task.due_date:%A, %d %B %Y}." if task.due_date else ""

    content = NotificationContent(
        kind=Notification.Kind.TASK_ASSIGNED,
        category=Notification.Category.ASSIGNMENT,
        title="New task assigned",
        message=f"You have been assigned the task “{task.title}” in “{task.project_name}”.",
        email_subject="Notice: New Task Assignment",
        email_body=(
            f"Good day.\n\n"
            f"You have been assigned the task “{task.title}” under the project "
            f"“{task.project_name}”.{due}\n\n"
            f"{SIGNATURE}"
        ),
        payload=_task_payload(task),
        project_id=task.project_id,
        task_id=task.id,
    )
    return notify(recipient, content)


# ============================================================
# STATUS CHANGED
# ============================================================

def task_status_changed_content(task, old_status, *, dedup_key=""):
    """Entering done reads as a completion, leaving done as a reopen."""
    if old_status != "done" and task.status == "done":
        title = "Task completed"
        message = f"The task “{task.title}” in “{task.project_name}” was completed."
        priority = Notification.Priority.INFO
    elif old_status == "done" and task.status != "done":
        title = "Task reopened"
        message = (
            f"The task “{task.title}” in “{task.project_name}” was reopened "
            f"and is now {_status_label(task.status)}."
        )
        priority = Notification.Priority.WARNING
    else:
        title = "Task status updated"
        message = (
            f"The task “{task.title}” in “{task.project_name}” moved from "
            f"{_status_label(old_status)} to {_status_label(task.status)}."
        )
        priority = Notification.Priority.INFO

    return NotificationContent(
        kind=Notification.Kind.TASK_STATUS_CHANGED,
        category=Notification.Category.STATUS,
        priority=priority,
        title=title,
        message=message,
        email_subject=f"Task Status Update: {task.title}",
        email_body=f"Good day.\n\n{message}\n\n{SIGNATURE}",
        payload=_task_payload(task, old_status=old_status),
        project_id=task.project_id,
        task_id=task.id,
        dedup_key=dedup_key,
    )


def notify_task_status_changed(*, task, old_status, recipient):
    """Immediate notice used by the direct status-change path."""
    return notify(recipient, task_status_changed_content(task, old_status))


def notify_stakeholders_status_changed(event: TaskStatusChanged):
    """Assignee, creator and project manager, each once."""
    task = event.task
    content = task_status_changed_content(
        task,
        event.old_status,
        dedup_key=f"task:{event.event_id}",
    )

    return notify_users(
        [task.assigned_to_id, task.created_by_id, task.project_manager_id],
        lambda user: content,
    )


# ============================================================
# COMMENT ADDED
# ============================================================

def notify_comment_recipients(event: TaskCommentAdded):
    task = event.task
    author = event.author_name or "Someone"

    content = NotificationContent(
        kind=Notification.Kind.TASK_COMMENT_ADDED,
        category=Notification.Category.MESSAGE,
        title="New comment",
        message=f"{author} commented on “{task.title}”: {event.content}",
        email_subject=f"New Comment on {task.title}",
        email_body=(
            f"Good day.\n\n"
            f"{author} commented on the task “{task.title}” under the project "
            f"“{task.project_name}”:\n\n"
            f"{event.content}\n\n"
            f"{SIGNATURE}"
        ),
        payload=_task_payload(
            task,
            comment_id=event.comment_id,
            author_id=event.author_id,
            content=event.content,
        ),
        project_id=task.project_id,
        task_id=task.id,
        dedup_key=f"task:{event.event_id}",
    )

    return notify_users(event.recipient_ids, lambda user: content)


# ============================================================
# TASK CREATED (TO THE PROJECT MANAGER)
# ============================================================

def notify_manager_task_created(event: TaskCreated):
    task = event.task
    if task.project_manager_id == task.created_by_id:
        return 0

    content = NotificationContent(
        kind=Notification.Kind.TASK_CREATED,
        category=Notification.Category.SYSTEM,
        title="New task in your project",
        message=f"A new task “{task.title}” was added to “{task.project_name}”.",
        email_subject=f"New Task in {task.project_name}",
        email_body=(
            f"Good day.\n\n"
            f"A new task “{task.title}” was added to the project "
            f"“{task.project_name}”, which you manage.\n\n"
            f"{SIGNATURE}"
        ),
        payload=_task_payload(task),
        project_id=task.project_id,
        task_id=task.id,
        dedup_key=f"task:{event.event_id}",
    )

    return notify_users([task.project_manager_id], lambda user: content)


# ============================================================
# JOB ENTRY POINT
# ============================================================

def handle_task_event(event):
    if isinstance(event, TaskStatusChanged):
        return notify_stakeholders_status_changed(event)
    if isinstance(event, TaskCommentAdded):
        return notify_comment_recipients(event)
    return notify_manager_task_created(event)
