from notifications.channels import NotificationContent
from notifications.events import ProjectCreated, ProjectUpdated
from notifications.models import Notification

from .dispatcher import notify, notify_users
from .webhook import post_project_webhook


SIGNATURE = "— Taskflow"


def _status_label(status):
    return status.replace("-", " ").capitalize()


# ============================================================
# CHANGE SUMMARY
# ============================================================

def describe_project_changes(previous, current):
    """Human-readable list of what changed between two snapshots."""
    changes = []

    if previous.status != current.status:
        changes.append(
            f"Status changed from {_status_label(previous.status)} "
            f"to {_status_label(current.status)}"
        )

    if previous.due_date != current.due_date:
        old = f"{previous.due_date:%d %B %Y}" if previous.due_date else "none"
        new = f"{current.due_date:%d %B %Y}" if current.due_date else "none"
        changes.append(f"Due date changed from {old} to {new}")

    if previous.manager_id != current.manager_id:
        changes.append(
            f"Manager changed from {previous.manager_name} to {current.manager_name}"
        )

    if not changes:
        changes.append("Project details were updated")

    return changes


# ============================================================
# PROJECT CREATED
# ============================================================

def project_created_content(project, *, dedup_key=""):
    return NotificationContent(
        kind=Notification.Kind.PROJECT_CREATED,
        category=Notification.Category.SYSTEM,
        title="Project created",
        message=f"The project “{project.name}” has been created.",
        email_subject=f"Notice: Project “{project.name}” Created",
        email_body=(
            f"Good day.\n\n"
            f"The project “{project.name}” has been created with "
            f"{project.manager_name} as manager.\n\n"
            f"{SIGNATURE}"
        ),
        payload={"project": project.model_dump(mode="json")},
        project_id=project.id,
        dedup_key=dedup_key,
    )


def notify_project_created(*, project, recipient):
    """Immediate notice to the manager of a new project."""
    return notify(recipient, project_created_content(project))


def notify_members_project_created(event: ProjectCreated):
    # The manager was already told directly when the project was created
    member_ids = [
        uid for uid in event.member_ids
        if uid != event.project.manager_id
    ]

    content = project_created_content(
        event.project,
        dedup_key=f"project:{event.event_id}",
    )

    return notify_users(member_ids, lambda user: content)


# ============================================================
# PROJECT UPDATED
# ============================================================

def notify_members_project_updated(event: ProjectUpdated):
    project = event.project
    changes = describe_project_changes(event.previous, project)
    change_summary = "; ".join(changes)

    content = NotificationContent(
        kind=Notification.Kind.PROJECT_UPDATED,
        category=Notification.Category.SYSTEM,
        title="Project updated",
        message=f"The project “{project.name}” has been updated. {change_summary}.",
        email_subject="Notice: Project Updated",
        email_body=(
            f"Good day.\n\n"
            f"The project “{project.name}” has been updated.\n\n"
            f"Summary of changes:\n"
            + "".join(f"- {change}\n" for change in changes)
            + f"\n{SIGNATURE}"
        ),
        payload={
            "project": project.model_dump(mode="json"),
            "previous": event.previous.model_dump(mode="json"),
            "changes": changes,
        },
        project_id=project.id,
        dedup_key=f"project:{event.event_id}",
    )

    return notify_users(event.member_ids, lambda user: content)


# ============================================================
# PROJECT DELETED
# ============================================================

def notify_project_deleted(*, project, member_ids, actor=None):
    """
    One notice per former member. The project row no longer
    exists, so nothing links to it.
    """
    deleted_by = actor.display_name if actor else "an administrator"

    content = NotificationContent(
        kind=Notification.Kind.PROJECT_DELETED,
        category=Notification.Category.SYSTEM,
        priority=Notification.Priority.WARNING,
        title="Project deleted",
        message=(
            f"The project “{project.name}” has been permanently deleted "
            f"by {deleted_by}."
        ),
        payload={"project": project.model_dump(mode="json")},
        project_id=None,
    )

    return notify_users(member_ids, lambda user: content)


# ============================================================
# MEMBERSHIP CHANGES
# ============================================================

def notify_member_added(*, project, recipient, role):
    content = NotificationContent(
        kind=Notification.Kind.MEMBER_ADDED,
        category=Notification.Category.ASSIGNMENT,
        title="Added to project",
        message=f"You have been added to the project “{project.name}” as {role}.",
        email_subject="Notice: New Project Membership",
        email_body=(
            f"Good day.\n\n"
            f"This is to inform you that you have been added to the project "
            f"“{project.name}” with the role {role}.\n\n"
            f"{SIGNATURE}"
        ),
        payload={"project": project.model_dump(mode="json"), "role": role},
        project_id=project.id,
    )
    return notify(recipient, content)


def notify_member_removed(*, project, recipient):
    content = NotificationContent(
        kind=Notification.Kind.MEMBER_REMOVED,
        category=Notification.Category.ASSIGNMENT,
        priority=Notification.Priority.WARNING,
        title="Removed from project",
        message=f"You were removed from the project “{project.name}”.",
        email_subject="Notice: Project Membership Update",
        email_body=(
            f"Good day.\n\n"
            f"This is to inform you that you are no longer a member of the "
            f"project “{project.name}”.\n\n"
            f"{SIGNATURE}"
        ),
        payload={"project": project.model_dump(mode="json")},
        project_id=project.id,
    )
    return notify(recipient, content)


# ============================================================
# JOB ENTRY POINT
# ============================================================

def handle_project_event(event):
    """Member fan-out, then the optional webhook. Returns deliveries."""
    if isinstance(event, ProjectCreated):
        delivered = notify_members_project_created(event)
    else:
        delivered = notify_members_project_updated(event)

    post_project_webhook(event)

    return delivered
