import logging

from django.core.exceptions import ValidationError

from notifications.events import ProjectCreated, ProjectSnapshot, ProjectUpdated
from notifications.jobs import enqueue_project_event
from notifications.services.project import (
    notify_member_added,
    notify_member_removed,
    notify_project_created,
    notify_project_deleted,
)
from projects.models import Project, ProjectMember
from taskflow.exceptions import after_commit, atomic_operation

from .membership import add_member, member_ids, remove_member, resolve_user

logger = logging.getLogger(__name__)

PROJECT_FIELDS = (
    "name",
    "description",
    "status",
    "priority",
    "start_date",
    "due_date",
    "budget",
    "manager_id",
    "settings",
)

# Changes to these fields fan out to every member
NOTIFY_ON_CHANGE = ("status", "due_date", "manager_id")


def _check_fields(data):
    unknown = sorted(set(data) - set(PROJECT_FIELDS))
    if unknown:
        raise ValidationError({field: "This field cannot be set." for field in unknown})


def _reload(project):
    return Project.objects.select_related("manager").get(pk=project.pk)


# ============================================================
# CREATE
# ============================================================

def create_project(*, data, actor):
    _check_fields(data)

    if data.get("manager_id") is None:
        raise ValidationError({"manager_id": "A project manager is required."})

    manager = resolve_user(data["manager_id"])

    project = Project(
        manager=manager,
        **{field: value for field, value in data.items() if field != "manager_id"},
    )
    project.full_clean(exclude=["manager"])
    project._audit_actor = actor

    with atomic_operation("create_project"):
        project.save()
        add_member(project=project, user_id=manager.pk, role=ProjectMember.Role.LEAD)

        snapshot = ProjectSnapshot.from_project(project)
        event = ProjectCreated(project=snapshot, member_ids=member_ids(project))

        after_commit(notify_project_created, project=snapshot, recipient=manager)
        after_commit(enqueue_project_event, event)

    logger.info("Project %s created by user %s", project.pk, actor.pk)
    return _reload(project)


# ============================================================
# UPDATE
# ============================================================

def update_project(*, project, data, actor):
    """
    Apply a partial update.

    Reassigning the manager makes the new manager a lead and drops
    the old one from the project, unless the old manager is an
    administrator. Members hear about it only when status, due date
    or manager changed.
    """
    _check_fields(data)

    project = _reload(project)
    previous = ProjectSnapshot.from_project(project)
    old_manager = project.manager

    new_manager = None
    if "manager_id" in data:
        candidate = resolve_user(data["manager_id"])
        if candidate.pk != old_manager.pk:
            new_manager = candidate

    for field, value in data.items():
        if field != "manager_id":
            setattr(project, field, value)
    if new_manager:
        project.manager = new_manager

    project.full_clean(exclude=["manager"])
    project._audit_actor = actor

    with atomic_operation("update_project"):
        project.save()

        if new_manager:
            add_member(project=project, user_id=new_manager.pk, role=ProjectMember.Role.LEAD)
            if not old_manager.is_admin:
                remove_member(project=project, user_id=old_manager.pk)

        current = ProjectSnapshot.from_project(project)
        changed = [
            field for field in NOTIFY_ON_CHANGE
            if getattr(previous, field) != getattr(current, field)
        ]

        if changed:
            event = ProjectUpdated(
                project=current,
                previous=previous,
                member_ids=member_ids(project),
            )
            after_commit(enqueue_project_event, event)

    logger.info(
        "Project %s updated by user %s (notified fields: %s)",
        project.pk, actor.pk, ", ".join(changed) or "none",
    )
    return _reload(project)


# ============================================================
# DELETE
# ============================================================

def delete_project(*, project, actor):
    """
    Delete a project with its tasks, comments and memberships.

    Members are captured before the delete and told afterwards; the
    notifications no longer point at the project.
    """
    project_id = project.pk
    snapshot = ProjectSnapshot.from_project(project)

    with atomic_operation("delete_project"):
        recipients = member_ids(project)
        project._audit_actor = actor
        project.delete()

        after_commit(
            notify_project_deleted,
            project=snapshot,
            member_ids=recipients,
            actor=actor,
        )

    logger.info("Project %s deleted by user %s", project_id, actor.pk)


# ============================================================
# MEMBERSHIP
# ============================================================

def add_member_to_project(*, project, user_id, role=ProjectMember.Role.MEMBER, actor):
    with atomic_operation("add_member_to_project"):
        membership = add_member(project=project, user_id=user_id, role=role)
        snapshot = ProjectSnapshot.from_project(project)

        after_commit(
            notify_member_added,
            project=snapshot,
            recipient=membership.user,
            role=membership.role,
        )

    logger.info(
        "User %s added to project %s as %s by user %s",
        membership.user_id, project.pk, membership.role, actor.pk,
    )
    return membership


def remove_member_from_project(*, project, user_id, actor):
    user = resolve_user(user_id)

    with atomic_operation("remove_member_from_project"):
        removed = remove_member(project=project, user_id=user.pk)

        if removed:
            snapshot = ProjectSnapshot.from_project(project)
            after_commit(notify_member_removed, project=snapshot, recipient=user)

    if removed:
        logger.info("User %s removed from project %s by user %s", user.pk, project.pk, actor.pk)
    return removed
