import logging

from django.core.exceptions import ValidationError
from django.utils import timezone

from notifications.events import TaskCreated, TaskSnapshot, TaskStatusChanged
from notifications.jobs import enqueue_task_event
from notifications.services.task import notify_task_assigned, notify_task_status_changed
from projects.models import Project
from projects.services.membership import resolve_user
from task_management.models import Task
from taskflow.exceptions import NotFoundError, after_commit, atomic_operation

logger = logging.getLogger(__name__)

TASK_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "project_id",
    "assigned_to_id",
    "due_date",
    "started_at",
    "estimated_hours",
    "actual_hours",
    "tags",
)

# Fixed once the task exists
IMMUTABLE_FIELDS = ("created_by", "created_by_id", "project", "project_id")


def _check_fields(data, allowed):
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError({field: "This field cannot be set." for field in unknown})


def _resolve_project(project_id):
    try:
        return Project.objects.select_related("manager").get(pk=project_id)
    except (Project.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Project", project_id) from None


def _reload(task):
    return Task.objects.select_related("project", "assigned_to", "created_by").get(pk=task.pk)


def _assign(task, assigned_to_id):
    task.assigned_to = resolve_user(assigned_to_id) if assigned_to_id is not None else None


# ============================================================
# CREATE
# ============================================================

def create_task(*, data, actor):
    """
    Create a task in an existing project, stamped with the actor as creator.

    A set assignee hears about it immediately; the project manager
    through the queued "created" fan-out.
    """
    _check_fields(data, TASK_FIELDS)

    if data.get("project_id") is None:
        raise ValidationError({"project_id": "A task must belong to a project."})

    project = _resolve_project(data["project_id"])

    task = Task(
        project=project,
        created_by=actor,
        **{
            field: value for field, value in data.items()
            if field not in ("project_id", "assigned_to_id")
        },
    )
    _assign(task, data.get("assigned_to_id"))

    task.full_clean(exclude=["project", "assigned_to", "created_by"])
    task._audit_actor = actor

    with atomic_operation("create_task"):
        task.save()

        snapshot = TaskSnapshot.from_task(task)
        if task.assigned_to:
            after_commit(notify_task_assigned, task=snapshot, recipient=task.assigned_to)
        after_commit(enqueue_task_event, TaskCreated(task=snapshot))

    logger.info("Task %s created in project %s by user %s", task.pk, project.pk, actor.pk)
    return _reload(task)


# ============================================================
# UPDATE
# ============================================================

def update_task(*, task, data, actor):
    """
    Apply a partial update.

    Reaching done stamps completed_at in the same write, but only when
    it is still empty; use update_task_status to restamp.
    """
    fixed = sorted(set(data) & set(IMMUTABLE_FIELDS))
    if fixed:
        raise ValidationError({field: "This field cannot be changed." for field in fixed})
    _check_fields(data, TASK_FIELDS)

    task = _reload(task)
    old_assigned_to_id = task.assigned_to_id
    old_status = task.status

    for field, value in data.items():
        if field != "assigned_to_id":
            setattr(task, field, value)
    if "assigned_to_id" in data:
        _assign(task, data["assigned_to_id"])

    task.full_clean(exclude=["project", "assigned_to", "created_by"])

    status_changed = task.status != old_status
    if status_changed and task.status == Task.Status.DONE and task.completed_at is None:
        task.completed_at = timezone.now()

    task._audit_actor = actor

    with atomic_operation("update_task"):
        task.save()

        snapshot = TaskSnapshot.from_task(task)
        if task.assigned_to_id and task.assigned_to_id != old_assigned_to_id:
            after_commit(notify_task_assigned, task=snapshot, recipient=task.assigned_to)
        if status_changed:
            event = TaskStatusChanged(task=snapshot, old_status=old_status)
            after_commit(enqueue_task_event, event)

    logger.info("Task %s updated by user %s", task.pk, actor.pk)
    return _reload(task)


def update_task_status(*, task, status, actor):
    """
    Direct status transition.

    Moving to done always restamps completed_at. Moving from todo to
    in-progress stamps started_at. The assignee, if any, is told every
    time, with the prior status.
    """
    if status not in Task.Status.values:
        raise ValidationError({"status": f"Unknown task status {status!r}."})

    task = _reload(task)
    old_status = task.status
    now = timezone.now()

    update_fields = ["status", "updated_at"]
    task.status = status

    if status == Task.Status.DONE:
        task.completed_at = now
        update_fields.append("completed_at")
    elif status == Task.Status.IN_PROGRESS and old_status == Task.Status.TODO:
        task.started_at = now
        update_fields.append("started_at")

    task._audit_actor = actor

    with atomic_operation("update_task_status"):
        task.save(update_fields=update_fields)

        if task.assigned_to:
            after_commit(
                notify_task_status_changed,
                task=TaskSnapshot.from_task(task),
                old_status=old_status,
                recipient=task.assigned_to,
            )

    logger.info(
        "Task %s moved from %s to %s by user %s",
        task.pk, old_status, status, actor.pk,
    )
    return _reload(task)


# ============================================================
# DELETE
# ============================================================

def delete_task(*, task, actor):
    # TODO: notify the assignee once a task-deleted notification kind exists
    task_id = task.pk

    with atomic_operation("delete_task"):
        task._audit_actor = actor
        task.delete()

    logger.info("Task %s deleted by user %s", task_id, actor.pk)
