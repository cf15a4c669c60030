"""Typed fan-out events handed from the lifecycle layer to the job queue.

Each job takes one discriminated union: one variant per action, each
carrying its own payload. Events hold snapshots captured at enqueue time,
so a job never re-reads entity state that may have moved on since.
"""

from datetime import date, datetime
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from taskflow.exceptions import InvalidJobError


def _event_id() -> str:
    return uuid4().hex


# =====================================================
# SNAPSHOTS
# =====================================================

class ProjectSnapshot(BaseModel):
    """Field values of a project at one point in time."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    status: str
    priority: str
    due_date: date | None = None
    manager_id: int
    manager_name: str = ""

    @classmethod
    def from_project(cls, project) -> "ProjectSnapshot":
        return cls(
            id=project.pk,
            name=project.name,
            status=project.status,
            priority=project.priority,
            due_date=project.due_date,
            manager_id=project.manager_id,
            manager_name=project.manager.display_name,
        )


class TaskSnapshot(BaseModel):
    """Field values of a task, plus the owning project's name and manager."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    status: str
    priority: str
    project_id: int
    project_name: str
    project_manager_id: int
    assigned_to_id: int | None = None
    created_by_id: int
    due_date: datetime | None = None

    @classmethod
    def from_task(cls, task) -> "TaskSnapshot":
        return cls(
            id=task.pk,
            title=task.title,
            status=task.status,
            priority=task.priority,
            project_id=task.project_id,
            project_name=task.project.name,
            project_manager_id=task.project.manager_id,
            assigned_to_id=task.assigned_to_id,
            created_by_id=task.created_by_id,
            due_date=task.due_date,
        )


# =====================================================
# PROJECT EVENTS
# =====================================================

class ProjectCreated(BaseModel):
    action: Literal["created"] = "created"
    event_id: str = Field(default_factory=_event_id)
    project: ProjectSnapshot
    member_ids: list[int] = Field(default_factory=list)


class ProjectUpdated(BaseModel):
    action: Literal["updated"] = "updated"
    event_id: str = Field(default_factory=_event_id)
    project: ProjectSnapshot
    previous: ProjectSnapshot
    member_ids: list[int] = Field(default_factory=list)


ProjectEvent = Annotated[
    Union[ProjectCreated, ProjectUpdated],
    Field(discriminator="action"),
]


# =====================================================
# TASK EVENTS
# =====================================================

class TaskCreated(BaseModel):
    action: Literal["created"] = "created"
    event_id: str = Field(default_factory=_event_id)
    task: TaskSnapshot


class TaskStatusChanged(BaseModel):
    action: Literal["status_changed"] = "status_changed"
    event_id: str = Field(default_factory=_event_id)
    task: TaskSnapshot
    old_status: str


class TaskCommentAdded(BaseModel):
    action: Literal["comment_added"] = "comment_added"
    event_id: str = Field(default_factory=_event_id)
    task: TaskSnapshot
    comment_id: int
    author_id: int
    author_name: str = ""
    content: str
    recipient_ids: list[int] = Field(default_factory=list)


TaskEvent = Annotated[
    Union[TaskCreated, TaskStatusChanged, TaskCommentAdded],
    Field(discriminator="action"),
]


_project_event_adapter = TypeAdapter(ProjectEvent)
_task_event_adapter = TypeAdapter(TaskEvent)


def parse_project_event(payload: dict) -> ProjectCreated | ProjectUpdated:
    """Rebuild a project event from its JSON payload."""
    try:
        return _project_event_adapter.validate_python(payload)
    except PydanticValidationError as exc:
        raise InvalidJobError(f"Invalid project notification payload: {exc}") from exc


def parse_task_event(payload: dict) -> TaskCreated | TaskStatusChanged | TaskCommentAdded:
    """Rebuild a task event from its JSON payload."""
    try:
        return _task_event_adapter.validate_python(payload)
    except PydanticValidationError as exc:
        raise InvalidJobError(f"Invalid task notification payload: {exc}") from exc
