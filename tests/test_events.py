from datetime import date

import pytest

from notifications.events import (
    ProjectCreated,
    ProjectSnapshot,
    ProjectUpdated,
    TaskCommentAdded,
    TaskSnapshot,
    TaskStatusChanged,
    parse_project_event,
    parse_task_event,
)
from taskflow.exceptions import InvalidJobError


@pytest.fixture
def project_snapshot():
    return ProjectSnapshot(
        id=7,
        name="Apollo",
        status="active",
        priority="high",
        due_date=date(2030, 5, 1),
        manager_id=3,
        manager_name="Mara Reyes",
    )


@pytest.fixture
def task_snapshot():
    return TaskSnapshot(
        id=11,
        title="Wire up CI",
        status="review",
        priority="medium",
        project_id=7,
        project_name="Apollo",
        project_manager_id=3,
        assigned_to_id=4,
        created_by_id=3,
    )


class TestProjectEvents:

    def test_payload_rebuilds_the_same_variant(self, project_snapshot):
        event = ProjectUpdated(
            project=project_snapshot,
            previous=project_snapshot.model_copy(update={"status": "planning"}),
            member_ids=[3, 4],
        )

        parsed = parse_project_event(event.model_dump(mode="json"))

        assert isinstance(parsed, ProjectUpdated)
        assert parsed.previous.status == "planning"
        assert parsed.project.due_date == date(2030, 5, 1)
        assert parsed.event_id == event.event_id

    def test_each_event_gets_its_own_id(self, project_snapshot):
        first = ProjectCreated(project=project_snapshot)
        second = ProjectCreated(project=project_snapshot)

        assert first.event_id != second.event_id

    def test_unknown_action_is_an_invalid_job(self, project_snapshot):
        payload = ProjectCreated(project=project_snapshot).model_dump(mode="json")
        payload["action"] = "archived"

        with pytest.raises(InvalidJobError):
            parse_project_event(payload)

    def test_updated_without_previous_is_an_invalid_job(self, project_snapshot):
        payload = ProjectCreated(project=project_snapshot).model_dump(mode="json")
        payload["action"] = "updated"

        with pytest.raises(InvalidJobError):
            parse_project_event(payload)


class TestTaskEvents:

    def test_discriminates_on_action(self, task_snapshot):
        status_payload = TaskStatusChanged(task=task_snapshot, old_status="todo").model_dump(mode="json")
        comment_payload = TaskCommentAdded(
            task=task_snapshot,
            comment_id=1,
            author_id=4,
            content="Looks good",
            recipient_ids=[3],
        ).model_dump(mode="json")

        assert isinstance(parse_task_event(status_payload), TaskStatusChanged)
        assert parse_task_event(comment_payload).recipient_ids == [3]

    def test_garbage_payload_is_an_invalid_job(self):
        with pytest.raises(InvalidJobError):
            parse_task_event({"action": "status_changed"})
