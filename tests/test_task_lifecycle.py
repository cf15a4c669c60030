from datetime import timedelta
from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from notifications.models import Notification
from task_management.models import Task
from task_management.services.lifecycle import (
    create_task,
    delete_task,
    update_task,
    update_task_status,
)
from taskflow.exceptions import NotFoundError


class TestCreateTask:

    def test_creator_is_stamped_and_assignee_notified(
        self, make_project, manager, developer, django_capture_on_commit_callbacks
    ):
        project = make_project(manager, members=[developer])

        with django_capture_on_commit_callbacks(execute=True):
            task = create_task(
                data={"title": "Wire up CI", "project_id": project.pk, "assigned_to_id": developer.pk},
                actor=developer,
            )

        assert task.created_by == developer
        assert task.assigned_to == developer
        assert developer.notifications.get().kind == Notification.Kind.TASK_ASSIGNED
        # Created by someone else, so the manager hears about it
        assert manager.notifications.get().kind == Notification.Kind.TASK_CREATED

    def test_manager_creating_own_task_is_not_told(
        self, project, manager, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            create_task(data={"title": "Plan", "project_id": project.pk}, actor=manager)

        assert manager.notifications.count() == 0

    def test_missing_project_is_not_found(self, developer):
        with pytest.raises(NotFoundError):
            create_task(data={"title": "Orphan", "project_id": 9999}, actor=developer)

    def test_missing_assignee_is_not_found(self, project, manager):
        with pytest.raises(NotFoundError):
            create_task(
                data={"title": "Plan", "project_id": project.pk, "assigned_to_id": 9999},
                actor=manager,
            )

        assert Task.objects.count() == 0

    def test_creator_cannot_be_supplied(self, project, manager, developer):
        with pytest.raises(ValidationError):
            create_task(
                data={"title": "Plan", "project_id": project.pk, "created_by_id": developer.pk},
                actor=manager,
            )


class TestUpdateTask:

    def test_reassignment_notifies_new_assignee(
        self, project, make_task, manager, developer, django_capture_on_commit_callbacks
    ):
        task = make_task(project)

        with django_capture_on_commit_callbacks(execute=True):
            update_task(task=task, data={"assigned_to_id": developer.pk}, actor=manager)

        assert developer.notifications.get().kind == Notification.Kind.TASK_ASSIGNED

    def test_unassigning_notifies_nobody(
        self, project, make_task, manager, developer, django_capture_on_commit_callbacks
    ):
        task = make_task(project, assigned_to=developer)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            updated = update_task(task=task, data={"assigned_to_id": None}, actor=manager)

        assert updated.assigned_to is None
        assert callbacks == []

    def test_status_change_fans_out_to_stakeholders(
        self, project, make_task, manager, developer, make_user, django_capture_on_commit_callbacks
    ):
        creator = make_user("creator")
        task = make_task(project, created_by=creator, assigned_to=developer)

        with django_capture_on_commit_callbacks(execute=True):
            update_task(task=task, data={"status": Task.Status.REVIEW}, actor=developer)

        for user in (developer, creator, manager):
            notification = user.notifications.get()
            assert notification.kind == Notification.Kind.TASK_STATUS_CHANGED
            assert notification.payload["old_status"] == Task.Status.TODO

    def test_done_sets_completed_at_only_once(
        self, project, make_task, manager, django_capture_on_commit_callbacks
    ):
        task = make_task(project)

        with django_capture_on_commit_callbacks(execute=True):
            first = update_task(task=task, data={"status": Task.Status.DONE}, actor=manager)
        stamped = first.completed_at
        assert stamped is not None

        with django_capture_on_commit_callbacks(execute=True):
            reopened = update_task(task=first, data={"status": Task.Status.REVIEW}, actor=manager)
        with django_capture_on_commit_callbacks(execute=True):
            second = update_task(task=reopened, data={"status": Task.Status.DONE}, actor=manager)

        assert second.completed_at == stamped

    def test_completion_is_written_with_the_status(self, project, make_task, manager):
        task = make_task(project)

        with patch.object(Task, "save", autospec=True, side_effect=Task.save) as save:
            update_task(task=task, data={"status": Task.Status.DONE}, actor=manager)

        assert save.call_count == 1

    @pytest.mark.parametrize("field", ["created_by_id", "project_id", "created_by", "project"])
    def test_immutable_fields_are_rejected(self, project, make_task, manager, field):
        task = make_task(project)

        with pytest.raises(ValidationError):
            update_task(task=task, data={field: manager.pk}, actor=manager)

    def test_invalid_update_leaves_row_untouched(self, project, make_task, manager):
        task = make_task(project)

        with pytest.raises(ValidationError):
            update_task(task=task, data={"title": "Renamed", "status": "blocked"}, actor=manager)

        task.refresh_from_db()
        assert task.title == "Draft the plan"


class TestUpdateTaskStatus:

    def test_done_always_restamps_completed_at(self, project, make_task, manager):
        task = make_task(project)

        first = update_task_status(task=task, status=Task.Status.DONE, actor=manager)
        assert first.completed_at is not None

        earlier = first.completed_at - timedelta(days=2)
        Task.objects.filter(pk=task.pk).update(completed_at=earlier)

        second = update_task_status(task=first, status=Task.Status.DONE, actor=manager)
        assert second.completed_at > earlier

    def test_starting_work_stamps_started_at(self, project, make_task, manager):
        task = make_task(project)

        updated = update_task_status(task=task, status=Task.Status.IN_PROGRESS, actor=manager)

        assert updated.started_at is not None
        assert updated.completed_at is None

    def test_review_to_in_progress_keeps_started_at(self, project, make_task, manager):
        started = timezone.now() - timedelta(days=3)
        task = make_task(project, status=Task.Status.REVIEW, started_at=started)

        updated = update_task_status(task=task, status=Task.Status.IN_PROGRESS, actor=manager)

        assert updated.started_at == started

    def test_assignee_is_told_the_prior_status(
        self, project, make_task, manager, developer, django_capture_on_commit_callbacks
    ):
        task = make_task(project, assigned_to=developer)

        with django_capture_on_commit_callbacks(execute=True):
            update_task_status(task=task, status=Task.Status.DONE, actor=manager)

        notification = developer.notifications.get()
        assert notification.kind == Notification.Kind.TASK_STATUS_CHANGED
        assert notification.payload["old_status"] == Task.Status.TODO
        assert notification.title == "Task completed"
        assert manager.notifications.count() == 0

    def test_unknown_status_is_rejected(self, project, make_task, manager):
        task = make_task(project)

        with pytest.raises(ValidationError):
            update_task_status(task=task, status="archived", actor=manager)


class TestDeleteTask:

    def test_deletes_without_notifying(
        self, project, make_task, manager, developer, django_capture_on_commit_callbacks
    ):
        task = make_task(project, assigned_to=developer)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            delete_task(task=task, actor=manager)

        assert not Task.objects.exists()
        assert callbacks == []
        assert Notification.objects.count() == 0
