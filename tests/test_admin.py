from django.contrib import admin
from django.contrib.auth import get_user_model

from audit.models import AuditLog
from notifications.models import DeliveryReceipt, Notification
from projects.models import Project, ProjectMember
from task_management.models import Task, TaskComment


class TestAdminRegistration:

    def test_every_model_is_registered(self):
        for model in (
            get_user_model(),
            Project,
            ProjectMember,
            Task,
            TaskComment,
            Notification,
            DeliveryReceipt,
            AuditLog,
        ):
            assert admin.site.is_registered(model), model

    def test_admin_pages_render(self, admin_client, project, make_task):
        make_task(project)

        for url in (
            "/taskflow/django/admin/projects/project/",
            f"/taskflow/django/admin/projects/project/{project.pk}/change/",
            "/taskflow/django/admin/task_management/task/",
            "/taskflow/django/admin/notifications/notification/",
            "/taskflow/django/admin/notifications/deliveryreceipt/",
            "/taskflow/django/admin/audit/auditlog/",
            "/taskflow/django/admin/accounts/user/",
            "/taskflow/django/admin/accounts/user/add/",
        ):
            assert admin_client.get(url).status_code == 200, url

    def test_user_changelist_counts_memberships_and_open_tasks(
        self, rf, admin_user, make_project, manager, developer, make_task
    ):
        project = make_project(manager, members=[developer])
        make_task(project, assigned_to=developer)
        make_task(project, assigned_to=developer, status=Task.Status.DONE)

        user_admin = admin.site._registry[get_user_model()]
        request = rf.get("/")
        request.user = admin_user
        row = user_admin.get_queryset(request).get(pk=developer.pk)

        assert user_admin.membership_count(row) == 1
        assert user_admin.open_task_count(row) == 1
