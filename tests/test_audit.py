from audit.models import AuditLog
from audit.services import record, request_origin
from projects.models import Project
from projects.services.lifecycle import create_project, delete_project, update_project
from task_management.services.lifecycle import create_task


class TestAuditTrail:

    def test_lifecycle_changes_are_recorded_with_actor(self, manager, administrator):
        project = create_project(data={"name": "Apollo", "manager_id": manager.pk}, actor=administrator)
        update_project(project=project, data={"status": "active"}, actor=manager)

        created, updated = AuditLog.objects.filter(model_type="projects.Project").order_by("id")

        assert created.action == AuditLog.Action.CREATE
        assert created.user == administrator
        assert created.new_values["name"] == "Apollo"
        assert updated.action == AuditLog.Action.UPDATE
        assert updated.user == manager
        assert updated.old_values == {"status": "planning"}
        assert updated.new_values == {"status": "active"}

    def test_delete_records_old_values(self, manager, administrator):
        project = create_project(data={"name": "Apollo", "manager_id": manager.pk}, actor=administrator)
        project_id = project.pk
        delete_project(project=project, actor=administrator)

        entry = AuditLog.objects.get(action=AuditLog.Action.DELETE, model_type="projects.Project")
        assert entry.model_id == project_id
        assert entry.old_values["name"] == "Apollo"

    def test_unchanged_save_is_not_logged(self, project):
        project.save()

        assert not AuditLog.objects.filter(action=AuditLog.Action.UPDATE).exists()

    def test_orm_changes_have_no_actor(self, project, manager):
        create_task(data={"title": "Plan", "project_id": project.pk}, actor=manager)

        entries = AuditLog.objects.filter(model_type="task_management.Task")
        assert entries.get().user == manager
        assert AuditLog.objects.get(model_type="projects.Project").user is None


class TestRequestOrigin:

    def test_origin_is_read_from_the_request(self, rf):
        request = rf.get("/", REMOTE_ADDR="10.0.0.5", HTTP_USER_AGENT="taskflow-cli/1.0")

        assert request_origin(request) == {"ip_address": "10.0.0.5", "user_agent": "taskflow-cli/1.0"}

    def test_record_stores_origin(self, project, manager):
        entry = record(
            action=AuditLog.Action.UPDATE,
            instance=project,
            actor=manager,
            ip_address="192.0.2.7",
            user_agent="curl/8.0",
        )

        entry.refresh_from_db()
        assert entry.ip_address == "192.0.2.7"
        assert entry.user_agent == "curl/8.0"

    def test_signal_path_takes_origin_from_instance(self, project, manager):
        project._audit_actor = manager
        project._audit_origin = {"ip_address": "192.0.2.7", "user_agent": "curl/8.0"}
        project.status = "active"
        project.save()

        entry = AuditLog.objects.get(action=AuditLog.Action.UPDATE)
        assert entry.user == manager
        assert entry.ip_address == "192.0.2.7"
        assert entry.user_agent == "curl/8.0"

    def test_lifecycle_changes_have_no_origin(self, manager, administrator):
        create_project(data={"name": "Apollo", "manager_id": manager.pk}, actor=administrator)

        entry = AuditLog.objects.get(model_type="projects.Project")
        assert entry.ip_address is None
        assert entry.user_agent is None

    def test_admin_delete_records_user_and_origin(self, admin_client, admin_user, project):
        response = admin_client.post(
            f"/taskflow/django/admin/projects/project/{project.pk}/delete/",
            {"post": "yes"},
            HTTP_USER_AGENT="Mozilla/5.0",
        )

        assert response.status_code == 302
        assert not Project.objects.exists()
        entry = AuditLog.objects.get(action=AuditLog.Action.DELETE, model_type="projects.Project")
        assert entry.user == admin_user
        assert entry.ip_address == "127.0.0.1"
        assert entry.user_agent == "Mozilla/5.0"
