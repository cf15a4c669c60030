from unittest.mock import patch

import httpx
from django.test import override_settings

from notifications.events import ProjectCreated, ProjectSnapshot, ProjectUpdated
from notifications.services.project import handle_project_event
from notifications.services.webhook import build_project_webhook_message, post_project_webhook


def created_event(project):
    return ProjectCreated(project=ProjectSnapshot.from_project(project))


class TestWebhookMessage:

    def test_created_message_names_manager_and_status(self, project):
        message = build_project_webhook_message(created_event(project))

        assert message["text"] == "New project created: *Apollo*"
        fields = {field["title"]: field["value"] for field in message["attachments"][0]["fields"]}
        assert fields == {"Manager": "Mara Reyes", "Status": "Planning"}

    def test_updated_message(self, project):
        snapshot = ProjectSnapshot.from_project(project)
        event = ProjectUpdated(project=snapshot, previous=snapshot)

        assert build_project_webhook_message(event)["text"] == "Project updated: *Apollo*"


class TestPostWebhook:

    def test_skipped_without_url(self, project):
        with patch("notifications.services.webhook.httpx.post") as post:
            assert post_project_webhook(created_event(project)) is False

        post.assert_not_called()

    @override_settings(TASKFLOW_WEBHOOK_URL="https://hooks.example.com/taskflow")
    def test_posts_json_to_configured_url(self, project):
        request = httpx.Request("POST", "https://hooks.example.com/taskflow")
        response = httpx.Response(200, request=request)

        with patch("notifications.services.webhook.httpx.post", return_value=response) as post:
            assert post_project_webhook(created_event(project)) is True

        assert post.call_args.args[0] == "https://hooks.example.com/taskflow"
        assert post.call_args.kwargs["json"]["text"].startswith("New project created")

    @override_settings(TASKFLOW_WEBHOOK_URL="https://hooks.example.com/taskflow")
    def test_http_error_is_swallowed(self, project, caplog):
        request = httpx.Request("POST", "https://hooks.example.com/taskflow")
        response = httpx.Response(502, request=request)

        with patch("notifications.services.webhook.httpx.post", return_value=response):
            assert post_project_webhook(created_event(project)) is False

        assert "Webhook notification failed" in caplog.text

    @override_settings(TASKFLOW_WEBHOOK_URL="https://hooks.example.com/taskflow")
    def test_webhook_failure_does_not_undo_member_fan_out(self, make_project, manager, developer):
        project = make_project(manager, members=[developer])
        event = ProjectCreated(
            project=ProjectSnapshot.from_project(project),
            member_ids=[developer.pk],
        )

        with patch(
            "notifications.services.webhook.httpx.post",
            side_effect=httpx.ConnectError("refused"),
        ):
            delivered = handle_project_event(event)

        assert delivered == 1
        assert developer.notifications.count() == 1
