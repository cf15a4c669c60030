from unittest.mock import patch

import pytest
from django.core import mail
from django.test import override_settings

from notifications.channels import EmailChannel, InAppChannel, NotificationContent
from notifications.models import DeliveryReceipt, Notification
from notifications.services.dispatcher import deliver, notify, notify_users, resolve_recipients
from taskflow.exceptions import DeliveryError


def make_content(**overrides):
    fields = {
        "kind": Notification.Kind.PROJECT_UPDATED,
        "category": Notification.Category.SYSTEM,
        "title": "Project updated",
        "message": "Something changed.",
    }
    fields.update(overrides)
    return NotificationContent(**fields)


def fail_for(user):
    original = InAppChannel.send

    def send(self, recipient, content):
        if recipient.pk == user.pk:
            raise DeliveryError("store down", recipient_id=recipient.pk, channel=self.name)
        return original(self, recipient, content)

    return send


class TestNotificationContent:

    def test_choice_members_become_plain_strings(self):
        content = make_content(priority=Notification.Priority.WARNING)

        assert content.kind == "project_updated"
        assert content.priority == "warning"
        assert type(content.category) is str


class TestResolveRecipients:

    def test_dedupes_and_skips_missing_or_inactive(self, make_user):
        alice = make_user("alice")
        bob = make_user("bob")
        carol = make_user("carol", is_active=False)

        recipients = resolve_recipients([bob.pk, None, alice.pk, bob.pk, carol.pk, 424242])

        assert recipients == [bob, alice]


class TestDeliver:

    def test_writes_in_app_row_and_email(self, developer):
        assert deliver(developer, make_content(email_subject="Heads up")) is True

        assert developer.notifications.count() == 1
        assert mail.outbox[0].subject == "Heads up"
        assert mail.outbox[0].to == [developer.email]

    def test_user_without_email_still_gets_in_app(self, make_user):
        user = make_user("quiet", email="")

        assert deliver(user, make_content()) is True
        assert user.notifications.count() == 1
        assert mail.outbox == []

    def test_dedup_key_prevents_second_delivery(self, developer):
        content = make_content(dedup_key="project:abc")

        assert deliver(developer, content) is True
        assert deliver(developer, content) is False
        assert developer.notifications.count() == 1
        assert len(mail.outbox) == 1

    def test_failing_channel_does_not_stop_the_next(self, developer):
        with patch.object(InAppChannel, "send", side_effect=DeliveryError("boom", channel="in_app")):
            with pytest.raises(DeliveryError) as excinfo:
                deliver(developer, make_content())

        assert excinfo.value.recipient_id == developer.pk
        assert len(mail.outbox) == 1

    def test_unexpected_channel_error_becomes_delivery_error(self, developer):
        with patch.object(EmailChannel, "send", side_effect=ValueError("bad header")):
            with pytest.raises(DeliveryError) as excinfo:
                deliver(developer, make_content())

        assert excinfo.value.channel == "email"
        assert developer.notifications.count() == 1

    @override_settings(NOTIFICATION_CHANNELS=["notifications.channels.InAppChannel"])
    def test_channels_follow_settings(self, developer):
        deliver(developer, make_content())

        assert developer.notifications.count() == 1
        assert mail.outbox == []


class TestNotify:

    def test_failure_is_logged_not_raised(self, developer, caplog):
        with patch.object(EmailChannel, "send", side_effect=DeliveryError("smtp down", channel="email")):
            assert notify(developer, make_content()) is False

        assert "smtp down" in caplog.text
        # The in-app row was still written
        assert developer.notifications.count() == 1

    def test_one_failing_recipient_does_not_block_others(self, make_user):
        alice = make_user("alice")
        bob = make_user("bob")

        with patch.object(InAppChannel, "send", autospec=True, side_effect=fail_for(alice)):
            delivered = notify_users([alice.pk, bob.pk], lambda user: make_content())

        assert delivered == 1
        assert alice.notifications.count() == 0
        assert bob.notifications.count() == 1

    def test_unexpected_error_for_one_recipient_does_not_abort_the_rest(self, make_user):
        alice = make_user("alice")
        bob = make_user("bob")
        original = EmailChannel.send

        def send(self, recipient, content):
            if recipient.pk == alice.pk:
                raise ValueError("Header values can't contain newlines")
            return original(self, recipient, content)

        with patch.object(EmailChannel, "send", autospec=True, side_effect=send):
            delivered = notify_users([alice.pk, bob.pk], lambda user: make_content())

        assert delivered == 1
        assert [message.to for message in mail.outbox] == [[bob.email]]
        assert bob.notifications.count() == 1

    def test_newline_in_subject_only_affects_that_recipient(self, make_user):
        alice = make_user("alice")
        bob = make_user("bob")

        def build(user):
            subject = "Fix login\nbug" if user.pk == alice.pk else "Fix login bug"
            return make_content(email_subject=subject)

        notify_users([alice.pk, bob.pk], build)

        assert [message.to for message in mail.outbox][-1] == [bob.email]
        assert bob.notifications.count() == 1

    def test_content_builder_failure_skips_only_that_recipient(self, make_user):
        alice = make_user("alice")
        bob = make_user("bob")

        def build(user):
            if user.pk == alice.pk:
                raise KeyError("status")
            return make_content()

        assert notify_users([alice.pk, bob.pk], build) == 1
        assert bob.notifications.count() == 1

    def test_stale_subject_links_are_dropped(self, developer):
        content = make_content(project_id=987, task_id=654)

        notify(developer, content)

        notification = developer.notifications.get()
        assert notification.project_id is None
        assert notification.task_id is None


class TestReadState:

    def test_mark_read_only_touches_unread_rows(self, developer):
        deliver(developer, make_content(title="First"))
        deliver(developer, make_content(title="Second"))
        first = developer.notifications.get(title="First")
        first.is_read = True
        first.save()

        assert developer.notifications.mark_read() == 1
        assert developer.notifications.unread().count() == 0

        first.refresh_from_db()
        assert first.read_at is None

    def test_mark_unread_clears_read_at(self, developer):
        deliver(developer, make_content())
        developer.notifications.mark_read()

        assert developer.notifications.mark_unread() == 1
        assert developer.notifications.get().read_at is None


class TestRetryDedup:

    @override_settings(NOTIFICATION_CHANNELS=["notifications.channels.EmailChannel"])
    def test_email_only_setup_is_not_resent(self, developer):
        content = make_content(dedup_key="task:abc")

        assert deliver(developer, content) is True
        assert deliver(developer, content) is False
        assert len(mail.outbox) == 1
        assert developer.notifications.count() == 0

    def test_retry_redoes_only_the_failed_channel(self, developer):
        content = make_content(dedup_key="task:abc")

        with patch.object(InAppChannel, "send", side_effect=DeliveryError("store down", channel="in_app")):
            assert notify(developer, content) is False

        assert deliver(developer, content) is True
        assert len(mail.outbox) == 1
        assert developer.notifications.count() == 1
        assert set(
            DeliveryReceipt.objects.filter(recipient=developer).values_list("channel", flat=True)
        ) == {"in_app", "email"}

    def test_content_without_key_leaves_no_receipts(self, developer):
        deliver(developer, make_content())

        assert not DeliveryReceipt.objects.exists()
