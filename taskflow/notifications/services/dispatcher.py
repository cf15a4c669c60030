"""
Notification dispatch with per-recipient failure isolation.

A failure delivering to one recipient is logged and never stops
delivery to the next one.
"""

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils.module_loading import import_string

from notifications.models import DeliveryReceipt
from taskflow.exceptions import DeliveryError

logger = logging.getLogger(__name__)

User = get_user_model()


def get_channels():
    return [import_string(path)() for path in settings.NOTIFICATION_CHANNELS]


def resolve_recipients(user_ids):
    """
    Active users for the given ids, in the given order, deduplicated.
    Ids without a matching user are skipped.
    """
    ordered_ids = list(dict.fromkeys(uid for uid in user_ids if uid is not None))
    if not ordered_ids:
        return []

    users = User.objects.in_bulk(ordered_ids)

    recipients = []
    for uid in ordered_ids:
        user = users.get(uid)
        if user is None or not user.is_active:
            logger.debug("Skipping notification recipient %s (missing or inactive)", uid)
            continue
        recipients.append(user)

    return recipients


def deliver(recipient, content):
    """
    Deliver through every configured channel.

    With a dedup key, channels holding a receipt for it are skipped and
    each successful channel leaves one; False means every channel had
    already served this recipient. Raises DeliveryError if any channel
    failed; the remaining channels are still attempted.
    """
    channels = get_channels()

    if content.dedup_key:
        served = set(
            DeliveryReceipt.objects
            .filter(recipient=recipient, dedup_key=content.dedup_key)
            .values_list("channel", flat=True)
        )
        channels = [channel for channel in channels if channel.name not in served]
        if not channels:
            logger.info(
                "Notification %s already delivered to user %s, skipping",
                content.dedup_key, recipient.pk,
            )
            return False

    failures = []
    for channel in channels:
        try:
            channel.send(recipient, content)
            if content.dedup_key:
                DeliveryReceipt.objects.get_or_create(
                    recipient=recipient,
                    dedup_key=content.dedup_key,
                    channel=channel.name,
                )
        except DeliveryError as exc:
            failures.append(exc)
        except Exception as exc:
            logger.exception(
                "Channel %s raised unexpectedly for user %s", channel.name, recipient.pk,
            )
            failures.append(DeliveryError(str(exc), recipient_id=recipient.pk, channel=channel.name))

    if failures:
        raise DeliveryError(
            "; ".join(str(exc) for exc in failures),
            recipient_id=recipient.pk,
            channel=",".join(exc.channel or "?" for exc in failures),
        )

    return True


def notify(recipient, content):
    """Deliver to one recipient. Failures are logged, never raised."""
    try:
        return deliver(recipient, content)
    except DeliveryError as exc:
        logger.warning(
            "Delivery of %s to user %s failed on %s: %s",
            content.kind, recipient.pk, exc.channel, exc,
        )
    except Exception:
        logger.exception("Delivery of %s to user %s failed", content.kind, recipient.pk)
    return False


def notify_users(user_ids, build_content):
    """
    Deliver to each resolved recipient; build_content(user) returns
    the content for that user. Returns how many were delivered.
    """
    delivered = 0
    for user in resolve_recipients(user_ids):
        try:
            content = build_content(user)
        except Exception:
            logger.exception("Could not build notification for user %s", user.pk)
            continue
        if notify(user, content):
            delivered += 1
    return delivered
