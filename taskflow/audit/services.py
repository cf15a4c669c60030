import logging

from .models import AuditLog

logger = logging.getLogger(__name__)

# Bookkeeping columns left out of the diff
IGNORED_FIELDS = ("created_at", "updated_at")


def field_values(instance):
    return {
        field.attname: getattr(instance, field.attname)
        for field in instance._meta.concrete_fields
        if field.attname not in IGNORED_FIELDS
    }


def changed_values(old, new):
    """Split two value dicts into (old, new) holding only the keys that differ."""
    keys = [key for key in new if old.get(key) != new[key]]
    return (
        {key: old.get(key) for key in keys},
        {key: new[key] for key in keys},
    )


def request_origin(request):
    """ip_address and user_agent keywords for record(), taken from a request."""
    return {
        "ip_address": request.META.get("REMOTE_ADDR") or None,
        "user_agent": request.META.get("HTTP_USER_AGENT") or None,
    }


def record(
    *,
    action,
    instance,
    actor=None,
    old_values=None,
    new_values=None,
    ip_address=None,
    user_agent=None,
):
    entry = AuditLog.objects.create(
        user=actor if actor is not None and actor.pk else None,
        action=action,
        model_type=instance._meta.label,
        model_id=instance.pk,
        old_values=old_values,
        new_values=new_values,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    logger.debug("Audit: %s", entry)
    return entry
