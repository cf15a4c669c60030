# audit/signals.py
#
# The lifecycle services and the audited admins set instance._audit_actor
# before saving or deleting; the admins also set instance._audit_origin
# (see audit.services.request_origin). Changes made elsewhere, such as
# the shell, are logged without either.

from django.db.models.signals import post_delete, post_save, pre_save

from audit.models import AuditLog
from audit.services import changed_values, field_values, record
from projects.models import Project
from task_management.models import Task

TRACKED_MODELS = (Project, Task)


def _actor(instance):
    return getattr(instance, "_audit_actor", None)


def _origin(instance):
    return getattr(instance, "_audit_origin", None) or {}


# ============================================================
# CAPTURE PREVIOUS VALUES
# ============================================================

def capture_previous_values(sender, instance, **kwargs):
    """
    Load the stored row before save so post_save can diff it.
    """
    if not instance.pk:
        instance._audit_previous = None
        return

    try:
        old_instance = sender.objects.get(pk=instance.pk)
        instance._audit_previous = field_values(old_instance)
    except sender.DoesNotExist:
        instance._audit_previous = None


# ============================================================
# WRITE ENTRIES
# ============================================================

def record_save(sender, instance, created, **kwargs):
    current = field_values(instance)
    previous = getattr(instance, "_audit_previous", None)

    if created or previous is None:
        record(
            action=AuditLog.Action.CREATE,
            instance=instance,
            actor=_actor(instance),
            new_values=current,
            **_origin(instance),
        )
        return

    old_values, new_values = changed_values(previous, current)
    if not new_values:
        return

    record(
        action=AuditLog.Action.UPDATE,
        instance=instance,
        actor=_actor(instance),
        old_values=old_values,
        new_values=new_values,
        **_origin(instance),
    )


def record_delete(sender, instance, **kwargs):
    record(
        action=AuditLog.Action.DELETE,
        instance=instance,
        actor=_actor(instance),
        old_values=field_values(instance),
        **_origin(instance),
    )


for model in TRACKED_MODELS:
    pre_save.connect(capture_previous_values, sender=model, dispatch_uid=f"audit_pre_save_{model.__name__}")
    post_save.connect(record_save, sender=model, dispatch_uid=f"audit_post_save_{model.__name__}")
    post_delete.connect(record_delete, sender=model, dispatch_uid=f"audit_post_delete_{model.__name__}")
