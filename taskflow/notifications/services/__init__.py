"""
Notification service layer.

Each module corresponds to a subject (project, task) or a delivery
concern (dispatcher, webhook, reminders) and exposes functions that emit
notifications WITHOUT deciding who may see what.

Per-recipient failure isolation lives in the dispatcher; every emitter
goes through it.
"""

# =====================================================
# DISPATCH
# =====================================================
from .dispatcher import (
    deliver,
    notify,
    notify_users,
    resolve_recipients,
)

# =====================================================
# PROJECT
# =====================================================
from .project import (
    handle_project_event,
    notify_member_added,
    notify_member_removed,
    notify_project_created,
    notify_project_deleted,
)

# =====================================================
# TASK
# =====================================================
from .task import (
    handle_task_event,
    notify_task_assigned,
    notify_task_status_changed,
)

# =====================================================
# REMINDERS
# =====================================================
from .reminders import (
    send_project_deadline_reminders,
    send_task_deadline_reminders,
)

# =====================================================
# WEBHOOK
# =====================================================
from .webhook import (
    post_project_webhook,
)

# =====================================================
# PUBLIC EXPORTS
# =====================================================
__all__ = [
    # Dispatch
    "deliver",
    "notify",
    "notify_users",
    "resolve_recipients",

    # Project
    "handle_project_event",
    "notify_member_added",
    "notify_member_removed",
    "notify_project_created",
    "notify_project_deleted",

    # Task
    "handle_task_event",
    "notify_task_assigned",
    "notify_task_status_changed",

    # Reminders
    "send_project_deadline_reminders",
    "send_task_deadline_reminders",

    # Webhook
    "post_project_webhook",
]
