"""
Reminder notification service layer.

Time-based reminder emitters triggered by the scheduler through the
send_deadline_reminders management command.

Reminder logic is:
- service-layer only
- date-based
- NOT deduplicated: a second run inside the same window sends again
"""

# =====================================================
# TASK REMINDERS
# =====================================================
from .task import (
    send_task_deadline_reminders,
)

# =====================================================
# PROJECT REMINDERS
# =====================================================
from .project import (
    send_project_deadline_reminders,
)

__all__ = [
    # Task
    "send_task_deadline_reminders",

    # Project
    "send_project_deadline_reminders",
]
