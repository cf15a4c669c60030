from notifications.channels import NotificationContent
from notifications.models import Notification

from .dispatcher import notify


def _report_label(report_type):
    return report_type.replace("_", " ")


# ============================================================
# REPORT READY / FAILED (TO THE REQUESTING USER)
# ============================================================

def notify_report_ready(*, recipient, report_type, path):
    label = _report_label(report_type)
    content = NotificationContent(
        kind=Notification.Kind.REPORT_READY,
        category=Notification.Category.REPORT,
        title="Report ready",
        message=f"Your {label} report is ready.",
        email_body=(
            f"Good day.\n\n"
            f"Your {label} report has been generated and is available at "
            f"{path}.\n\n"
            f"— Taskflow"
        ),
        payload={"report_type": report_type, "path": path},
    )
    return notify(recipient, content)


def notify_report_failed(*, recipient, report_type, error):
    label = _report_label(report_type)
    content = NotificationContent(
        kind=Notification.Kind.REPORT_FAILED,
        category=Notification.Category.REPORT,
        priority=Notification.Priority.DANGER,
        title="Report failed",
        message=f"Your {label} report could not be generated: {error}",
        payload={"report_type": report_type, "error": error},
    )
    return notify(recipient, content)
