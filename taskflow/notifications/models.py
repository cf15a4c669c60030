from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from projects.models import Project
from task_management.models import Task


class NotificationQuerySet(models.QuerySet):

    def unread(self):
        return self.filter(is_read=False)

    def mark_read(self):
        """Returns how many rows changed; rows already read keep their read_at."""
        return self.unread().update(is_read=True, read_at=timezone.now())

    def mark_unread(self):
        return self.filter(is_read=True).update(is_read=False, read_at=None)


class Notification(models.Model):
    """
    The in-app record of a delivered notification.
    Notifications are NOT the source of truth; they reflect
    events happening on Project, Task, etc.
    """

    # =====================================================
    # CATEGORY (UI grouping)
    # =====================================================
    class Category(models.TextChoices):
        ASSIGNMENT = "assignment", "Assignment"
        STATUS = "status", "Status"
        REMINDER = "reminder", "Reminder"
        MESSAGE = "message", "Message"
        SYSTEM = "system", "System"
        REPORT = "report", "Report"

    # =====================================================
    # KIND (one per notification type)
    # =====================================================
    class Kind(models.TextChoices):
        PROJECT_CREATED = "project_created", "Project created"
        PROJECT_UPDATED = "project_updated", "Project updated"
        PROJECT_DELETED = "project_deleted", "Project deleted"
        MEMBER_ADDED = "member_added", "Member added"
        MEMBER_REMOVED = "member_removed", "Member removed"
        PROJECT_DEADLINE = "project_deadline", "Project deadline"
        TASK_ASSIGNED = "task_assigned", "Task assigned"
        TASK_CREATED = "task_created", "Task created"
        TASK_STATUS_CHANGED = "task_status_changed", "Task status changed"
        TASK_COMMENT_ADDED = "task_comment_added", "Task comment added"
        TASK_DEADLINE = "task_deadline", "Task deadline"
        REPORT_READY = "report_ready", "Report ready"
        REPORT_FAILED = "report_failed", "Report failed"

    # =====================================================
    # PRIORITY (drives admin colouring)
    # =====================================================
    class Priority(models.TextChoices):
        INFO = "info", "Info"
        WARNING = "warning", "Warning"
        DANGER = "danger", "Danger"

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="Delivered to this user only"
    )

    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        db_index=True
    )

    kind = models.CharField(
        max_length=40,
        choices=Kind.choices,
        db_index=True
    )

    priority = models.CharField(
        max_length=20,
        choices=Priority.choices,
        default=Priority.INFO,
        db_index=True
    )

    title = models.CharField(
        max_length=200,
        help_text="One-line summary"
    )

    message = models.TextField(
        help_text="Full text; email bodies are built separately"
    )

    payload = models.JSONField(
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
        help_text="Event data for clients that render their own text"
    )

    # =====================================================
    # OPTIONAL CONTEXT (cleared when the subject is deleted)
    # =====================================================
    project = models.ForeignKey(
        Project,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications"
    )

    task = models.ForeignKey(
        Task,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications"
    )

    # Event key of the fan-out that wrote this row; retries check DeliveryReceipt
    dedup_key = models.CharField(max_length=100, blank=True, db_index=True)

    # =====================================================
    # STATE
    # =====================================================
    is_read = models.BooleanField(
        default=False,
        db_index=True
    )

    read_at = models.DateTimeField(
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True
    )

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
            models.Index(fields=["recipient", "category", "is_read"]),
            models.Index(fields=["recipient", "dedup_key"]),
        ]

    def __str__(self):
        return f"{self.kind} for {self.recipient}: {self.title}"


class DeliveryReceipt(models.Model):
    """
    A channel delivered the content carrying dedup_key to recipient.

    Kept per channel, so a retried fan-out redoes only the channels
    that failed, whatever NOTIFICATION_CHANNELS lists.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="delivery_receipts"
    )

    dedup_key = models.CharField(max_length=100)

    channel = models.CharField(max_length=30)

    delivered_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["recipient", "dedup_key", "channel"],
                name="unique_delivery_receipt",
            ),
        ]

    def __str__(self):
        return f"{self.dedup_key} via {self.channel} to {self.recipient}"
