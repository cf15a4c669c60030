"""
Dashboard aggregation.

Administrators see everything. Other users see the projects they belong
to, and the tasks they are assigned to, created, or can reach through a
project membership.
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.db.models.functions import TruncDate
from django.utils import timezone
from django.utils.timesince import timesince

from audit.models import AuditLog
from projects.models import Project
from task_management.models import Task

User = get_user_model()

PROJECT_STATUS_COLORS = {
    Project.Status.PLANNING: "#fbbf24",
    Project.Status.ACTIVE: "#10b981",
    Project.Status.ON_HOLD: "#f59e0b",
    Project.Status.COMPLETED: "#3b82f6",
    Project.Status.CANCELLED: "#ef4444",
}

TASK_STATUS_COLORS = {
    Task.Status.TODO: "#6b7280",
    Task.Status.IN_PROGRESS: "#f59e0b",
    Task.Status.REVIEW: "#8b5cf6",
    Task.Status.DONE: "#10b981",
}


# =====================================================
# VISIBILITY
# =====================================================
def visible_projects(user):
    if user.is_admin:
        return Project.objects.all()
    return Project.objects.filter(memberships__user=user).distinct()


def visible_tasks(user):
    if user.is_admin:
        return Task.objects.all()
    return Task.objects.filter(
        Q(assigned_to=user)
        | Q(created_by=user)
        | Q(project__memberships__user=user)
    ).distinct()


def _own_tasks(user):
    if user.is_admin:
        return Task.objects.all()
    return Task.objects.filter(Q(assigned_to=user) | Q(created_by=user))


def _overdue(tasks, now):
    return tasks.filter(due_date__lt=now).exclude(status=Task.Status.DONE)


def _task_row(task):
    return {
        "id": task.pk,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "project_name": task.project.name,
        "assigned_to": task.assigned_to.display_name if task.assigned_to else None,
        "due_date": timezone.localdate(task.due_date).isoformat() if task.due_date else None,
    }


def _status_counts(queryset):
    return {
        row["status"]: row["count"]
        for row in queryset.order_by().values("status").annotate(count=Count("id", distinct=True))
    }


def _daily_counts(queryset, field, days, now):
    """Rows per local calendar day over the last `days` days, oldest first."""
    rows = (
        queryset
        .filter(**{f"{field}__gte": now - timedelta(days=days)})
        .annotate(day=TruncDate(field))
        .order_by()
        .values("day")
        .annotate(count=Count("id"))
        .order_by("day")
    )
    return {
        "labels": [f"{row['day']:%b %d}" for row in rows],
        "data": [row["count"] for row in rows],
    }


# =====================================================
# USER DASHBOARD
# =====================================================
def get_user_dashboard_stats(user):
    now = timezone.now()
    projects = visible_projects(user)
    tasks = visible_tasks(user)

    return {
        "total_projects": projects.count(),
        "active_projects": projects.filter(status=Project.Status.ACTIVE).count(),
        "total_tasks": tasks.count(),
        "pending_tasks": tasks.filter(
            status__in=[Task.Status.TODO, Task.Status.IN_PROGRESS]
        ).count(),
        "completed_tasks": tasks.filter(status=Task.Status.DONE).count(),
        "overdue_tasks": _overdue(tasks, now).count(),
    }


def get_recent_tasks(user, limit=10):
    tasks = (
        _own_tasks(user)
        .select_related("project", "assigned_to")
        .order_by("-updated_at")[:limit]
    )
    return [
        {**_task_row(task), "is_overdue": task.is_overdue}
        for task in tasks
    ]


def get_upcoming_deadlines(user, days=7):
    now = timezone.now()
    tasks = (
        _own_tasks(user)
        .filter(due_date__gte=now, due_date__lte=now + timedelta(days=days))
        .exclude(status=Task.Status.DONE)
        .select_related("project", "assigned_to")
        .order_by("due_date")
    )
    return [
        {**_task_row(task), "days_remaining": task.days_remaining}
        for task in tasks
    ]


# =====================================================
# CHARTS
# =====================================================
def get_projects_chart_data(user):
    counts = _status_counts(visible_projects(user))
    return {
        "labels": list(counts),
        "data": list(counts.values()),
        "colors": {str(status): color for status, color in PROJECT_STATUS_COLORS.items()},
    }


def get_tasks_chart_data(user):
    counts = _status_counts(_own_tasks(user))
    return {
        "labels": list(counts),
        "data": list(counts.values()),
        "colors": {str(status): color for status, color in TASK_STATUS_COLORS.items()},
    }


# =====================================================
# ADMIN DASHBOARD
# =====================================================
def get_admin_dashboard_stats():
    now = timezone.now()
    month_start = timezone.localtime(now).replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    return {
        "total_users": User.objects.count(),
        "active_users": User.objects.filter(is_active=True).count(),
        "total_projects": Project.objects.count(),
        "active_projects": Project.objects.filter(status=Project.Status.ACTIVE).count(),
        "total_tasks": Task.objects.count(),
        "completed_tasks": Task.objects.filter(status=Task.Status.DONE).count(),
        "overdue_tasks": _overdue(Task.objects.all(), now).count(),
        "users_joined_this_month": User.objects.filter(date_joined__gte=month_start).count(),
    }


def get_projects_status_chart():
    counts = _status_counts(Project.objects.all())
    return {
        "labels": list(counts),
        "data": list(counts.values()),
        "colors": {str(status): color for status, color in PROJECT_STATUS_COLORS.items()},
    }


def get_users_growth_chart(days=30, *, now=None):
    """Sign-ups per day."""
    return _daily_counts(User.objects.all(), "date_joined", days, now or timezone.now())


def get_tasks_completion_chart(days=30, *, now=None):
    """Completed tasks per day, by completed_at."""
    tasks = Task.objects.filter(completed_at__isnull=False)
    return _daily_counts(tasks, "completed_at", days, now or timezone.now())


def get_recent_activity(limit=10):
    """Newest audit entries; changes without an actor show as "System"."""
    entries = AuditLog.objects.select_related("user").order_by("-created_at", "-id")[:limit]
    return [
        {
            "id": entry.pk,
            "user_name": entry.user.display_name if entry.user else "System",
            "action": entry.action,
            "model_type": entry.model_type.rsplit(".", 1)[-1],
            "model_id": entry.model_id,
            "created_at": timezone.localtime(entry.created_at).isoformat(),
            "time_ago": f"{timesince(entry.created_at)} ago",
        }
        for entry in entries
    ]
