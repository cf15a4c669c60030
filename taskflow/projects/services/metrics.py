from datetime import datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Count
from django.utils import timezone

from task_management.models import Task


def calculate_progress(completed, total):
    """Whole percentage, rounded half up; 0 for an empty project."""
    if not total:
        return 0
    percentage = Decimal(completed) * 100 / Decimal(total)
    return int(percentage.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def start_of_week(now=None):
    """Monday 00:00 in the current time zone."""
    today = timezone.localdate(now or timezone.now())
    monday = today - timedelta(days=today.weekday())
    return timezone.make_aware(datetime.combine(monday, time.min))


def get_project_metrics(project, *, now=None):
    now = now or timezone.now()
    tasks = Task.objects.filter(project=project)

    tasks_by_status = {
        row["status"]: row["count"]
        for row in tasks.order_by().values("status").annotate(count=Count("id"))
    }
    total_tasks = sum(tasks_by_status.values())
    completed = tasks_by_status.get(Task.Status.DONE, 0)

    return {
        "total_tasks": total_tasks,
        "tasks_by_status": tasks_by_status,
        "progress_percentage": calculate_progress(completed, total_tasks),
        "overdue_tasks": (
            tasks
            .filter(due_date__lt=now)
            .exclude(status=Task.Status.DONE)
            .count()
        ),
        "completed_this_week": tasks.filter(
            status=Task.Status.DONE,
            completed_at__gte=start_of_week(now),
        ).count(),
        "members_count": project.memberships.count(),
        "days_remaining": project.days_remaining,
        "is_overdue": project.is_overdue,
    }
