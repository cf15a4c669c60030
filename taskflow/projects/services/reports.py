"""
CSV reports written to default storage.

Each builder returns a header row and an iterable of data rows;
build_report writes them under REPORTS_DIRECTORY and returns the
stored path. Optional parameters:

    project_ids   restrict to these projects
    status        restrict to this project (or task) status
"""

import csv
import io
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db.models import Count, Q, Sum
from django.utils import timezone

from projects.models import Project
from task_management.models import Task
from taskflow.exceptions import InvalidJobError

from .metrics import calculate_progress

logger = logging.getLogger(__name__)

User = get_user_model()


def _format_date(value):
    if value is None:
        return ""
    if hasattr(value, "tzinfo"):
        value = timezone.localtime(value)
    return value.isoformat()


# =====================================================
# PROJECT SUMMARY
# =====================================================
def project_summary_rows(parameters):
    now = timezone.now()
    projects = Project.objects.select_related("manager").annotate(
        total_tasks=Count("tasks", distinct=True),
        done_tasks=Count("tasks", filter=Q(tasks__status=Task.Status.DONE), distinct=True),
        overdue_tasks=Count(
            "tasks",
            filter=Q(tasks__due_date__lt=now) & ~Q(tasks__status=Task.Status.DONE),
            distinct=True,
        ),
        members_count=Count("memberships", distinct=True),
    )

    if parameters.get("project_ids"):
        projects = projects.filter(pk__in=parameters["project_ids"])
    if parameters.get("status"):
        projects = projects.filter(status=parameters["status"])

    header = [
        "id", "name", "status", "priority", "manager", "members",
        "total_tasks", "done_tasks", "progress_percentage",
        "overdue_tasks", "due_date",
    ]
    rows = (
        [
            project.pk,
            project.name,
            project.status,
            project.priority,
            project.manager.display_name,
            project.members_count,
            project.total_tasks,
            project.done_tasks,
            calculate_progress(project.done_tasks, project.total_tasks),
            project.overdue_tasks,
            _format_date(project.due_date),
        ]
        for project in projects.order_by("name")
    )
    return header, rows


# =====================================================
# TEAM PERFORMANCE
# =====================================================
def team_performance_rows(parameters):
    now = timezone.now()
    task_filter = Q()
    if parameters.get("project_ids"):
        task_filter &= Q(assigned_tasks__project_id__in=parameters["project_ids"])

    users = (
        User.objects
        .filter(is_active=True)
        .annotate(
            assigned=Count("assigned_tasks", filter=task_filter),
            completed=Count(
                "assigned_tasks",
                filter=task_filter & Q(assigned_tasks__status=Task.Status.DONE),
            ),
            overdue=Count(
                "assigned_tasks",
                filter=(
                    task_filter
                    & Q(assigned_tasks__due_date__lt=now)
                    & ~Q(assigned_tasks__status=Task.Status.DONE)
                ),
            ),
            estimated_hours=Sum("assigned_tasks__estimated_hours", filter=task_filter),
            actual_hours=Sum("assigned_tasks__actual_hours", filter=task_filter),
        )
        .filter(assigned__gt=0)
        .order_by("username")
    )

    header = [
        "user_id", "username", "name", "assigned_tasks", "completed_tasks",
        "completion_rate", "overdue_tasks", "estimated_hours", "actual_hours",
    ]
    rows = (
        [
            user.pk,
            user.username,
            user.display_name,
            user.assigned,
            user.completed,
            calculate_progress(user.completed, user.assigned),
            user.overdue,
            user.estimated_hours or 0,
            user.actual_hours or 0,
        ]
        for user in users
    )
    return header, rows


# =====================================================
# TASKS OVERVIEW
# =====================================================
def tasks_overview_rows(parameters):
    tasks = Task.objects.select_related("project", "assigned_to", "created_by")

    if parameters.get("project_ids"):
        tasks = tasks.filter(project_id__in=parameters["project_ids"])
    if parameters.get("status"):
        tasks = tasks.filter(status=parameters["status"])

    header = [
        "id", "title", "project", "status", "priority", "assigned_to",
        "created_by", "due_date", "completed_at", "is_overdue",
    ]
    rows = (
        [
            task.pk,
            task.title,
            task.project.name,
            task.status,
            task.priority,
            task.assigned_to.display_name if task.assigned_to else "",
            task.created_by.display_name,
            _format_date(task.due_date),
            _format_date(task.completed_at),
            "yes" if task.is_overdue else "no",
        ]
        for task in tasks.order_by("project__name", "due_date", "pk")
    )
    return header, rows


REPORT_BUILDERS = {
    "project_summary": project_summary_rows,
    "team_performance": team_performance_rows,
    "tasks_overview": tasks_overview_rows,
}


def build_report(report_type, parameters=None):
    try:
        builder = REPORT_BUILDERS[report_type]
    except KeyError:
        raise InvalidJobError(f"Invalid report type {report_type!r}") from None

    header, rows = builder(parameters or {})

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)

    name = f"{settings.REPORTS_DIRECTORY}/{report_type}-{timezone.now():%Y%m%d-%H%M%S}.csv"
    path = default_storage.save(name, ContentFile(buffer.getvalue().encode("utf-8")))

    logger.info("Wrote %s report to %s", report_type, path)
    return path
