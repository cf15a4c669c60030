"""
notifications/management/commands/send_deadline_reminders.py

Deadline sweep, run by the scheduler or by hand.

Running it twice inside the same window sends the reminders twice.
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from notifications.services.reminders import (
    send_project_deadline_reminders,
    send_task_deadline_reminders,
)


class Command(BaseCommand):
    help = "Send due-soon and overdue reminders for tasks and projects"

    def add_arguments(self, parser):
        parser.add_argument(
            "--tasks-only",
            action="store_true",
            help="Skip project reminders",
        )
        parser.add_argument(
            "--projects-only",
            action="store_true",
            help="Skip task reminders",
        )

    def handle(self, *args, **options):
        now = timezone.now()

        self.stdout.write(
            self.style.NOTICE(
                f"[{now:%Y-%m-%d %H:%M:%S}] Starting deadline reminders"
            )
        )

        task_count = 0
        project_count = 0

        if not options["projects_only"]:
            task_count = send_task_deadline_reminders(now=now)
        if not options["tasks_only"]:
            project_count = send_project_deadline_reminders(today=timezone.localdate(now))

        self.stdout.write(
            self.style.SUCCESS(
                f"[{now:%Y-%m-%d %H:%M:%S}] Completed: "
                f"{task_count} task reminders, "
                f"{project_count} project reminders"
            )
        )
