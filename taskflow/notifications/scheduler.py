import logging

from apscheduler.schedulers.background import BackgroundScheduler
from django.conf import settings
from django.core.management import call_command
from django.utils import timezone

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "send_deadline_reminders"

# ============================================================
# PROCESS-WIDE INSTANCE
# One scheduler per process, shared by start and stop
# ============================================================
_scheduler = None


def start_scheduler():
    """
    Start the deadline sweep on a fixed interval.

    Does nothing unless ENABLE_SCHEDULER is set, and only ever starts
    one scheduler per process.
    """
    global _scheduler

    if not getattr(settings, "ENABLE_SCHEDULER", False):
        logger.info("Deadline scheduler not started: ENABLE_SCHEDULER is off")
        return None

    if _scheduler is not None:
        logger.debug("Deadline scheduler already running in this process")
        return _scheduler

    interval_hours = settings.DEADLINE_REMINDER_INTERVAL_HOURS
    scheduler = BackgroundScheduler(timezone=settings.TIME_ZONE)

    # --------------------------------------------
    # JOB: DEADLINE SWEEP
    # --------------------------------------------
    # The sweep is not idempotent within a window, so runs must not
    # overlap or be replayed after downtime.
    scheduler.add_job(
        run_deadline_reminders,
        trigger="interval",
        hours=interval_hours,
        id=REMINDER_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    _scheduler = scheduler

    logger.info("Deadline scheduler running, sweep every %s hours", interval_hours)
    return _scheduler


def stop_scheduler():
    global _scheduler

    if _scheduler is None:
        return

    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Deadline scheduler stopped")


def run_deadline_reminders():
    """Scheduled entry point; the sweep itself lives in the management command."""
    logger.info("Deadline sweep triggered at %s", f"{timezone.now():%Y-%m-%d %H:%M:%S}")
    call_command(REMINDER_JOB_ID)
