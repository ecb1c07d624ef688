"""Celery app for running the reminder scan out of the API process.

Start a worker and beat against the same broker:

    celery -A src.vaxtrack.services.reminders.tasks worker
    celery -A src.vaxtrack.services.reminders.tasks beat

and set REMINDER_SCHEDULER_ENABLED=false on the API workers.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from src.vaxtrack.config import settings
from src.vaxtrack.infra.db.bootstrap import init_sql_repositories
from src.vaxtrack.services.reminders.scanner import ReminderScanner

logger = logging.getLogger(__name__)


def crontab_from_expression(expression: str) -> crontab:
    """Build a Celery ``crontab`` from a five-field cron expression."""

    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Expected five cron fields, got {expression!r}")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


celery_app = Celery("vaxtrack-reminders", broker=settings.celery_broker_url)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "daily-reminder-scan": {
        "task": "reminders.scan",
        "schedule": crontab_from_expression(settings.reminder_cron),
    },
}


@worker_process_init.connect
def _init_worker_repositories(**kwargs) -> None:
    # Worker processes do not run the API startup hook.
    init_sql_repositories()


@celery_app.task(name="reminders.scan")
def scan_reminders() -> dict:
    result = ReminderScanner().run(datetime.now(timezone.utc))
    logger.info("Scheduled reminder scan result: %s", result)
    return asdict(result)
