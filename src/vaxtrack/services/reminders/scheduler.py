from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from croniter import croniter

from src.vaxtrack.config import settings
from src.vaxtrack.services.reminders.scanner import ReminderScanner, ReminderScanResult

logger = logging.getLogger(__name__)


def next_run_after(now: datetime, cron_expression: str) -> datetime:
    """Next trigger of ``cron_expression`` strictly after ``now``, in UTC."""

    base = now.astimezone(timezone.utc)
    return croniter(cron_expression, base).get_next(datetime)


def seconds_until_next_run(now: datetime, cron_expression: str) -> float:
    return (next_run_after(now, cron_expression) - now).total_seconds()


class ReminderScheduler:
    """Runs the reminder scanner on a cron schedule from an asyncio task.

    Used when the API process owns the schedule. Deployments running several
    API workers should disable it and run Celery beat instead (see
    ``services.reminders.tasks``). The scan itself is blocking repository
    work, so it runs in a worker thread. Runs are not guarded against overlap.
    """

    def __init__(
        self,
        scanner: Optional[ReminderScanner] = None,
        *,
        cron_expression: Optional[str] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.scanner = scanner or ReminderScanner()
        self.cron_expression = cron_expression or settings.reminder_cron
        if not croniter.is_valid(self.cron_expression):
            raise ValueError(f"Invalid reminder cron expression: {self.cron_expression!r}")
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self.last_result: Optional[ReminderScanResult] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def seconds_until_next_run(self, now: Optional[datetime] = None) -> float:
        return seconds_until_next_run(now or self._clock(), self.cron_expression)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="reminder-scheduler")
        logger.info("Reminder scheduler started (cron %r, UTC)", self.cron_expression)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reminder scheduler stopped")

    async def run_once(self) -> ReminderScanResult:
        self.last_result = await asyncio.to_thread(self.scanner.run, self._clock())
        return self.last_result

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.seconds_until_next_run())
            logger.info("Running reminder scan")
            try:
                await self.run_once()
            except Exception:
                logger.exception("Reminder scan failed")


reminder_scheduler = ReminderScheduler()
