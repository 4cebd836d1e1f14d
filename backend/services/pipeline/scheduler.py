"""Cron-style trigger for maintenance jobs.

Only the two fields the maintenance schedule needs are supported: a fixed
minute and hour, optionally restricted to one weekday. ``*`` is accepted for
day-of-month and month.
"""

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from models.schemas.jobs import JobKind, MaintenanceJob
from services.pipeline.job_queue import JobQueue

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CronSchedule:
    minute: int
    hour: int
    weekday: int | None = None  # Monday == 0

    def __post_init__(self) -> None:
        if not 0 <= self.minute <= 59 or not 0 <= self.hour <= 23:
            raise ValueError(f"Invalid time {self.hour:02d}:{self.minute:02d}")
        if self.weekday is not None and not 0 <= self.weekday <= 6:
            raise ValueError(f"Invalid weekday {self.weekday}")

    @classmethod
    def parse(cls, expression: str) -> "CronSchedule":
        """Parse ``"M H * * D"``; D uses cron numbering (0 or 7 is Sunday)."""
        fields = expression.split()
        if len(fields) != 5:
            raise ValueError(f"Expected 5 cron fields, got {len(fields)}: '{expression}'")
        minute, hour, day, month, dow = fields
        if day != "*" or month != "*":
            raise ValueError(f"Only '*' is supported for day and month: '{expression}'")
        weekday = None if dow == "*" else (int(dow) - 1) % 7
        return cls(minute=int(minute), hour=int(hour), weekday=weekday)

    def next_after(self, moment: datetime) -> datetime:
        """First matching time strictly after ``moment``."""
        candidate = moment.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= moment:
            candidate += timedelta(days=1)
        if self.weekday is not None:
            candidate += timedelta(days=(self.weekday - candidate.weekday()) % 7)
        return candidate


@dataclass(frozen=True)
class ScheduledJob:
    kind: JobKind
    schedule: CronSchedule
    max_attempts: int = 3


def default_schedule(max_attempts: int = 3) -> list[ScheduledJob]:
    return [
        ScheduledJob(JobKind.CONTENT_REFRESH, CronSchedule.parse("0 3 * * *"), max_attempts),
        ScheduledJob(JobKind.WEEKLY_SUMMARY, CronSchedule.parse("0 9 * * 1"), max_attempts),
    ]


class MaintenanceScheduler:
    def __init__(
        self,
        queue: JobQueue,
        entries: Sequence[ScheduledJob],
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._queue = queue
        self._entries = list(entries)
        self._now = now
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    def next_run(self, moment: datetime | None = None) -> tuple[ScheduledJob, datetime] | None:
        moment = moment or self._now()
        upcoming = [(entry, entry.schedule.next_after(moment)) for entry in self._entries]
        if not upcoming:
            return None
        return min(upcoming, key=lambda pair: pair[1])

    async def trigger(self, entry: ScheduledJob) -> str:
        job = MaintenanceJob(kind=entry.kind, max_attempts=entry.max_attempts)
        return await self._queue.submit(job)

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            upcoming = self.next_run()
            if upcoming is None:
                return
            entry, due = upcoming
            delay = max((due - self._now()).total_seconds(), 0.0)
            logger.debug("Next maintenance job %s at %s", entry.kind.value, due.isoformat())
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                try:
                    await self.trigger(entry)
                except Exception as e:
                    logger.warning("Failed to enqueue %s: %s", entry.kind.value, e)

    def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="maintenance-scheduler")
        logger.info("Maintenance scheduler started (%d entries)", len(self._entries))

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Maintenance scheduler stopped")
