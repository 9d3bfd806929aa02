"""Periodic task registry.

Jobs are registered with an interval, a daily wall-clock time or a weekly
weekday/time, then run by start() as independent asyncio tasks until
stop(). A failing job is logged and rescheduled; it never stops the
scheduler or the other jobs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from authz_cache.shared.utils.datetime import local_now

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[object]]


def seconds_until(
    now: datetime, hour: int, minute: int = 0, weekday: int | None = None
) -> float:
    """Seconds from now to the next hour:minute (on weekday when given, Monday=0).

    A time equal to now counts as the next occurrence, not as due.
    """
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if weekday is not None:
        target += timedelta(days=(weekday - now.weekday()) % 7)
        if target <= now:
            target += timedelta(days=7)
    elif target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


@dataclass
class PeriodicTask:
    """A registered job and how to compute the delay before its next run."""

    name: str
    job: Job
    next_delay: Callable[[], float]
    run_count: int = 0
    failure_count: int = 0
    last_run: datetime | None = None


class PeriodicTaskScheduler:
    """Explicit registry of periodic jobs started at init and stopped at shutdown."""

    def __init__(self) -> None:
        self._tasks: dict[str, PeriodicTask] = {}
        self._running: dict[str, asyncio.Task[None]] = {}

    @property
    def is_running(self) -> bool:
        return bool(self._running)

    def _register(self, task: PeriodicTask) -> None:
        if task.name in self._tasks:
            raise ValueError(f"Periodic task already registered: {task.name}")
        self._tasks[task.name] = task

    def add_interval(self, name: str, seconds: float, job: Job) -> None:
        """Run job every `seconds` (first run one interval after start)."""
        if seconds <= 0:
            raise ValueError("Interval must be positive")
        self._register(PeriodicTask(name, job, lambda: seconds))

    def add_daily(self, name: str, hour: int, job: Job, minute: int = 0) -> None:
        """Run job every day at hour:minute local time."""
        self._register(
            PeriodicTask(name, job, lambda: seconds_until(local_now(), hour, minute))
        )

    def add_weekly(
        self, name: str, weekday: int, hour: int, job: Job, minute: int = 0
    ) -> None:
        """Run job every week on weekday (Monday=0) at hour:minute local time."""
        self._register(
            PeriodicTask(
                name, job, lambda: seconds_until(local_now(), hour, minute, weekday)
            )
        )

    def get_tasks(self) -> list[PeriodicTask]:
        return list(self._tasks.values())

    async def run_job(self, name: str) -> bool:
        """Run one job now. Returns False (after logging) when it raised."""
        task = self._tasks[name]
        task.run_count += 1
        task.last_run = local_now()
        try:
            await task.job()
        except Exception:
            task.failure_count += 1
            logger.exception("Periodic task %s failed", name)
            return False
        return True

    async def _loop(self, task: PeriodicTask) -> None:
        try:
            while True:
                await asyncio.sleep(task.next_delay())
                logger.debug("Running periodic task %s", task.name)
                await self.run_job(task.name)
        except asyncio.CancelledError:
            logger.debug("Periodic task %s cancelled", task.name)
            raise

    def start(self) -> None:
        """Start every registered job. Must be called from a running event loop."""
        if self._running:
            return
        for name, task in self._tasks.items():
            self._running[name] = asyncio.create_task(self._loop(task), name=f"periodic:{name}")
        logger.info("Periodic task scheduler started with %s tasks", len(self._running))

    async def stop(self) -> None:
        """Cancel every running job loop and wait for it to finish."""
        running = list(self._running.values())
        self._running.clear()
        for t in running:
            t.cancel()
        await asyncio.gather(*running, return_exceptions=True)
        if running:
            logger.info("Periodic task scheduler stopped")
