"""
APScheduler v4 integration for ContractWatch.

Runs the monitor on an interval or cron trigger inside one process. Runs
never overlap: a trigger that fires while a run is in progress is skipped.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

from apscheduler import AsyncScheduler, ConflictPolicy
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from contractwatch.core.config.loader import DEFAULT_CONFIG_PATH, load_app_config
from contractwatch.core.config.models import BrowserMode, ScheduleConfig, ScheduleType
from contractwatch.core.logging import get_logger
from contractwatch.core.orchestrator.runner import MonitorRunner

logger = get_logger("scheduler")

SCHEDULE_ID = "contractwatch:monitor"

_run_lock = asyncio.Lock()


async def execute_scheduled_run(config_path: str, mode: str) -> None:
    """Execute one scheduled monitor run."""
    if _run_lock.locked():
        logger.info("Previous run still in progress, skipping")
        return

    async with _run_lock:
        config = load_app_config(Path(config_path))
        config.browser.headless = mode == BrowserMode.HEADLESS.value

        stats = await MonitorRunner(config).run()
        if stats.success:
            logger.info(
                "Scheduled run finished: %d found, %d new",
                stats.contracts_found,
                stats.contracts_new,
            )
        else:
            logger.error("Scheduled run failed: %s", "; ".join(stats.errors))


def build_trigger(schedule: ScheduleConfig) -> CronTrigger | IntervalTrigger:
    """Convert schedule config to an APScheduler trigger."""
    if schedule.schedule_type is ScheduleType.CRON:
        if not schedule.cron_expression:
            raise ValueError("Missing cron expression for cron schedule")
        return CronTrigger.from_crontab(schedule.cron_expression, timezone=schedule.timezone)

    # First interval fire is one period out; the optional initial run is a DateTrigger
    interval = timedelta(minutes=schedule.interval_minutes)
    return IntervalTrigger(
        minutes=schedule.interval_minutes,
        start_time=datetime.now(timezone.utc) + interval,
    )


class SchedulerService:
    """Foreground scheduler driving periodic monitor runs."""

    def __init__(
        self,
        schedule: ScheduleConfig | None = None,
        config_path: Path = DEFAULT_CONFIG_PATH,
    ) -> None:
        self.schedule = schedule or ScheduleConfig()
        self.config_path = config_path
        self._scheduler: AsyncScheduler | None = None

    async def start(self) -> None:
        """Start scheduler in foreground mode (blocking)."""
        async with AsyncScheduler() as scheduler:
            self._scheduler = scheduler
            await self._add_schedules()
            logger.info("Scheduler started (%s)", self.describe())
            await scheduler.run_until_stopped()

    async def stop(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()

    async def _add_schedules(self) -> None:
        if self._scheduler is None:
            raise RuntimeError("Scheduler is not initialized")

        args = [str(self.config_path), self.schedule.mode.value]

        await self._scheduler.add_schedule(
            execute_scheduled_run,
            build_trigger(self.schedule),
            id=SCHEDULE_ID,
            args=args,
            conflict_policy=ConflictPolicy.replace,
        )

        if self.schedule.run_immediately:
            await self._scheduler.add_schedule(
                execute_scheduled_run,
                DateTrigger(run_time=datetime.now(timezone.utc)),
                id=f"{SCHEDULE_ID}:initial",
                args=args,
                conflict_policy=ConflictPolicy.replace,
            )

    def describe(self) -> str:
        """Human-readable trigger summary."""
        if self.schedule.schedule_type is ScheduleType.CRON:
            return f"cron '{self.schedule.cron_expression}' {self.schedule.timezone}"
        return f"every {self.schedule.interval_minutes} minutes"
