"""Tests for the periodic scheduler."""
import asyncio
from datetime import datetime, timedelta, timezone

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from contractwatch.core.config.models import ScheduleConfig
from contractwatch.core.orchestrator.runner import RunStats
from contractwatch.core.scheduler import service
from contractwatch.core.scheduler.service import SchedulerService, build_trigger, execute_scheduled_run


class RecordingRunner:
    """Stands in for MonitorRunner and remembers its configs."""

    configs = []

    def __init__(self, config):
        self.config = config
        RecordingRunner.configs.append(config)

    async def run(self):
        return RunStats(contracts_found=2, contracts_new=1)


def test_interval_trigger():
    """Interval schedules run every configured number of minutes."""
    trigger = build_trigger(ScheduleConfig(interval_minutes=90))

    assert isinstance(trigger, IntervalTrigger)
    assert trigger.minutes == 90


def test_interval_first_fire_is_one_period_out():
    """The interval trigger does not fire at start-up; only the initial run does."""
    before = datetime.now(timezone.utc)
    trigger = build_trigger(ScheduleConfig(interval_minutes=360, run_immediately=False))

    first = trigger.next()
    assert first >= before + timedelta(minutes=360)
    assert first < datetime.now(timezone.utc) + timedelta(minutes=361)


def test_cron_trigger():
    """Cron schedules use the crontab expression."""
    trigger = build_trigger(ScheduleConfig(schedule_type="cron", cron_expression="0 8 * * 1-5"))

    assert isinstance(trigger, CronTrigger)


def test_describe():
    """The service describes its trigger."""
    assert SchedulerService(ScheduleConfig(interval_minutes=30)).describe() == "every 30 minutes"


def test_scheduled_run_uses_schedule_mode(tmp_path, monkeypatch):
    """A scheduled run applies the schedule's browser mode."""
    RecordingRunner.configs = []
    monkeypatch.setattr(service, "MonitorRunner", RecordingRunner)

    asyncio.run(execute_scheduled_run(str(tmp_path / "absent.yaml"), "visible"))

    assert len(RecordingRunner.configs) == 1
    assert RecordingRunner.configs[0].browser.headless is False


def test_overlapping_run_is_skipped(tmp_path, monkeypatch):
    """A trigger firing during a run does not start a second run."""
    RecordingRunner.configs = []
    monkeypatch.setattr(service, "MonitorRunner", RecordingRunner)

    async def scenario():
        async with service._run_lock:
            await execute_scheduled_run(str(tmp_path / "absent.yaml"), "headless")

    asyncio.run(scenario())

    assert RecordingRunner.configs == []
