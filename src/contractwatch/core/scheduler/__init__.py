"""Periodic run scheduling."""

from .service import SchedulerService, build_trigger, execute_scheduled_run

__all__ = ["SchedulerService", "build_trigger", "execute_scheduled_run"]
