"""Run orchestration."""

from .runner import MonitorRunner, RunStats

__all__ = ["MonitorRunner", "RunStats"]
