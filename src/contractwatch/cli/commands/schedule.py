"""
Scheduler commands.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console

from contractwatch.cli.context import config_path, get_app_config

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run the monitor periodically",
    no_args_is_help=True,
)


@app.command("start")
def start_scheduler(
    ctx: typer.Context,
    interval: Optional[int] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Minutes between runs (overrides config)",
    ),
    cron: Optional[str] = typer.Option(
        None,
        "--cron",
        help="Crontab expression (overrides config)",
    ),
    no_initial_run: bool = typer.Option(
        False,
        "--no-initial-run",
        help="Wait for the first trigger instead of running immediately",
    ),
) -> None:
    """Start the scheduler in the foreground (Ctrl+C to stop)."""
    from contractwatch.core.config.models import ScheduleConfig, ScheduleType
    from contractwatch.core.scheduler import SchedulerService

    config = get_app_config(ctx)
    schedule = config.schedule

    overrides: dict = {}
    if cron:
        overrides.update(schedule_type=ScheduleType.CRON, cron_expression=cron)
    elif interval:
        overrides.update(schedule_type=ScheduleType.INTERVAL, interval_minutes=interval)
    if no_initial_run:
        overrides["run_immediately"] = False

    if overrides:
        try:
            schedule = ScheduleConfig.model_validate({**schedule.model_dump(), **overrides})
        except ValueError as e:
            err_console.print(f"[red]Invalid schedule:[/red] {e}")
            raise typer.Exit(1)

    service = SchedulerService(schedule, config_path=config_path(ctx))
    console.print(f"[bold]Scheduler running[/bold] ({service.describe()}). Press Ctrl+C to stop.")

    try:
        asyncio.run(service.start())
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped[/yellow]")


@app.command("show")
def show_schedule(ctx: typer.Context) -> None:
    """Show the configured schedule."""
    from contractwatch.core.scheduler import SchedulerService

    config = get_app_config(ctx)
    service = SchedulerService(config.schedule, config_path=config_path(ctx))

    console.print(f"[bold]Trigger:[/bold] {service.describe()}")
    console.print(f"[bold]Mode:[/bold] {config.schedule.mode.value}")
    console.print(f"[bold]Initial run:[/bold] {'yes' if config.schedule.run_immediately else 'no'}")
