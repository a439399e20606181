"""
ContractWatch CLI - Main entry point.

A terminal-first monitor for LED screen tenders on the Spanish public
procurement platform.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from contractwatch import __app_name__, __version__
from contractwatch.core.config.loader import DEFAULT_CONFIG_PATH
from contractwatch.core.logging import setup_logging

from .context import get_app_config, open_store

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Public procurement monitor for LED screen contracts",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Override the configured log level",
    ),
) -> None:
    """ContractWatch - LED screen tender monitor."""
    ctx.obj = {"config_path": config}

    app_config = get_app_config(ctx)
    if log_level:
        app_config.logging.level = log_level.upper()

    setup_logging(
        level=app_config.logging.level,
        log_file=app_config.logging.file,
        json_format=app_config.logging.json_format,
        rich_console=app_config.logging.rich_console,
    )


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import contracts, db, notify, schedule, scrape  # noqa: E402

app.add_typer(scrape.app, name="scrape", help="Run the monitor")
app.add_typer(contracts.app, name="contracts", help="View and manage stored contracts")
app.add_typer(notify.app, name="notify", help="E-mail notification tools")
app.add_typer(schedule.app, name="schedule", help="Run the monitor periodically")
app.add_typer(db.app, name="db", help="Database operations")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize ContractWatch database and configuration.

    Creates required directories, the default configuration file,
    and the database schema.
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn

    app_config_path: Path = ctx.obj["config_path"]

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Creating directories...", total=None)
        config = get_app_config(ctx)
        config.ensure_directories()

        progress.update(task, description="Creating default configuration...")
        if not app_config_path.exists() or force:
            _create_default_app_config(app_config_path)

        progress.update(task, description="Initializing database...")
        open_store(config)

        progress.update(task, description="Done!")

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - ContractWatch initialized successfully![/bold green]\n\n"
        "Created:\n"
        f"  - [cyan]{app_config_path}[/cyan] - Application configuration\n"
        f"  - [cyan]{config.data_dir}/[/cyan] - Database storage\n"
        "  - [cyan]logs/[/cyan] - Log files\n"
        f"  - [cyan]{config.browser.screenshots_path}/[/cyan] - Screenshots\n\n"
        "Next steps:\n"
        "  1. Set SMTP_* / FROM_EMAIL / TO_EMAIL in [yellow].env[/yellow]\n"
        "  2. Check the portal: [yellow]contractwatch scrape test-connection[/yellow]\n"
        "  3. Run the monitor: [yellow]contractwatch scrape run[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _create_default_app_config(path: Path) -> None:
    """Create default app.yaml configuration."""
    default_config = """\
# ContractWatch Configuration
# Values support ${VAR} and ${VAR:-default} environment expansion

data_dir: data

# Browser automation
browser:
  headless: true
  browser: chromium
  window_width: 1920
  window_height: 1080
  screenshots_path: snapshots
  screenshots_on_steps: false

# Monitored portal
portal:
  cpv_code: "32351200"
  allowed_statuses:
    - Publicada
    - Evaluación Previa

# Visit detail pages for Pliego/Anuncio links
enhance_documents: true

# Database settings
database:
  url: ${DATABASE_URL:-sqlite:///data/contracts.db}
  echo: false

# E-mail notifications
notifier:
  enabled: true
  smtp_host: ${SMTP_HOST:-}
  smtp_port: ${SMTP_PORT:-587}
  smtp_username: ${SMTP_USERNAME:-}
  smtp_password: ${SMTP_PASSWORD:-}
  from_email: ${FROM_EMAIL:-}
  to_emails: ${TO_EMAIL:-}

# Scheduler settings
schedule:
  schedule_type: interval
  interval_minutes: 360
  timezone: Europe/Madrid
  mode: headless
  run_immediately: true

# Logging settings
logging:
  level: INFO
  file: logs/contractwatch.log
  json_format: true
  rich_console: true
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config, encoding="utf-8")


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status(ctx: typer.Context) -> None:
    """Show ContractWatch status and statistics."""
    from collections import Counter

    from rich.table import Table

    from contractwatch.persistence.store import PersistenceError

    config = get_app_config(ctx)

    try:
        store = open_store(config)
        contracts = store.get_contracts()
        recent = store.get_recent_status_changes()
    except PersistenceError as e:
        err_console.print(f"[red]Database error:[/red] {e.message}")
        raise typer.Exit(1)

    console.print()
    console.print("[bold]ContractWatch Status[/bold]")
    console.print()

    info = Table(show_header=False, box=None)
    info.add_column("Key", style="cyan")
    info.add_column("Value")
    info.add_row("Database", config.database.url)
    info.add_row("CPV code", config.portal.cpv_code)
    info.add_row("Browser mode", config.browser.mode.value)
    info.add_row(
        "Notifier",
        "[green]configured[/green]" if config.notifier.is_configured else "[yellow]not configured[/yellow]",
    )
    info.add_row("Contracts stored", str(len(contracts)))
    info.add_row("Status changes (24h)", str(len(recent)))
    if contracts:
        info.add_row("Last scraped", contracts[0].scraped_at.strftime("%Y-%m-%d %H:%M"))
    console.print(info)
    console.print()

    status_counts = Counter(c.status or "-" for c in contracts)
    if status_counts:
        stats_table = Table(title="Contract Status", show_header=True, header_style="bold magenta")
        stats_table.add_column("Status", style="cyan")
        stats_table.add_column("Count", justify="right")

        for name, count in sorted(status_counts.items()):
            stats_table.add_row(name, str(count))

        console.print(stats_table)
    else:
        console.print("[dim]No contracts scraped yet.[/dim]")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
