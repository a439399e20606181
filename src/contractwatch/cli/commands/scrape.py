"""
Scrape commands for running the monitor.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from contractwatch.cli.context import get_app_config, open_store

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run the monitor",
    no_args_is_help=True,
)


@app.command("run")
def run_scrape(
    ctx: typer.Context,
    headless: Optional[bool] = typer.Option(
        None,
        "--headless/--visible",
        help="Browser mode (default: from config)",
    ),
    enhance: bool = typer.Option(
        True,
        "--enhance/--no-enhance",
        help="Visit detail pages for Pliego/Anuncio links",
    ),
    notify: bool = typer.Option(
        True,
        "--notify/--no-notify",
        help="E-mail newly found contracts",
    ),
) -> None:
    """Run one monitoring pass.

    Examples:
        contractwatch scrape run
        contractwatch scrape run --visible --no-notify
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    from contractwatch.core.orchestrator import MonitorRunner

    config = get_app_config(ctx)
    if headless is not None:
        config.browser.headless = headless
    config.ensure_directories()

    runner = MonitorRunner(
        config,
        store=open_store(config),
        enhance=enhance and config.enhance_documents,
        notify=notify,
    )

    console.print()
    console.print(
        f"[bold]Searching CPV {config.portal.cpv_code}[/bold] "
        f"[dim]({config.browser.mode.value} browser)[/dim]"
    )
    console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("[cyan]Running monitor...[/cyan]", total=None)
        stats = asyncio.run(runner.run())

    _show_summary(stats)

    if not stats.success:
        for error in stats.errors:
            err_console.print(f"[red]Error:[/red] {escape(error)}")
        raise typer.Exit(1)


def _show_summary(stats) -> None:
    """Display run summary."""
    table = Table(title="Run Summary", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    duration = f"{stats.duration_seconds:.1f}s" if stats.duration_seconds is not None else "-"
    table.add_row("Actionable contracts", str(stats.contracts_found))
    table.add_row("All listed contracts", str(stats.contracts_all))
    table.add_row("New contracts", f"[green]{stats.contracts_new}[/green]")
    table.add_row("Document links added", str(stats.contracts_enhanced))
    table.add_row("Status changes", str(len(stats.status_changes)))
    table.add_row("Stored contracts", str(stats.contracts_stored))
    table.add_row("Notified", "yes" if stats.notified else "no")
    table.add_row("Duration", duration)

    console.print(table)

    if stats.new_contracts:
        console.print()
        new_table = Table(title="New Contracts", show_header=True, header_style="bold green")
        new_table.add_column("ID", style="cyan", no_wrap=True)
        new_table.add_column("Description", max_width=60)
        new_table.add_column("Status")
        new_table.add_column("Amount", justify="right")
        for contract in stats.new_contracts:
            new_table.add_row(*(escape(v) for v in (contract.id, contract.description, contract.status, contract.amount)))
        console.print(new_table)

    if stats.recent_changes:
        console.print()
        console.print("[bold]Status changes (last 24h):[/bold]")
        for change in stats.recent_changes:
            console.print(f"  - {escape(str(change))}")

    for warning in stats.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")


@app.command("test-connection")
def test_connection(
    ctx: typer.Context,
    headless: Optional[bool] = typer.Option(
        None,
        "--headless/--visible",
        help="Browser mode (default: from config)",
    ),
) -> None:
    """Check that the portal's search form loads."""
    from contractwatch.core.orchestrator import MonitorRunner

    config = get_app_config(ctx)
    if headless is not None:
        config.browser.headless = headless
    config.ensure_directories()

    console.print(f"Loading search form ({config.browser.mode.value} browser)...")
    runner = MonitorRunner(config, store=open_store(config), notify=False)

    if asyncio.run(runner.test_connection()):
        console.print("[green]OK[/green] Search form loaded")
    else:
        err_console.print("[red]Connection test failed[/red]")
        raise typer.Exit(1)
