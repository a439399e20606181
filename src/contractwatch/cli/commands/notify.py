"""
Notification commands.
"""

from __future__ import annotations

import typer
from rich.console import Console

from contractwatch.cli.context import get_app_config

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="E-mail notification tools",
    no_args_is_help=True,
)


@app.command("test")
def test_notifier(ctx: typer.Context) -> None:
    """Connect and authenticate to the configured SMTP server."""
    from contractwatch.notify import EmailNotifier, NotificationError

    config = get_app_config(ctx)
    notifier = EmailNotifier(config.notifier)

    if not config.notifier.is_configured:
        err_console.print(
            "[red]E-mail is not configured.[/red] Set SMTP_HOST, FROM_EMAIL and TO_EMAIL."
        )
        raise typer.Exit(1)

    console.print(f"Connecting to {config.notifier.smtp_host}:{config.notifier.smtp_port}...")
    try:
        notifier.test_connection()
    except NotificationError as e:
        err_console.print(f"[red]SMTP test failed:[/red] {e.message}")
        raise typer.Exit(1)

    console.print("[green]OK[/green] SMTP connection and login succeeded")
