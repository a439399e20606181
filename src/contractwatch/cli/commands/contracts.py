"""
Contract viewing and maintenance commands.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from contractwatch.cli.context import get_app_config, open_store

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="View and manage stored contracts",
    no_args_is_help=True,
)


@app.command("list")
def list_contracts(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(
        None,
        "--status",
        "-s",
        help="Filter by status (case-insensitive)",
    ),
    limit: int = typer.Option(
        50,
        "--limit",
        "-n",
        help="Maximum results to show",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
) -> None:
    """List stored contracts, most recently scraped first.

    Examples:
        contractwatch contracts list --status Publicada
        contractwatch contracts list --format json
    """
    from contractwatch.core.logging import json_dumps

    store = open_store(get_app_config(ctx))
    contracts = store.get_contracts()

    if status:
        contracts = [c for c in contracts if c.status.lower() == status.lower()]
    contracts = contracts[:limit]

    if format == "json":
        console.print_json(json_dumps([c.to_dict() for c in contracts]))
        return

    if not contracts:
        console.print("[dim]No contracts found.[/dim]")
        return

    table = Table(title=f"Contracts ({len(contracts)})", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Description", max_width=50)
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Amount", justify="right")
    table.add_column("Deadline")
    table.add_column("Docs", justify="center")

    for contract in contracts:
        docs = "".join(
            mark for mark, present in (("P", contract.pliego_link), ("A", contract.anuncio_link)) if present
        )
        table.add_row(
            escape(contract.id),
            escape(contract.description),
            escape(contract.contract_type),
            escape(contract.status),
            escape(contract.amount),
            escape(contract.submission_date),
            docs or "[dim]-[/dim]",
        )

    console.print(table)


@app.command("show")
def show_contract(
    ctx: typer.Context,
    contract_id: str = typer.Argument(..., help="Contract ID"),
) -> None:
    """Show detailed information about a contract and its status history."""
    from rich.panel import Panel

    store = open_store(get_app_config(ctx))
    contract = store.get_contract(contract_id)

    if contract is None:
        err_console.print(f"[red]Contract not found:[/red] {escape(contract_id)}")
        raise typer.Exit(1)

    e = escape
    details = f"""[bold]Description:[/bold] {e(contract.description) or '-'}
[bold]Type:[/bold] {e(contract.contract_type) or '-'}
[bold]Status:[/bold] {e(contract.status) or '-'}
[bold]Amount:[/bold] {e(contract.amount) or '-'}
[bold]Submission Date:[/bold] {e(contract.submission_date) or '-'}
[bold]Contracting Body:[/bold] {e(contract.contracting_body) or '-'}

[bold]Detail URL:[/bold] {e(contract.link or '-')}
[bold]Pliego:[/bold] {e(contract.pliego_link or '-')}
[bold]Anuncio:[/bold] {e(contract.anuncio_link or '-')}

[bold]Scraped:[/bold] {contract.scraped_at:%Y-%m-%d %H:%M}"""

    console.print()
    console.print(Panel.fit(details, title=f"[bold cyan]{e(contract.id)}[/bold cyan]", border_style="cyan"))

    changes = store.get_status_changes(contract_id)
    if changes:
        console.print()
        _print_changes(changes, title="Status History")


@app.command("delete")
def delete_contract(
    ctx: typer.Context,
    contract_id: str = typer.Argument(..., help="Contract ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete one contract. Its status history is kept."""
    from contractwatch.persistence.store import ContractNotFound

    store = open_store(get_app_config(ctx))

    if not yes and not typer.confirm(f"Delete contract {contract_id}?", default=False):
        raise typer.Abort()

    try:
        store.delete_contract(contract_id)
    except ContractNotFound:
        err_console.print(f"[red]Contract not found:[/red] {escape(contract_id)}")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] Deleted {escape(contract_id)}")


@app.command("delete-all")
def delete_all_contracts(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete every stored contract."""
    store = open_store(get_app_config(ctx))

    if not yes and not typer.confirm("This will DELETE ALL CONTRACTS. Continue?", default=False):
        raise typer.Abort()

    deleted = store.delete_all_contracts()
    console.print(f"[green]OK[/green] Deleted {deleted} contracts")


@app.command("changes")
def list_changes(
    ctx: typer.Context,
    recent: bool = typer.Option(
        False,
        "--recent",
        "-r",
        help="Only the last 24 hours",
    ),
    contract_id: Optional[str] = typer.Option(
        None,
        "--contract",
        "-c",
        help="Only changes for this contract",
    ),
) -> None:
    """Show recorded status changes, newest first."""
    store = open_store(get_app_config(ctx))

    if contract_id:
        changes = store.get_status_changes(contract_id)
    elif recent:
        changes = store.get_recent_status_changes()
    else:
        changes = store.get_all_status_changes()

    if not changes:
        console.print("[dim]No status changes recorded.[/dim]")
        return

    _print_changes(changes, title=f"Status Changes ({len(changes)})")


def _print_changes(changes, title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("When", no_wrap=True)
    table.add_column("Contract", style="cyan", no_wrap=True)
    table.add_column("Old Status")
    table.add_column("New Status", style="green")

    for change in changes:
        table.add_row(
            change.changed_at.strftime("%Y-%m-%d %H:%M"),
            escape(change.contract_id),
            escape(change.old_status) or "[dim]-[/dim]",
            escape(change.new_status),
        )

    console.print(table)
