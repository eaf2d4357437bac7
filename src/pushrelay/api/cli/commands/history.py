"""History command - inspect stored notifications."""

import asyncio
from typing import Optional

import typer
from rich.table import Table

from pushrelay.api.cli.commands.common import console, load_schema
from pushrelay.application.infrastructure_builder import InfrastructureBuilder
from pushrelay.core.interfaces.history import HistoryStoreProtocol

app = typer.Typer(help="Notification history")


def _history_store(ctx: typer.Context) -> HistoryStoreProtocol:
    schema = load_schema(ctx)
    store = InfrastructureBuilder().build_history_store(schema.history)
    if store is None:
        console.print("[yellow]History is disabled in this configuration[/yellow]")
        raise typer.Exit(0)
    return store


@app.command("list")
def list_history(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Targeted user id"),
):
    """List stored notifications of a user, newest first."""
    store = _history_store(ctx)
    messages = asyncio.run(store.query_by_user(user))

    if not messages:
        console.print("[yellow]No notifications found[/yellow]")
        return

    table = Table(title="Notification History")
    table.add_column("Id", style="cyan")
    table.add_column("Created", style="white")
    table.add_column("Channel")
    table.add_column("Title")
    table.add_column("Seen")

    for message in messages:
        table.add_row(
            message.id,
            message.created_at.isoformat(timespec="seconds"),
            message.channel or "",
            message.title or "",
            "[green]yes[/green]" if message.seen else "[bold]no[/bold]",
        )

    console.print(table)


@app.command("unseen")
def count_unseen(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Targeted user id"),
):
    """Print the number of unseen notifications."""
    store = _history_store(ctx)
    count = asyncio.run(store.count_unseen(user))
    console.print(f"[bold]Unseen:[/bold] {count}")
