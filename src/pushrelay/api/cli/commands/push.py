"""Push command - send one notification."""

import asyncio
from typing import Optional

import typer
from rich.table import Table

from pushrelay.api.cli.commands.common import console, load_schema
from pushrelay.application.infrastructure_builder import InfrastructureBuilder
from pushrelay.core.domain.channel import Importance
from pushrelay.core.domain.delivery import DispatchReport
from pushrelay.core.domain.errors import RelayError
from pushrelay.core.domain.message import NotificationMessage


def push(
    ctx: typer.Context,
    to: Optional[list[str]] = typer.Option(
        None, "--to", "-t", help="Device token (repeat for several recipients)"
    ),
    topic: Optional[str] = typer.Option(None, "--topic", help="Topic name (wins over --to)"),
    title: Optional[str] = typer.Option(None, "--title", help="Notification title"),
    body: Optional[str] = typer.Option(None, "--body", "-b", help="Notification body"),
    channel: Optional[str] = typer.Option(None, "--channel", help="Channel id"),
    importance: Optional[str] = typer.Option(
        None, "--importance", help="min | low | default | high | max"
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Targeted user id"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Use the in-memory transport instead of FCM"
    ),
) -> None:
    """Send a notification to devices or a topic."""
    schema = load_schema(ctx)
    if dry_run:
        schema = schema.model_copy(
            update={"transport": schema.transport.model_copy(update={"backend": "memory"})}
        )

    try:
        message = NotificationMessage(
            recipients=tuple(to or ()),
            topic=topic,
            title=title,
            body=body,
            channel=channel,
            importance=Importance.parse(importance),
            targeted_user_id=user,
        )
    except (RelayError, ValueError) as exc:
        console.print(f"[red]Invalid notification:[/red] {getattr(exc, 'message', exc)}")
        raise typer.Exit(1) from exc

    async def _push() -> DispatchReport:
        relay, config = InfrastructureBuilder().build_relay(schema)
        try:
            await relay.init(config)
            return await relay.push(message)
        finally:
            await relay.dispose()

    try:
        report = asyncio.run(_push())
    except RelayError as exc:
        console.print(f"[red]Push failed:[/red] {exc.message}")
        raise typer.Exit(1) from exc

    table = Table(title=f"Notification {message.id}")
    table.add_column("Target", style="cyan")
    table.add_column("State", style="white")
    table.add_column("Attempts", justify="right")
    table.add_column("Last error", style="dim")
    for delivery in report.deliveries:
        state_style = "green" if delivery.state.value == "succeeded" else "red"
        table.add_row(
            delivery.target,
            f"[{state_style}]{delivery.state.value}[/{state_style}]",
            str(delivery.attempts),
            delivery.last_error.message if delivery.last_error else "",
        )
    console.print(table)

    if report.failed:
        raise typer.Exit(1)
