"""Channels command - inspect configured and resolved channels."""

import typer
from rich.table import Table

from pushrelay.api.cli.commands.common import console, load_schema
from pushrelay.application.channel_registry import ChannelRegistry
from pushrelay.application.config_loader import to_relay_config

app = typer.Typer(help="Channel inspection")


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


@app.command("list")
def list_channels(ctx: typer.Context):
    """List the default channel and every configured channel, fully resolved."""
    config = to_relay_config(load_schema(ctx))
    registry = ChannelRegistry()

    table = Table(title="Notification Channels")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Group", style="dim")
    table.add_column("Importance")
    table.add_column("Sound")
    table.add_column("Badge")
    table.add_column("Vibration")
    table.add_column("Lights")

    for channel in registry.channels(config):
        effective = registry.resolve(channel.id, config)
        table.add_row(
            effective.id,
            effective.name,
            effective.group_id or "",
            effective.importance.value,
            _flag(effective.play_sound),
            _flag(effective.show_badge),
            _flag(effective.enable_vibration),
            _flag(effective.enable_lights),
        )

    console.print(table)


@app.command("resolve")
def resolve_channel(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Channel id as referenced by a message"),
):
    """Show the effective attributes a message on NAME would get."""
    config = to_relay_config(load_schema(ctx))
    effective = ChannelRegistry().resolve(name, config)
    if effective.id != name:
        console.print(
            f"[yellow]Unknown channel '{name}', falling back to '{effective.id}'[/yellow]"
        )
    console.print_json(data=effective.to_dict())
