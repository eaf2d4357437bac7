"""pushrelay CLI entry point."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from pushrelay.api.cli.commands import channels, history, push
from pushrelay.api.log_config import configure_logging

app = typer.Typer(
    name="pushrelay",
    help="pushrelay - push notification relay",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

# Register commands
app.command("push")(push.push)
app.add_typer(channels.app, name="channels", help="Channel inspection")
app.add_typer(history.app, name="history", help="Notification history")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Relay configuration file (YAML)"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """pushrelay CLI."""
    configure_logging("DEBUG" if debug else None)
    # Store global options in context for subcommands
    ctx.obj = {"config": config, "debug": debug}


@app.command()
def version():
    """Show pushrelay version."""
    from pushrelay import __version__

    console.print(f"[bold blue]Version:[/bold blue] [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
