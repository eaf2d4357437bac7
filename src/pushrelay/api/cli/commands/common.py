"""Helpers shared by the CLI commands."""

import typer
from rich.console import Console

from pushrelay.api.log_config import configure_logging
from pushrelay.application.config_loader import ConfigLoader
from pushrelay.core.domain.config_schema import RelayConfigSchema
from pushrelay.core.domain.errors import ConfigError

console = Console()


def load_schema(ctx: typer.Context) -> RelayConfigSchema:
    """Load the configuration named by the global ``--config`` option.

    A ``log_level`` set in the file or the environment is applied to the
    loggers unless ``--debug`` was given.
    """
    global_opts = ctx.obj or {}
    try:
        schema = ConfigLoader().load(global_opts.get("config"))
    except ConfigError as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc.message}")
        raise typer.Exit(1) from exc

    if not global_opts.get("debug") and "log_level" in schema.model_fields_set:
        configure_logging(schema.log_level)
    return schema
