"""
Config Loader
=============

Loads relay configuration files (YAML), applies environment overrides and
validates the result against the Pydantic schema.

Search order for values (highest first):
1. Environment variables (``PUSHRELAY_SERVER_KEY``, ``PUSHRELAY_MAX_RETRIES``,
   ``PUSHRELAY_LOG_LEVEL``)
2. The YAML file
3. Schema defaults
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml

from pushrelay.core.domain.channel import Channel, GroupChannel
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.config_schema import (
    ChannelSchema,
    RelayConfigSchema,
    validate_relay_config,
)
from pushrelay.core.domain.errors import ConfigError
from pushrelay.core.interfaces.history import HistoryStoreProtocol
from pushrelay.core.interfaces.hooks import NotificationHooks, SilentHooks

logger = structlog.get_logger(__name__)

ENV_OVERRIDES: dict[str, str] = {
    "PUSHRELAY_SERVER_KEY": "server_key",
    "PUSHRELAY_MAX_RETRIES": "max_retries",
    "PUSHRELAY_LOG_LEVEL": "log_level",
}


class ConfigLoader:
    """Load and validate relay configuration.

    Args:
        environ: Environment used for overrides (defaults to ``os.environ``).
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ
        self._logger = logger.bind(component="config_loader")

    def load(self, path: Path | str | None = None) -> RelayConfigSchema:
        """Load the configuration file at ``path`` (or defaults only).

        Raises:
            ConfigError: If the file is missing, unreadable or invalid.
        """
        file_path = Path(path) if path is not None else None
        data = self._read(file_path) if file_path is not None else {}
        data = self.apply_env_overrides(data)
        schema = validate_relay_config(data, file_path=file_path)
        self._logger.debug(
            "config.loaded",
            path=str(file_path) if file_path else None,
            channels=len(schema.channels),
            transport=schema.transport.backend,
            history=schema.history.backend,
        )
        return schema

    def apply_env_overrides(self, data: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of ``data`` with environment overrides applied."""
        merged = dict(data)
        for env_name, key in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                merged[key] = value
                self._logger.debug("config.env_override", key=key, env=env_name)
        return merged

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}", details={"file_path": str(path)})
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(
                f"File: {path} | {exc}", details={"file_path": str(path)}
            ) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"File: {path} | top-level YAML value must be a mapping",
                details={"file_path": str(path)},
            )
        return data


def channel_from_schema(schema: ChannelSchema) -> Channel:
    return Channel(
        id=schema.id,
        name=schema.name or schema.id,
        group_id=schema.group_id,
        description=schema.description,
        play_sound=schema.play_sound,
        show_badge=schema.show_badge,
        enable_vibration=schema.enable_vibration,
        enable_lights=schema.enable_lights,
        led_color=schema.led_color,
        sound=schema.sound,
        importance=schema.importance,
    )


def to_relay_config(
    schema: RelayConfigSchema,
    *,
    history: HistoryStoreProtocol | None = None,
    hooks: NotificationHooks | None = None,
    current_user_id: Callable[[], str | None] | None = None,
) -> RelayConfig:
    """Build the immutable runtime configuration from a validated schema."""
    default_channel = (
        channel_from_schema(schema.default_channel)
        if schema.default_channel is not None
        else Channel.default()
    )
    return RelayConfig(
        server_key=schema.server_key,
        icon=schema.icon,
        max_retries=schema.max_retries,
        retry_delay=schema.retry_delay,
        retry_backoff=schema.retry_backoff,
        default_channel=default_channel,
        channels=tuple(channel_from_schema(channel) for channel in schema.channels),
        group_channels=tuple(
            GroupChannel(id=group.id, name=group.name, description=group.description)
            for group in schema.group_channels
        ),
        current_user_id=current_user_id,
        hooks=hooks or SilentHooks(),
        history=history,
        log_level=schema.log_level,
    )
