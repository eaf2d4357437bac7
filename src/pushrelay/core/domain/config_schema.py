"""
Configuration Schema Validation

Pydantic models for validating relay configuration files. Validation errors
are reported as :class:`ConfigError` with the file path in the message.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from pushrelay.core.domain.channel import DEFAULT_CHANNEL_ID, Importance
from pushrelay.core.domain.config import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY_SECONDS
from pushrelay.core.domain.errors import ConfigError

FCM_SEND_ENDPOINT = "https://fcm.googleapis.com/fcm/send"


class GroupChannelSchema(BaseModel):
    """Schema for a channel group."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class ChannelSchema(BaseModel):
    """Schema for one notification channel.

    Display flags left unset inherit from the default channel.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        pattern="^[a-zA-Z0-9_.:-]+$",
        description="Unique channel id referenced by messages",
    )
    name: Optional[str] = Field(None, description="User-visible name (defaults to id)")
    group_id: Optional[str] = None
    description: Optional[str] = None
    play_sound: Optional[bool] = None
    show_badge: Optional[bool] = None
    enable_vibration: Optional[bool] = None
    enable_lights: Optional[bool] = None
    led_color: Optional[int] = Field(None, ge=0, le=0xFFFFFFFF, description="ARGB colour")
    sound: Optional[str] = None
    importance: Optional[Importance] = None

    @field_validator("led_color", mode="before")
    @classmethod
    def parse_led_color(cls, v: Any) -> Any:
        """Accept ``#RRGGBB``, ``#AARRGGBB`` and ``0x`` hex strings."""
        if not isinstance(v, str):
            return v
        text = v.strip().lower()
        if text.startswith("#"):
            digits = text[1:]
            if len(digits) == 6:
                digits = "ff" + digits
            if len(digits) != 8:
                raise ValueError(f"led_color must be #RRGGBB or #AARRGGBB, got {v!r}")
            return int(digits, 16)
        return int(text, 0)

    @field_validator("importance", mode="before")
    @classmethod
    def parse_importance(cls, v: Any) -> Any:
        return Importance.parse(v)


class TransportSchema(BaseModel):
    """Schema for the push transport."""

    model_config = ConfigDict(extra="forbid")

    backend: Literal["fcm", "memory"] = "fcm"
    endpoint: str = FCM_SEND_ENDPOINT
    timeout_seconds: float = Field(15.0, gt=0, le=300)
    device_token: Optional[str] = Field(
        None, description="Registration token of this device (topic management)"
    )


class HistorySchema(BaseModel):
    """Schema for the notification history store."""

    model_config = ConfigDict(extra="forbid")

    backend: Literal["memory", "file", "disabled"] = "memory"
    work_dir: str = Field(".pushrelay", description="Base directory for the file backend")


class RelayConfigSchema(BaseModel):
    """Schema for a relay configuration file."""

    model_config = ConfigDict(extra="forbid")

    server_key: str = Field("", description="FCM server key")
    icon: str = Field("", description="Default tray icon resource")
    max_retries: int = Field(DEFAULT_MAX_RETRIES, ge=0, le=100)
    retry_delay: float = Field(DEFAULT_RETRY_DELAY_SECONDS, ge=0, le=3600)
    retry_backoff: float = Field(1.0, gt=0, le=10)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    default_channel: Optional[ChannelSchema] = None
    channels: list[ChannelSchema] = Field(default_factory=list)
    group_channels: list[GroupChannelSchema] = Field(default_factory=list)
    transport: TransportSchema = Field(default_factory=TransportSchema)
    history: HistorySchema = Field(default_factory=HistorySchema)

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_channel_ids(self) -> "RelayConfigSchema":
        """Channel ids must be unique and must not redefine the default id."""
        default_id = self.default_channel.id if self.default_channel else DEFAULT_CHANNEL_ID
        seen: set[str] = set()
        for channel in self.channels:
            if channel.id == default_id:
                raise ValueError(
                    f"channel '{channel.id}' redefines the default channel; "
                    "configure it under default_channel instead"
                )
            if channel.id in seen:
                raise ValueError(f"duplicate channel id '{channel.id}'")
            seen.add(channel.id)
        group_ids = [group.id for group in self.group_channels]
        if len(group_ids) != len(set(group_ids)):
            raise ValueError("duplicate group channel id")
        return self


def validate_relay_config(
    data: dict[str, Any],
    file_path: Optional[Path] = None,
) -> RelayConfigSchema:
    """
    Validate relay configuration data.

    Args:
        data: Configuration dictionary
        file_path: Optional file path for error messages

    Returns:
        Validated RelayConfigSchema

    Raises:
        ConfigError: If validation fails
    """
    try:
        return RelayConfigSchema(**data)
    except (ValidationError, TypeError) as e:
        prefix = f"File: {file_path} | " if file_path else ""
        raise ConfigError(
            f"{prefix}{e}",
            details={"file_path": str(file_path) if file_path else None},
        ) from e
