"""Notification channel models.

A channel describes how notifications are presented: sound, badge,
vibration, lights and importance. Display flags on a configured channel are
nullable; ``None`` means "inherit from the default channel". The fully
resolved, non-null attribute set is an :class:`EffectiveChannel`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any

DEFAULT_CHANNEL_ID = "general"

# Display fields that inherit from the default channel when unset.
INHERITED_FIELDS: tuple[str, ...] = (
    "play_sound",
    "show_badge",
    "enable_vibration",
    "enable_lights",
    "led_color",
    "sound",
    "importance",
)


class Importance(str, Enum):
    """Interruption level of a notification."""

    MIN = "min"
    LOW = "low"
    DEFAULT = "default"
    HIGH = "high"
    MAX = "max"

    @classmethod
    def parse(cls, value: Any) -> "Importance | None":
        """Parse a wire value, accepting enum members and legacy names."""
        if value is None or isinstance(value, Importance):
            return value
        text = str(value).strip()
        if text == "defaultImportance":
            return cls.DEFAULT
        return cls(text.lower())


@dataclass(frozen=True)
class GroupChannel:
    """A named group that channels can be collected under in the tray."""

    id: str
    name: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"id": self.id, "name": self.name, "description": self.description}
        return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class Channel:
    """A configured notification channel.

    Attributes:
        id: Unique channel key; messages reference channels by this id.
        name: User-visible channel name.
        group_id: Optional :class:`GroupChannel` id.
        description: User-visible description.
        play_sound: Whether notifications play a sound.
        show_badge: Whether notifications show a badge.
        enable_vibration: Whether notifications vibrate.
        enable_lights: Whether notifications flash the LED.
        led_color: ARGB integer colour for the LED.
        sound: Custom sound resource name.
        importance: Interruption level.
    """

    id: str
    name: str
    group_id: str | None = None
    description: str | None = None
    play_sound: bool | None = None
    show_badge: bool | None = None
    enable_vibration: bool | None = None
    enable_lights: bool | None = None
    led_color: int | None = None
    sound: str | None = None
    importance: Importance | None = None

    @classmethod
    def default(cls) -> "Channel":
        """Return the built-in default channel."""
        return cls(
            id=DEFAULT_CHANNEL_ID,
            name="General",
            description="General Notifications",
        )

    def merged_over(self, default: "Channel") -> "Channel":
        """Return a copy with every null display field taken from ``default``."""
        changes = {
            name: getattr(default, name)
            for name in INHERITED_FIELDS
            if getattr(self, name) is None
        }
        return replace(self, **changes) if changes else self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            data[item.name] = value.value if isinstance(value, Importance) else value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Channel":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            group_id=data.get("group_id"),
            description=data.get("description"),
            play_sound=data.get("play_sound"),
            show_badge=data.get("show_badge"),
            enable_vibration=data.get("enable_vibration"),
            enable_lights=data.get("enable_lights"),
            led_color=data.get("led_color"),
            sound=data.get("sound"),
            importance=Importance.parse(data.get("importance")),
        )


@dataclass(frozen=True)
class EffectiveChannel:
    """Fully resolved display attributes for one notification.

    ``led_color`` and ``sound`` stay optional: they have no baseline value and
    the renderer uses the platform default when they are absent.
    """

    id: str
    name: str
    importance: Importance
    play_sound: bool
    show_badge: bool
    enable_vibration: bool
    enable_lights: bool
    group_id: str | None = None
    description: str | None = None
    led_color: int | None = None
    sound: str | None = None

    @property
    def sound_resource(self) -> str | None:
        """Sound name without its file extension, as tray resources expect."""
        if self.sound is None:
            return None
        return self.sound.split(".")[0]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            data[item.name] = value.value if isinstance(value, Importance) else value
        return data
