"""Relay events published on the event bus.

Events are immutable facts about what happened to a notification:
- received: an inbound notification was decoded
- tapped: the user selected a notification in the tray
- added: a notification was dispatched or shown locally
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pushrelay.core.domain.message import NotificationMessage
from pushrelay.core.utils.time import utc_now


class RelayEventType(str, Enum):
    """Kinds of events observable by relay subscribers."""

    RECEIVED = "received"
    TAPPED = "tapped"
    ADDED = "added"


@dataclass(frozen=True)
class RelayEvent:
    """An event describing one notification occurrence."""

    type: RelayEventType
    message: NotificationMessage | None = None
    event_id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def received(cls, message: NotificationMessage) -> "RelayEvent":
        return cls(type=RelayEventType.RECEIVED, message=message)

    @classmethod
    def tapped(cls, message: NotificationMessage) -> "RelayEvent":
        return cls(type=RelayEventType.TAPPED, message=message)

    @classmethod
    def added(cls, message: NotificationMessage) -> "RelayEvent":
        return cls(type=RelayEventType.ADDED, message=message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the event for logging or forwarding."""
        return {
            "event_id": self.event_id,
            "type": self.type.value,
            "message": self.message.to_dict() if self.message else None,
            "timestamp": self.timestamp.isoformat(),
        }
