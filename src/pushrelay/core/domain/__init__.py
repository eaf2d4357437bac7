"""
Domain Models

This package contains the core domain models for pushrelay:
- Notification messages and their wire codec
- Channels and resolved display attributes
- Relay configuration and its file schema
- Relay events and the per-target delivery state machine
- Error taxonomy
"""

from pushrelay.core.domain.channel import (
    Channel,
    EffectiveChannel,
    GroupChannel,
    Importance,
)
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.delivery import DispatchReport, TargetDelivery, TargetState
from pushrelay.core.domain.errors import (
    ChannelSetupError,
    ConfigError,
    DecodeError,
    InvalidMessageError,
    NotInitializedError,
    PermissionDeniedError,
    RelayError,
    RenderError,
    TransportError,
    TransportErrorKind,
)
from pushrelay.core.domain.events import RelayEvent, RelayEventType
from pushrelay.core.domain.message import NotificationMessage, Schedule, decode_message

__all__ = [
    "Channel",
    "EffectiveChannel",
    "GroupChannel",
    "Importance",
    "RelayConfig",
    "DispatchReport",
    "TargetDelivery",
    "TargetState",
    "RelayError",
    "InvalidMessageError",
    "NotInitializedError",
    "PermissionDeniedError",
    "TransportError",
    "TransportErrorKind",
    "DecodeError",
    "RenderError",
    "ChannelSetupError",
    "ConfigError",
    "RelayEvent",
    "RelayEventType",
    "NotificationMessage",
    "Schedule",
    "decode_message",
]
