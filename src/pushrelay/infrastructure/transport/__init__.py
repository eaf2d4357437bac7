"""Push transport adapters."""

from pushrelay.infrastructure.transport.fcm_transport import FcmTransport
from pushrelay.infrastructure.transport.in_memory_transport import (
    InMemoryTransport,
    SentNotification,
)

__all__ = ["FcmTransport", "InMemoryTransport", "SentNotification"]
