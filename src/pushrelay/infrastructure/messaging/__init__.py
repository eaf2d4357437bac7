"""Event bus adapters."""

from pushrelay.infrastructure.messaging.event_bus import BroadcastEventBus, EventSubscription

__all__ = ["BroadcastEventBus", "EventSubscription"]
