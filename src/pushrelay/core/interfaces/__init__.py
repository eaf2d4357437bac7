"""
Core Protocol Interfaces

Contracts for every collaborator the relay talks to. The application layer
depends only on these protocols; concrete adapters live in
``pushrelay.infrastructure``.

Available Protocols:
    - TransportProtocol: push-messaging transport (send, topics, tokens)
    - RendererProtocol: platform notification tray
    - HistoryStoreProtocol: notification history persistence
    - EventBusProtocol: broadcast relay events
    - NotificationHooks: application hook strategy
    - LoggerProtocol: structured logging
"""

from pushrelay.core.interfaces.events import EventBusProtocol, EventSubscriptionProtocol
from pushrelay.core.interfaces.history import HistoryStoreProtocol
from pushrelay.core.interfaces.hooks import CallbackHooks, NotificationHooks, SilentHooks
from pushrelay.core.interfaces.logging import LoggerProtocol
from pushrelay.core.interfaces.renderer import RendererProtocol
from pushrelay.core.interfaces.transport import TransportProtocol

__all__ = [
    "EventBusProtocol",
    "EventSubscriptionProtocol",
    "HistoryStoreProtocol",
    "NotificationHooks",
    "SilentHooks",
    "CallbackHooks",
    "LoggerProtocol",
    "RendererProtocol",
    "TransportProtocol",
]
