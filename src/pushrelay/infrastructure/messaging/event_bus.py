"""In-process broadcast bus for relay events.

Every subscriber owns an unbounded ``asyncio.Queue``; ``publish`` only does
``put_nowait`` into each queue, so a slow subscriber never blocks the
publisher or the other subscribers. The subscriber list is an immutable tuple
replaced on every subscribe/unsubscribe, so publishing iterates a stable
snapshot while subscriptions change.

Lifecycle: ``open`` (explicit or implied by the first ``subscribe``),
``publish``, ``close`` (once). Publishing after ``close`` is a no-op.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import structlog

from pushrelay.core.domain.events import RelayEvent
from pushrelay.core.interfaces.events import EventBusProtocol

logger = structlog.get_logger(__name__)

_CLOSED = object()


class EventSubscription:
    """Async iterator over the events published after subscription.

    Usage::

        async with bus.subscribe() as events:
            async for event in events:
                ...
    """

    def __init__(self, bus: "BroadcastEventBus") -> None:
        self._bus = bus
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of events delivered but not yet consumed."""
        size = self._queue.qsize()
        # A finished subscription always holds exactly one trailing sentinel.
        return max(0, size - 1) if self._closed else size

    def _deliver(self, event: RelayEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def _finish(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def close(self) -> None:
        """Unsubscribe. Iteration ends after already delivered events."""
        self._bus._remove(self)  # noqa: SLF001
        self._finish()

    def __aiter__(self) -> "EventSubscription":
        return self

    async def __anext__(self) -> RelayEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the sentinel so repeated iteration also stops.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "EventSubscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class BroadcastEventBus(EventBusProtocol):
    """Broadcast bus: every subscriber sees every event published after it joined."""

    def __init__(self) -> None:
        self._subscribers: tuple[EventSubscription, ...] = ()
        self._opened = False
        self._closed = False
        self._published = 0

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def published_count(self) -> int:
        """Events accepted for delivery since the bus was created."""
        return self._published

    def open(self) -> None:
        if self._closed or self._opened:
            return
        self._opened = True
        logger.debug("event_bus.opened")

    def publish(self, event: RelayEvent) -> None:
        if self._closed:
            logger.debug("event_bus.publish_after_close", event_type=event.type.value)
            return
        subscribers = self._subscribers
        if not subscribers:
            logger.debug("event_bus.dropped", event_type=event.type.value)
            return
        self._published += 1
        for subscription in subscribers:
            subscription._deliver(event)  # noqa: SLF001

    def subscribe(self) -> EventSubscription:
        subscription = EventSubscription(self)
        if self._closed:
            subscription._finish()  # noqa: SLF001
            return subscription
        self.open()
        self._subscribers = (*self._subscribers, subscription)
        return subscription

    async def stream(self) -> AsyncIterator[RelayEvent]:
        """Yield events until the bus closes or the consumer stops."""
        subscription = self.subscribe()
        try:
            async for event in subscription:
                yield event
        finally:
            subscription.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subscribers = self._subscribers
        self._subscribers = ()
        for subscription in subscribers:
            subscription._finish()  # noqa: SLF001
        logger.debug("event_bus.closed", subscribers=len(subscribers))

    def _remove(self, subscription: EventSubscription) -> None:
        self._subscribers = tuple(s for s in self._subscribers if s is not subscription)
