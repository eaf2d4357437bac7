"""Protocol definitions for the relay event bus."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

from pushrelay.core.domain.events import RelayEvent


class EventSubscriptionProtocol(Protocol):
    """One subscriber's view of the bus."""

    def __aiter__(self) -> AsyncIterator[RelayEvent]:
        ...

    def close(self) -> None:
        """Stop receiving events."""
        ...

    async def __aenter__(self) -> "EventSubscriptionProtocol":
        ...

    async def __aexit__(self, *exc_info: Any) -> None:
        ...


class EventBusProtocol(Protocol):
    """Broadcast channel for relay events."""

    @property
    def is_closed(self) -> bool:
        ...

    def open(self) -> None:
        """Open the bus. Calling it again is a no-op."""
        ...

    def publish(self, event: RelayEvent) -> None:
        """Deliver ``event`` to every current subscriber without blocking."""
        ...

    def subscribe(self) -> EventSubscriptionProtocol:
        """Register a new subscriber that sees events published from now on."""
        ...

    def close(self) -> None:
        """Close the bus and end every subscription."""
        ...
