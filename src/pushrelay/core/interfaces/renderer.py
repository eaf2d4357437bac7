"""Protocol definition for the platform notification tray."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Protocol

from pushrelay.core.domain.channel import Channel, EffectiveChannel, GroupChannel

SelectionHandler = Callable[[Any], Awaitable[None]]


class RendererProtocol(Protocol):
    """Displays, schedules and cancels notifications on the device.

    Display failures are reported with :class:`RenderError`; the relay logs
    them and never retries.
    """

    async def initialize(self, *, icon: str) -> None:
        """Prepare the tray (default icon, platform plugin)."""
        ...

    async def create_channel_group(self, group: GroupChannel) -> None:
        """Register a channel group with the platform."""
        ...

    async def create_channel(self, channel: Channel, effective: EffectiveChannel) -> None:
        """Register a channel with its resolved attributes."""
        ...

    async def show(
        self,
        notification_id: int,
        *,
        title: str | None,
        body: str | None,
        channel: EffectiveChannel,
        payload: str,
        image_url: str | None = None,
    ) -> None:
        """Show a notification immediately."""
        ...

    async def schedule(
        self,
        notification_id: int,
        *,
        title: str | None,
        body: str | None,
        channel: EffectiveChannel,
        payload: str,
        send_at: datetime,
        timezone: str,
    ) -> None:
        """Schedule a notification for ``send_at`` in ``timezone``."""
        ...

    async def cancel(self, notification_id: int) -> None:
        """Remove one notification from the tray (or its schedule)."""
        ...

    async def cancel_all(self) -> None:
        """Remove every notification from the tray."""
        ...

    async def launch_payload(self) -> str | None:
        """Payload of the notification that launched the app, if any."""
        ...

    def set_selection_handler(self, handler: SelectionHandler) -> None:
        """Register the callback invoked with the payload of a tapped notification."""
        ...
