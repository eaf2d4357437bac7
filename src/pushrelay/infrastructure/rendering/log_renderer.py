"""Renderer that keeps the tray in memory and logs every change.

Used on hosts without a platform tray (servers, the CLI) and in tests.
``select`` simulates a tap on a shown notification.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog

from pushrelay.core.domain.channel import Channel, EffectiveChannel, GroupChannel
from pushrelay.core.domain.errors import RenderError
from pushrelay.core.interfaces.logging import LoggerProtocol
from pushrelay.core.interfaces.renderer import SelectionHandler


@dataclass(frozen=True)
class RenderedNotification:
    """A notification as it sits in the tray (or its schedule)."""

    notification_id: int
    title: str | None
    body: str | None
    channel: EffectiveChannel
    payload: str
    image_url: str | None = None
    send_at: datetime | None = None
    timezone: str | None = None


class LogRenderer:
    """In-memory tray.

    Args:
        logger: Optional structured logger.
        launch_payload: Payload of the notification that "launched" the host,
            returned once by :meth:`launch_payload`.
    """

    def __init__(
        self,
        *,
        logger: LoggerProtocol | None = None,
        launch_payload: str | None = None,
    ) -> None:
        self._logger = logger or structlog.get_logger()
        self._launch_payload = launch_payload
        self._selection_handler: SelectionHandler | None = None
        self.icon: str | None = None
        self.groups: dict[str, GroupChannel] = {}
        self.channels: dict[str, EffectiveChannel] = {}
        self.shown: dict[int, RenderedNotification] = {}
        self.scheduled: dict[int, RenderedNotification] = {}

    async def initialize(self, *, icon: str) -> None:
        self.icon = icon
        self._logger.debug("renderer.initialized", icon=icon)

    async def create_channel_group(self, group: GroupChannel) -> None:
        self.groups[group.id] = group

    async def create_channel(self, channel: Channel, effective: EffectiveChannel) -> None:
        if effective.group_id and effective.group_id not in self.groups:
            raise RenderError(
                f"Channel '{channel.id}' references unknown group '{effective.group_id}'",
                details={"channel": channel.id, "group": effective.group_id},
            )
        self.channels[channel.id] = effective

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
        self.scheduled.pop(notification_id, None)
        self.shown[notification_id] = RenderedNotification(
            notification_id=notification_id,
            title=title,
            body=body,
            channel=channel,
            payload=payload,
            image_url=image_url,
        )
        self._logger.info(
            "renderer.shown",
            notification_id=notification_id,
            channel=channel.id,
            title=title,
            importance=channel.importance.value,
            sound=channel.sound_resource if channel.play_sound else None,
        )

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
        self.scheduled[notification_id] = RenderedNotification(
            notification_id=notification_id,
            title=title,
            body=body,
            channel=channel,
            payload=payload,
            send_at=send_at,
            timezone=timezone,
        )
        self._logger.info(
            "renderer.scheduled",
            notification_id=notification_id,
            send_at=send_at.isoformat(),
            timezone=timezone,
        )

    async def cancel(self, notification_id: int) -> None:
        self.shown.pop(notification_id, None)
        self.scheduled.pop(notification_id, None)

    async def cancel_all(self) -> None:
        self.shown.clear()
        self.scheduled.clear()

    async def launch_payload(self) -> str | None:
        payload, self._launch_payload = self._launch_payload, None
        return payload

    def set_selection_handler(self, handler: SelectionHandler) -> None:
        self._selection_handler = handler

    async def select(self, notification_id: int) -> None:
        """Simulate the user tapping a shown notification."""
        rendered = self.shown.get(notification_id)
        if rendered is None:
            raise RenderError(
                f"Notification {notification_id} is not in the tray",
                details={"notification_id": notification_id},
            )
        self.shown.pop(notification_id)
        if self._selection_handler is not None:
            await self._selection_handler(rendered.payload)
