"""Local presentation of notifications through the platform renderer."""

from __future__ import annotations

import json

import structlog

from pushrelay.application.channel_registry import ChannelRegistry
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.events import RelayEvent
from pushrelay.core.domain.message import NotificationMessage
from pushrelay.core.interfaces.events import EventBusProtocol
from pushrelay.core.interfaces.renderer import RendererProtocol
from pushrelay.core.utils.time import utc_now

logger = structlog.get_logger(__name__)


class NotificationPresenter:
    """Shows or schedules a message in the tray with its effective channel.

    Renderer failures are logged and reported through the return value; they
    never propagate.
    """

    def __init__(
        self,
        renderer: RendererProtocol,
        event_bus: EventBusProtocol,
        *,
        registry: ChannelRegistry | None = None,
    ) -> None:
        self._renderer = renderer
        self._event_bus = event_bus
        self._registry = registry or ChannelRegistry()

    async def present(self, message: NotificationMessage, config: RelayConfig) -> bool:
        """Render ``message`` now, or schedule it when it carries a schedule.

        An ``added`` event is published after an immediate show.

        Returns:
            True if the renderer accepted the notification.
        """
        channel = self._registry.resolve(
            message.channel,
            config,
            importance=message.importance,
            play_sound=message.play_sound,
        )
        payload = json.dumps(message.to_dict(), ensure_ascii=False, default=str)

        try:
            if message.schedule is not None:
                send_at = message.schedule.resolve_send_at()
                if send_at > utc_now():
                    timezone = message.schedule.timezone or send_at.tzname() or "UTC"
                    await self._renderer.schedule(
                        message.notification_id,
                        title=message.title,
                        body=message.body,
                        channel=channel,
                        payload=payload,
                        send_at=send_at,
                        timezone=timezone,
                    )
                    logger.info(
                        "presenter.scheduled",
                        notification_id=message.notification_id,
                        send_at=send_at.isoformat(),
                        timezone=timezone,
                    )
                    return True
                logger.warning(
                    "presenter.schedule_in_past",
                    notification_id=message.notification_id,
                    send_at=send_at.isoformat(),
                )

            await self._renderer.show(
                message.notification_id,
                title=message.title,
                body=message.body,
                channel=channel,
                payload=payload,
                image_url=message.image_url,
            )
        except Exception as exc:
            logger.error(
                "presenter.render_failed",
                notification_id=message.notification_id,
                channel=channel.id,
                error=str(exc),
            )
            return False

        logger.info(
            "presenter.shown",
            notification_id=message.notification_id,
            channel=channel.id,
        )
        self._event_bus.publish(RelayEvent.added(message))
        return True
