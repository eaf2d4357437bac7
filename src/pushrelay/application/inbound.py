"""Inbound handler for transport payloads and tray taps.

For each raw transport payload:
  1. Decode it into a NotificationMessage (malformed payloads are dropped)
  2. Notify ``hooks.on_received``
  3. Ask ``hooks.should_show``; render only when it returns True
  4. Publish a ``received`` event, whatever the render decision was

For each tapped notification:
  1. Decode the tray payload (malformed payloads are dropped)
  2. Notify ``hooks.on_selected``
  3. Publish a ``tapped`` event

Nothing raised here reaches the transport or the tray: this is the boundary
where a bad notification must not take the host process down.
"""

from __future__ import annotations

from typing import Any

import structlog

from pushrelay.application.presenter import NotificationPresenter
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.errors import DecodeError
from pushrelay.core.domain.events import RelayEvent
from pushrelay.core.domain.message import NotificationMessage, decode_message
from pushrelay.core.interfaces.events import EventBusProtocol

logger = structlog.get_logger(__name__)


class InboundHandler:
    """Turns raw inbound payloads into relay events."""

    def __init__(self, presenter: NotificationPresenter, event_bus: EventBusProtocol) -> None:
        self._presenter = presenter
        self._event_bus = event_bus
        self._received_count = 0
        self._dropped_count = 0

    @property
    def received_count(self) -> int:
        """Number of payloads decoded successfully."""
        return self._received_count

    @property
    def dropped_count(self) -> int:
        """Number of payloads dropped as malformed."""
        return self._dropped_count

    async def on_transport_message(self, raw_payload: Any, config: RelayConfig) -> None:
        """Handle one payload delivered by the transport."""
        message = self._decode(raw_payload, source="transport")
        if message is None:
            return
        self._received_count += 1
        logger.info(
            "inbound.received",
            message_id=message.id,
            notification_id=message.notification_id,
            channel=message.channel,
        )

        try:
            await config.hooks.on_received(message)
        except Exception as exc:
            logger.error("inbound.on_received_failed", message_id=message.id, error=str(exc))

        if await self._should_show(message, config):
            await self._presenter.present(message, config)
        else:
            logger.debug("inbound.render_skipped", message_id=message.id)

        self._event_bus.publish(RelayEvent.received(message))

    async def on_user_selected(self, raw_payload: Any, config: RelayConfig) -> None:
        """Handle a tap on a notification in the tray."""
        message = self._decode(raw_payload, source="tray")
        if message is None:
            return
        logger.info("inbound.selected", message_id=message.id)

        try:
            await config.hooks.on_selected(message)
        except Exception as exc:
            logger.error("inbound.on_selected_failed", message_id=message.id, error=str(exc))

        self._event_bus.publish(RelayEvent.tapped(message))

    def _decode(self, raw_payload: Any, *, source: str) -> NotificationMessage | None:
        try:
            return decode_message(raw_payload)
        except DecodeError as exc:
            self._dropped_count += 1
            logger.error(
                "inbound.decode_failed",
                source=source,
                error=exc.message,
                details=exc.details,
            )
            return None

    async def _should_show(self, message: NotificationMessage, config: RelayConfig) -> bool:
        try:
            return bool(await config.hooks.should_show(message))
        except Exception as exc:
            logger.error("inbound.should_show_failed", message_id=message.id, error=str(exc))
            return False
