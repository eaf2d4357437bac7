"""Notification relay facade.

Single handle the host application holds for everything notification
related: outbound push with retry, inbound rendering, tap handling, topic
management, the event stream and the notification history.

Every operation takes a snapshot of the current configuration when it
starts; ``configure`` replaces the whole configuration value and only
affects operations started afterwards.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import structlog

from pushrelay.application.channel_registry import ChannelRegistry
from pushrelay.application.dispatcher import DispatchEngine, SleepFunc
from pushrelay.application.inbound import InboundHandler
from pushrelay.application.presenter import NotificationPresenter
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.delivery import DispatchReport
from pushrelay.core.domain.errors import NotInitializedError, PermissionDeniedError
from pushrelay.core.domain.message import NotificationMessage
from pushrelay.core.interfaces.events import EventBusProtocol, EventSubscriptionProtocol
from pushrelay.core.interfaces.history import HistoryStoreProtocol
from pushrelay.core.interfaces.renderer import RendererProtocol
from pushrelay.core.interfaces.transport import TransportProtocol
from pushrelay.infrastructure.messaging.event_bus import BroadcastEventBus
from pushrelay.infrastructure.persistence.history_store import DisabledHistoryStore


class NotificationRelay:
    """Facade over the dispatch engine, inbound handler and presenter.

    Usage::

        relay = NotificationRelay(FcmTransport(server_key), LogRenderer())
        await relay.init(RelayConfig(server_key=server_key))

        async with relay.events() as events:
            await relay.push(NotificationMessage(recipients=("token",), title="Hi"))
            event = await anext(events)
    """

    def __init__(
        self,
        transport: TransportProtocol,
        renderer: RendererProtocol,
        *,
        event_bus: EventBusProtocol | None = None,
        registry: ChannelRegistry | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._renderer = renderer
        self._event_bus = event_bus or BroadcastEventBus()
        self._registry = registry or ChannelRegistry()
        self._dispatcher = DispatchEngine(
            transport, self._event_bus, registry=self._registry, sleep=sleep
        )
        self._presenter = NotificationPresenter(
            renderer, self._event_bus, registry=self._registry
        )
        self._inbound = InboundHandler(self._presenter, self._event_bus)
        self._config = RelayConfig.defaults()
        self._initialized = False
        self._topics: set[str] = set()
        self._disabled_history = DisabledHistoryStore()
        self._logger = structlog.get_logger()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> RelayConfig:
        return self._config

    @property
    def subscribed_topics(self) -> frozenset[str]:
        return frozenset(self._topics)

    def configure(self, config: RelayConfig) -> None:
        """Replace the configuration. Running operations keep their snapshot."""
        self._config = config
        self._logger.debug("relay.configured", channels=len(config.channels))

    async def init(self, config: RelayConfig) -> None:
        """Initialise the relay. A second call is a no-op.

        Raises:
            NotInitializedError: If the transport has no credentials.
            PermissionDeniedError: If notification permission was refused.
            ChannelSetupError: If channel registration failed.
        """
        if self._initialized:
            self._logger.info("relay.already_initialized")
            return
        if not self._transport.is_ready():
            raise NotInitializedError(
                "The push transport is not ready; check the server key",
                details={"transport": type(self._transport).__name__},
            )

        granted = await self._transport.request_permission(
            badge=self._registry.has_badge(config),
            sound=self._registry.has_sound(config),
        )
        if not granted:
            raise PermissionDeniedError("Notification permission was not granted")

        await self._registry.setup(config, self._renderer)
        await self._renderer.initialize(icon=config.icon)

        self._config = config
        self._event_bus.open()
        self._transport.listen(self.on_transport_message)
        self._transport.on_token_refresh(self._on_token_refresh)
        self._renderer.set_selection_handler(self.on_user_selected)
        self._initialized = True
        self._logger.info(
            "relay.initialized",
            channels=len(config.channels) + 1,
            max_retries=config.max_retries,
            history=config.history is not None,
        )

        launch_payload = await self._renderer.launch_payload()
        if launch_payload is not None:
            self._logger.info("relay.launched_from_notification")
            await self.on_user_selected(launch_payload)

    async def dispose(self) -> None:
        """Unsubscribe from all topics, close the bus and reset to defaults.

        Transports holding network resources (``close()``) are closed too.
        """
        if self._initialized:
            await self.unsubscribe_from_all()
        self._event_bus.close()
        close = getattr(self._transport, "close", None)
        try:
            if close is not None:
                await close()
        finally:
            self._config = RelayConfig.defaults()
            self._initialized = False
            self._logger.info("relay.disposed")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def events(self) -> EventSubscriptionProtocol:
        """Subscribe to relay events published from now on."""
        return self._event_bus.subscribe()

    # ------------------------------------------------------------------
    # Outbound and local presentation
    # ------------------------------------------------------------------

    async def push(
        self, message: NotificationMessage, *, retain_history: bool = True
    ) -> DispatchReport:
        """Send ``message`` to its targets with per-target retry.

        Raises:
            NotInitializedError: Before ``init``.
            InvalidMessageError: If the message has no targets.
        """
        config = self._require_initialized("push")
        return await self._dispatcher.push(message, config, retain_history=retain_history)

    async def show_notification(self, message: NotificationMessage) -> bool:
        """Render ``message`` locally without sending it."""
        config = self._require_initialized("show_notification")
        return await self._presenter.present(message, config)

    async def on_transport_message(self, raw_payload: Any) -> None:
        """Entry point for payloads delivered by the transport."""
        await self._inbound.on_transport_message(raw_payload, self._config)

    async def on_user_selected(self, raw_payload: Any) -> None:
        """Entry point for tray taps."""
        await self._inbound.on_user_selected(raw_payload, self._config)

    async def cancel(self, notification_id: int) -> None:
        self._require_initialized("cancel")
        await self._renderer.cancel(notification_id)

    async def cancel_all(self) -> None:
        self._require_initialized("cancel_all")
        await self._renderer.cancel_all()

    # ------------------------------------------------------------------
    # Topics, token and permission
    # ------------------------------------------------------------------

    async def subscribe_to_topic(self, topic: str) -> None:
        self._require_initialized("subscribe_to_topic")
        await self._transport.subscribe_topic(topic)
        self._topics.add(topic)
        self._logger.info("relay.topic_subscribed", topic=topic)

    async def unsubscribe_from_topic(self, topic: str) -> None:
        self._require_initialized("unsubscribe_from_topic")
        await self._transport.unsubscribe_topic(topic)
        self._topics.discard(topic)
        self._logger.info("relay.topic_unsubscribed", topic=topic)

    async def unsubscribe_from_all(self) -> None:
        """Unsubscribe from every topic subscribed through this relay."""
        for topic in sorted(self._topics):
            try:
                await self.unsubscribe_from_topic(topic)
            except Exception as exc:
                self._logger.error("relay.unsubscribe_failed", topic=topic, error=str(exc))

    async def get_token(self) -> str | None:
        return await self._transport.get_token()

    async def check_permission(self) -> bool:
        return await self._transport.check_permission()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_notification(self, message_id: str) -> NotificationMessage | None:
        return await self._history().get(message_id)

    async def save_notification(self, message: NotificationMessage) -> None:
        await self._history().save(message)

    async def delete_notification(self, message_id: str) -> None:
        await self._history().delete(message_id)

    async def mark_as_seen(self, message_id: str) -> None:
        await self._history().mark_seen(message_id)

    async def mark_all_as_seen(self, user_id: str | None = None) -> None:
        config = self._config
        await self._history(config).mark_all_seen(config.resolve_user_id(user_id))

    async def query(self, user_id: str | None = None) -> list[NotificationMessage]:
        """Messages of ``user_id`` (default: the current user), newest first."""
        config = self._config
        return await self._history(config).query_by_user(config.resolve_user_id(user_id))

    async def count_unseen(self, user_id: str | None = None) -> int:
        config = self._config
        return await self._history(config).count_unseen(config.resolve_user_id(user_id))

    async def watch_unseen(self) -> AsyncIterator[int]:
        """Live unseen count: the current value, then every change."""
        async for count in self._history().watch_unseen():
            yield count

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_initialized(self, operation: str) -> RelayConfig:
        if not self._initialized:
            raise NotInitializedError(
                f"Call init() before {operation}()",
                details={"operation": operation},
            )
        return self._config

    def _history(self, config: RelayConfig | None = None) -> HistoryStoreProtocol:
        history = (config or self._config).history
        return history if history is not None else self._disabled_history

    async def _on_token_refresh(self, token: str) -> None:
        self._logger.info("relay.token_refreshed")
        try:
            await self._config.hooks.on_token_refresh(token)
        except Exception as exc:
            self._logger.error("relay.on_token_refresh_failed", error=str(exc))
