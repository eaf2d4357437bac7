"""
Infrastructure Builder

Creates the concrete adapters selected by a validated configuration:
- Transport (FCM or in-memory)
- History store (memory, file or disabled)
- Renderer (log renderer)

and wires them into a :class:`NotificationRelay`.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from pushrelay.application.config_loader import to_relay_config
from pushrelay.application.relay import NotificationRelay
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.config_schema import HistorySchema, RelayConfigSchema
from pushrelay.core.interfaces.history import HistoryStoreProtocol
from pushrelay.core.interfaces.hooks import NotificationHooks
from pushrelay.core.interfaces.renderer import RendererProtocol
from pushrelay.core.interfaces.transport import TransportProtocol
from pushrelay.infrastructure.persistence.history_store import (
    FileHistoryStore,
    InMemoryHistoryStore,
)
from pushrelay.infrastructure.rendering.log_renderer import LogRenderer
from pushrelay.infrastructure.transport.fcm_transport import FcmTransport
from pushrelay.infrastructure.transport.in_memory_transport import InMemoryTransport

logger = structlog.get_logger(__name__)


class InfrastructureBuilder:
    """Builder for relay infrastructure components."""

    def __init__(self) -> None:
        self._logger = logger.bind(component="InfrastructureBuilder")

    def build_transport(self, schema: RelayConfigSchema) -> TransportProtocol:
        """Create the transport for ``schema.transport.backend``."""
        transport_config = schema.transport
        if transport_config.backend == "memory":
            self._logger.debug("transport.created", backend="memory")
            return InMemoryTransport(token=transport_config.device_token or "in-memory-token")
        self._logger.debug(
            "transport.created",
            backend="fcm",
            endpoint=transport_config.endpoint,
            has_key=bool(schema.server_key),
        )
        return FcmTransport(
            schema.server_key,
            endpoint=transport_config.endpoint,
            device_token=transport_config.device_token,
            timeout_seconds=transport_config.timeout_seconds,
        )

    def build_history_store(self, history: HistorySchema) -> HistoryStoreProtocol | None:
        """Create the history store; ``None`` when history is disabled."""
        if history.backend == "disabled":
            return None
        if history.backend == "file":
            self._logger.debug("history.created", backend="file", work_dir=history.work_dir)
            return FileHistoryStore(work_dir=history.work_dir)
        self._logger.debug("history.created", backend="memory")
        return InMemoryHistoryStore()

    def build_renderer(self) -> RendererProtocol:
        return LogRenderer()

    def build_relay(
        self,
        schema: RelayConfigSchema,
        *,
        renderer: RendererProtocol | None = None,
        hooks: NotificationHooks | None = None,
        current_user_id: Callable[[], str | None] | None = None,
    ) -> tuple[NotificationRelay, RelayConfig]:
        """Create a relay and the runtime configuration to ``init`` it with."""
        config = to_relay_config(
            schema,
            history=self.build_history_store(schema.history),
            hooks=hooks,
            current_user_id=current_user_id,
        )
        relay = NotificationRelay(
            self.build_transport(schema),
            renderer or self.build_renderer(),
        )
        return relay, config
