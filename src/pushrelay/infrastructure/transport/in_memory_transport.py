"""In-process transport for tests, demos and the CLI ``--dry-run`` mode.

Records every successful send and can be scripted to fail a target a number
of times before it succeeds. Inbound payloads and token refreshes are
injected with :meth:`InMemoryTransport.deliver` and
:meth:`InMemoryTransport.refresh_token`.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import structlog

from pushrelay.core.domain.errors import TransportError, TransportErrorKind
from pushrelay.core.interfaces.transport import InboundHandler, TokenRefreshHandler

ALWAYS = -1


@dataclass(frozen=True)
class SentNotification:
    """One accepted send."""

    target: str
    title: str | None
    body: str | None
    data: dict[str, str] = field(default_factory=dict)


class InMemoryTransport:
    """Transport that keeps sends in memory.

    Args:
        token: Device token returned by ``get_token``.
        permission_granted: Answer of ``request_permission``.
        ready: Answer of ``is_ready``.
    """

    def __init__(
        self,
        *,
        token: str | None = "in-memory-token",
        permission_granted: bool = True,
        ready: bool = True,
    ) -> None:
        self._token = token
        self._permission_granted = permission_granted
        self._ready = ready
        self._failures: dict[str, int] = {}
        self._failure_kind: dict[str, TransportErrorKind] = {}
        self._inbound_handler: InboundHandler | None = None
        self._token_handler: TokenRefreshHandler | None = None
        self.sent: list[SentNotification] = []
        self.attempts: dict[str, int] = defaultdict(int)
        self.topics: set[str] = set()
        self.permission_requests: list[dict[str, bool]] = []
        self._logger = structlog.get_logger()

    def fail(
        self,
        target: str,
        times: int = ALWAYS,
        *,
        kind: TransportErrorKind = TransportErrorKind.CONNECTION_ERROR,
    ) -> None:
        """Make the next ``times`` sends to ``target`` fail (``ALWAYS`` for every send)."""
        self._failures[target] = times
        self._failure_kind[target] = kind

    def is_ready(self) -> bool:
        return self._ready

    async def request_permission(self, *, badge: bool, sound: bool) -> bool:
        self.permission_requests.append({"badge": badge, "sound": sound})
        return self._permission_granted

    async def check_permission(self) -> bool:
        return self._permission_granted

    async def send(
        self,
        target: str,
        *,
        title: str | None,
        body: str | None,
        data: dict[str, str],
    ) -> None:
        self.attempts[target] += 1
        remaining = self._failures.get(target, 0)
        if remaining:
            if remaining > 0:
                self._failures[target] = remaining - 1
            raise TransportError(
                f"Scripted failure for {target}",
                kind=self._failure_kind.get(target, TransportErrorKind.CONNECTION_ERROR),
                target=target,
            )
        self.sent.append(SentNotification(target=target, title=title, body=body, data=dict(data)))
        self._logger.debug("memory_transport.sent", target=target)

    def sent_to(self, target: str) -> list[SentNotification]:
        return [item for item in self.sent if item.target == target]

    async def subscribe_topic(self, topic: str) -> None:
        self.topics.add(topic)

    async def unsubscribe_topic(self, topic: str) -> None:
        self.topics.discard(topic)

    async def get_token(self) -> str | None:
        return self._token

    def listen(self, handler: InboundHandler) -> None:
        self._inbound_handler = handler

    def on_token_refresh(self, handler: TokenRefreshHandler) -> None:
        self._token_handler = handler

    async def deliver(self, raw_payload: Any) -> None:
        """Simulate an inbound payload arriving from the network."""
        if self._inbound_handler is not None:
            await self._inbound_handler(raw_payload)

    async def refresh_token(self, token: str) -> None:
        """Simulate the platform issuing a new device token."""
        self._token = token
        if self._token_handler is not None:
            await self._token_handler(token)
