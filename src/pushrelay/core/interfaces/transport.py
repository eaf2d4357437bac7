"""Protocol definition for the push-messaging transport.

The transport owns everything device- and network-specific: credentials,
tokens, topic relations and the actual HTTP (or SDK) send. The dispatch
engine only needs :meth:`TransportProtocol.send`; the relay facade uses the
rest during initialisation and for topic management.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

InboundHandler = Callable[[Any], Awaitable[None]]
TokenRefreshHandler = Callable[[str], Awaitable[None]]


class TransportProtocol(Protocol):
    """Push-messaging transport consumed by the relay."""

    def is_ready(self) -> bool:
        """Return True once credentials/SDK context are available."""
        ...

    async def request_permission(self, *, badge: bool, sound: bool) -> bool:
        """Ask the platform for notification permission.

        Returns:
            True if notifications are authorized.
        """
        ...

    async def check_permission(self) -> bool:
        """Return the current authorization status without prompting."""
        ...

    async def send(
        self,
        target: str,
        *,
        title: str | None,
        body: str | None,
        data: dict[str, str],
    ) -> None:
        """Deliver one notification to one target.

        Args:
            target: Device registration token or ``/topics/<name>``.
            title: Visible title.
            body: Visible body.
            data: Data payload carried alongside the notification.

        Raises:
            TransportError: If the attempt failed. Every failure is retryable.
        """
        ...

    async def subscribe_topic(self, topic: str) -> None:
        """Subscribe this device to ``topic``."""
        ...

    async def unsubscribe_topic(self, topic: str) -> None:
        """Unsubscribe this device from ``topic``."""
        ...

    async def get_token(self) -> str | None:
        """Return this device's registration token, if any."""
        ...

    def listen(self, handler: InboundHandler) -> None:
        """Register the callback invoked with every raw inbound payload."""
        ...

    def on_token_refresh(self, handler: TokenRefreshHandler) -> None:
        """Register the callback invoked when the device token changes."""
        ...
