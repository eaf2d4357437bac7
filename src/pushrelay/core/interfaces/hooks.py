"""Application hook strategy.

Hooks let the host application take part in the notification lifecycle:
decide whether an inbound notification is rendered, and observe received,
selected and token-refresh events.

The default strategy is :class:`SilentHooks`: inbound notifications are
**not** rendered unless the application supplies a ``should_show`` predicate
that returns True.

Usage:
    hooks = CallbackHooks(
        should_show=lambda message: message.channel != "silent",
        on_selected=open_deep_link,
    )
    config = RelayConfig(server_key="...", hooks=hooks)
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from pushrelay.core.domain.message import NotificationMessage

MessageCallback = Callable[[NotificationMessage], Awaitable[None] | None]
ShowPredicate = Callable[[NotificationMessage], Awaitable[bool] | bool]
TokenCallback = Callable[[str], Awaitable[None] | None]


@runtime_checkable
class NotificationHooks(Protocol):
    """Strategy consulted by the relay at each lifecycle point."""

    async def should_show(self, message: NotificationMessage) -> bool:
        """Return True to render an inbound notification in the tray."""
        ...

    async def on_received(self, message: NotificationMessage) -> None:
        """Called for every decoded inbound notification."""
        ...

    async def on_selected(self, message: NotificationMessage) -> None:
        """Called when the user taps a notification."""
        ...

    async def on_token_refresh(self, token: str) -> None:
        """Called when the transport issues a new device token."""
        ...


class SilentHooks:
    """Default hooks: never render inbound notifications, ignore callbacks."""

    async def should_show(self, message: NotificationMessage) -> bool:
        return False

    async def on_received(self, message: NotificationMessage) -> None:
        return None

    async def on_selected(self, message: NotificationMessage) -> None:
        return None

    async def on_token_refresh(self, token: str) -> None:
        return None


class CallbackHooks(SilentHooks):
    """Hooks built from optional plain or async callables.

    A missing ``should_show`` keeps the silent default.
    """

    def __init__(
        self,
        *,
        should_show: ShowPredicate | None = None,
        on_received: MessageCallback | None = None,
        on_selected: MessageCallback | None = None,
        on_token_refresh: TokenCallback | None = None,
    ) -> None:
        self._should_show = should_show
        self._on_received = on_received
        self._on_selected = on_selected
        self._on_token_refresh = on_token_refresh

    async def should_show(self, message: NotificationMessage) -> bool:
        if self._should_show is None:
            return False
        return bool(await _maybe_await(self._should_show(message)))

    async def on_received(self, message: NotificationMessage) -> None:
        if self._on_received is not None:
            await _maybe_await(self._on_received(message))

    async def on_selected(self, message: NotificationMessage) -> None:
        if self._on_selected is not None:
            await _maybe_await(self._on_selected(message))

    async def on_token_refresh(self, token: str) -> None:
        if self._on_token_refresh is not None:
            await _maybe_await(self._on_token_refresh(token))


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result
