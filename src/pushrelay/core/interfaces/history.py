"""
History Store Protocol

Defines the contract for persisting notification history. One record is kept
per message id holding the full serialized message; ``isSeen`` is the only
field changed after creation.

Error Handling:
    Implementations log storage failures instead of raising them. A disabled
    store must be substitutable without changing dispatch behaviour.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from pushrelay.core.domain.message import NotificationMessage


class HistoryStoreProtocol(Protocol):
    """Persistence for delivered notifications."""

    async def save(self, message: NotificationMessage) -> None:
        """Create or overwrite the record for ``message.id``."""
        ...

    async def get(self, message_id: str) -> NotificationMessage | None:
        """Return the stored message, or None."""
        ...

    async def delete(self, message_id: str) -> None:
        """Delete the record. Missing records are ignored."""
        ...

    async def mark_seen(self, message_id: str) -> None:
        """Set ``isSeen`` on one record."""
        ...

    async def mark_all_seen(self, user_id: str | None) -> None:
        """Set ``isSeen`` on every unseen record of ``user_id``."""
        ...

    async def query_by_user(self, user_id: str | None) -> list[NotificationMessage]:
        """Messages of ``user_id`` ordered by ``created_at`` descending."""
        ...

    async def count_unseen(self, user_id: str | None = None) -> int:
        """Number of unseen records (optionally for one user)."""
        ...

    def watch_unseen(self) -> AsyncIterator[int]:
        """Yield the unseen count now and after every change."""
        ...
