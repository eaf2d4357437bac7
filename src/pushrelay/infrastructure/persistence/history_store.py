"""History store adapters implementing HistoryStoreProtocol.

Keeps one record per message id holding the full serialized message.
``isSeen`` is the only field changed after creation. Storage failures are
logged, never raised, so a broken store cannot fail a dispatch.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles
import structlog

from pushrelay.core.domain.errors import DecodeError
from pushrelay.core.domain.message import NotificationMessage, decode_message


class UnseenCountWatchers:
    """Fan-out of unseen counts to ``watch_unseen`` iterators."""

    def __init__(self) -> None:
        self._queues: set[asyncio.Queue[int]] = set()

    @property
    def active(self) -> int:
        return len(self._queues)

    def push(self, count: int) -> None:
        for queue in tuple(self._queues):
            queue.put_nowait(count)

    async def watch(self, initial: int) -> AsyncIterator[int]:
        """Yield ``initial``, then every pushed count that differs from the last one."""
        queue: asyncio.Queue[int] = asyncio.Queue()
        self._queues.add(queue)
        try:
            last = initial
            yield last
            while True:
                count = await queue.get()
                if count != last:
                    last = count
                    yield count
        finally:
            self._queues.discard(queue)


def _belongs(message: NotificationMessage, user_id: str | None) -> bool:
    return message.targeted_user_id == user_id


def _newest_first(messages: list[NotificationMessage]) -> list[NotificationMessage]:
    return sorted(messages, key=lambda message: message.created_at, reverse=True)


class FileHistoryStore:
    """File-based history store.

    Stores one JSON file per message under ``{work_dir}/history/{id}.json``.
    """

    def __init__(self, work_dir: str = ".pushrelay") -> None:
        self._base_dir = Path(work_dir) / "history"
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, asyncio.Lock] = {}
        self._watchers = UnseenCountWatchers()
        self._logger = structlog.get_logger()

    async def save(self, message: NotificationMessage) -> None:
        """Create or overwrite the record for ``message.id``."""
        await self._write(message)
        await self._notify()

    async def get(self, message_id: str) -> NotificationMessage | None:
        path = self._record_path(message_id)
        if not path.exists():
            return None
        async with self._get_lock(str(path)):
            return await self._read(path)

    async def delete(self, message_id: str) -> None:
        path = self._record_path(message_id)
        async with self._get_lock(str(path)):
            if not path.exists():
                return
            try:
                path.unlink()
            except OSError as exc:
                self._logger.error(
                    "history.delete_failed", message_id=message_id, error=str(exc)
                )
                return
        await self._notify()

    async def mark_seen(self, message_id: str) -> None:
        message = await self.get(message_id)
        if message is None:
            self._logger.warning("history.mark_seen_missing", message_id=message_id)
            return
        if message.seen:
            return
        await self._write(message.copy_with(seen=True))
        await self._notify()

    async def mark_all_seen(self, user_id: str | None) -> None:
        changed = 0
        for message in await self._load_all():
            if _belongs(message, user_id) and not message.seen:
                await self._write(message.copy_with(seen=True))
                changed += 1
        self._logger.debug("history.marked_all_seen", user_id=user_id, count=changed)
        if changed:
            await self._notify()

    async def query_by_user(self, user_id: str | None) -> list[NotificationMessage]:
        return _newest_first([m for m in await self._load_all() if _belongs(m, user_id)])

    async def count_unseen(self, user_id: str | None = None) -> int:
        return sum(
            1
            for message in await self._load_all()
            if not message.seen and (user_id is None or _belongs(message, user_id))
        )

    async def watch_unseen(self) -> AsyncIterator[int]:
        async for count in self._watchers.watch(await self.count_unseen()):
            yield count

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _notify(self) -> None:
        if self._watchers.active:
            self._watchers.push(await self.count_unseen())

    async def _write(self, message: NotificationMessage) -> None:
        path = self._record_path(message.id)
        temp_path = path.with_suffix(".json.tmp")
        async with self._get_lock(str(path)):
            try:
                async with aiofiles.open(temp_path, "w", encoding="utf-8") as handle:
                    await handle.write(
                        json.dumps(message.to_dict(), indent=2, ensure_ascii=False, default=str)
                    )
                temp_path.replace(path)
            except OSError as exc:
                self._logger.error("history.save_failed", message_id=message.id, error=str(exc))

    async def _read(self, path: Path) -> NotificationMessage | None:
        try:
            async with aiofiles.open(path, encoding="utf-8") as handle:
                return decode_message(await handle.read())
        except (OSError, DecodeError) as exc:
            self._logger.error("history.read_failed", path=str(path), error=str(exc))
            return None

    async def _load_all(self) -> list[NotificationMessage]:
        messages = []
        for path in sorted(self._base_dir.glob("*.json")):
            message = await self._read(path)
            if message is not None:
                messages.append(message)
        return messages

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def _record_path(self, message_id: str) -> Path:
        safe_id = message_id.replace("/", "_").replace("\\", "_")
        return self._base_dir / f"{safe_id}.json"


class InMemoryHistoryStore:
    """In-memory history store for tests and short-lived processes."""

    def __init__(self) -> None:
        self._records: dict[str, NotificationMessage] = {}
        self._watchers = UnseenCountWatchers()
        self.save_count = 0

    async def save(self, message: NotificationMessage) -> None:
        self._records[message.id] = message
        self.save_count += 1
        self._notify()

    async def get(self, message_id: str) -> NotificationMessage | None:
        return self._records.get(message_id)

    async def delete(self, message_id: str) -> None:
        if self._records.pop(message_id, None) is not None:
            self._notify()

    async def mark_seen(self, message_id: str) -> None:
        message = self._records.get(message_id)
        if message is not None and not message.seen:
            self._records[message_id] = message.copy_with(seen=True)
            self._notify()

    async def mark_all_seen(self, user_id: str | None) -> None:
        for message_id, message in list(self._records.items()):
            if _belongs(message, user_id) and not message.seen:
                self._records[message_id] = message.copy_with(seen=True)
        self._notify()

    async def query_by_user(self, user_id: str | None) -> list[NotificationMessage]:
        return _newest_first([m for m in self._records.values() if _belongs(m, user_id)])

    async def count_unseen(self, user_id: str | None = None) -> int:
        return self._unseen(user_id)

    async def watch_unseen(self) -> AsyncIterator[int]:
        async for count in self._watchers.watch(self._unseen(None)):
            yield count

    def _unseen(self, user_id: str | None) -> int:
        return sum(
            1
            for message in self._records.values()
            if not message.seen and (user_id is None or _belongs(message, user_id))
        )

    def _notify(self) -> None:
        self._watchers.push(self._unseen(None))


class DisabledHistoryStore:
    """Stand-in used when history is turned off. Every operation is a logged no-op."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger()

    def _skipped(self, operation: str) -> None:
        self._logger.debug("history.disabled", operation=operation)

    async def save(self, message: NotificationMessage) -> None:
        self._skipped("save")

    async def get(self, message_id: str) -> NotificationMessage | None:
        self._skipped("get")
        return None

    async def delete(self, message_id: str) -> None:
        self._skipped("delete")

    async def mark_seen(self, message_id: str) -> None:
        self._skipped("mark_seen")

    async def mark_all_seen(self, user_id: str | None) -> None:
        self._skipped("mark_all_seen")

    async def query_by_user(self, user_id: str | None) -> list[NotificationMessage]:
        self._skipped("query_by_user")
        return []

    async def count_unseen(self, user_id: str | None = None) -> int:
        self._skipped("count_unseen")
        return 0

    async def watch_unseen(self) -> AsyncIterator[int]:
        self._skipped("watch_unseen")
        yield 0
