"""Test configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from pushrelay.core.domain.message import NotificationMessage


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_message() -> Callable[..., NotificationMessage]:
    """Factory for valid messages; keyword arguments override the defaults."""

    def _make(**overrides: Any) -> NotificationMessage:
        values: dict[str, Any] = {
            "recipients": ("device-1",),
            "title": "Hello",
            "body": "World",
        }
        values.update(overrides)
        return NotificationMessage(**values)

    return _make
