"""Tests for NotificationPresenter."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from pushrelay.application.presenter import NotificationPresenter
from pushrelay.core.domain.channel import Channel, Importance
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.events import RelayEventType
from pushrelay.core.domain.message import Schedule
from pushrelay.core.utils.time import utc_now
from pushrelay.infrastructure.messaging.event_bus import BroadcastEventBus
from pushrelay.infrastructure.rendering.log_renderer import LogRenderer


class TestNotificationPresenter:
    @pytest.fixture
    def bus(self) -> BroadcastEventBus:
        return BroadcastEventBus()

    @pytest.fixture
    def renderer(self) -> LogRenderer:
        return LogRenderer()

    @pytest.fixture
    def presenter(self, renderer, bus) -> NotificationPresenter:
        return NotificationPresenter(renderer, bus)

    async def test_show_uses_effective_channel(self, presenter, renderer, make_message) -> None:
        config = RelayConfig(channels=(Channel(id="promo", name="Promo", importance=Importance.HIGH),))
        message = make_message(channel="promo", image_url="https://example.com/a.png")

        assert await presenter.present(message, config) is True

        rendered = renderer.shown[message.notification_id]
        assert rendered.channel.importance is Importance.HIGH
        assert rendered.image_url == "https://example.com/a.png"
        assert json.loads(rendered.payload)["id"] == message.id

    async def test_show_publishes_added(self, presenter, bus, make_message) -> None:
        subscription = bus.subscribe()
        await presenter.present(make_message(), RelayConfig())
        subscription.close()
        assert [event.type async for event in subscription] == [RelayEventType.ADDED]

    async def test_future_schedule_is_scheduled(self, presenter, renderer, make_message) -> None:
        send_at = utc_now() + timedelta(hours=1)
        message = make_message(schedule=Schedule(send_at))

        assert await presenter.present(message, RelayConfig()) is True

        assert renderer.shown == {}
        scheduled = renderer.scheduled[message.notification_id]
        assert scheduled.send_at == send_at
        assert scheduled.timezone == "UTC"

    async def test_past_schedule_is_shown_now(self, presenter, renderer, make_message) -> None:
        message = make_message(schedule=Schedule(utc_now() - timedelta(minutes=5)))
        await presenter.present(message, RelayConfig())
        assert message.notification_id in renderer.shown

    async def test_unknown_timezone_is_contained(self, presenter, renderer, bus, make_message) -> None:
        subscription = bus.subscribe()
        message = make_message(schedule=Schedule(utc_now().replace(tzinfo=None), "Nowhere/Land"))

        assert await presenter.present(message, RelayConfig()) is False

        assert renderer.shown == {}
        subscription.close()
        assert [event async for event in subscription] == []

    async def test_renderer_failure_returns_false(self, bus, make_message) -> None:
        renderer = AsyncMock()
        renderer.show.side_effect = RuntimeError("tray unavailable")
        presenter = NotificationPresenter(renderer, bus)
        assert await presenter.present(make_message(), RelayConfig()) is False
