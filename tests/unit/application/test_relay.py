"""Tests for the NotificationRelay facade."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from pushrelay.application.relay import NotificationRelay
from pushrelay.core.domain.channel import Channel, GroupChannel
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.errors import (
    ChannelSetupError,
    NotInitializedError,
    PermissionDeniedError,
)
from pushrelay.core.domain.events import RelayEventType
from pushrelay.core.interfaces.hooks import CallbackHooks
from pushrelay.infrastructure.persistence.history_store import InMemoryHistoryStore
from pushrelay.infrastructure.rendering.log_renderer import LogRenderer
from pushrelay.infrastructure.transport.in_memory_transport import InMemoryTransport


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def renderer() -> LogRenderer:
    return LogRenderer()


@pytest.fixture
def relay(transport, renderer, sleep_recorder) -> NotificationRelay:
    return NotificationRelay(transport, renderer, sleep=sleep_recorder)


class TestInit:
    """Initialisation."""

    async def test_init_registers_channels_and_icon(self, relay, renderer, transport) -> None:
        config = RelayConfig(
            server_key="key",
            icon="ic_notification",
            group_channels=(GroupChannel(id="g", name="Group"),),
            channels=(Channel(id="promo", name="Promo", group_id="g", show_badge=False),),
        )

        await relay.init(config)

        assert relay.is_initialized
        assert relay.config is config
        assert renderer.icon == "ic_notification"
        assert set(renderer.channels) == {"general", "promo"}
        assert "g" in renderer.groups
        assert transport.permission_requests == [{"badge": True, "sound": True}]

    async def test_init_is_idempotent(self, relay, transport) -> None:
        await relay.init(RelayConfig())
        await relay.init(RelayConfig(server_key="other"))
        assert len(transport.permission_requests) == 1
        assert relay.config.server_key == ""

    async def test_transport_not_ready(self, renderer) -> None:
        relay = NotificationRelay(InMemoryTransport(ready=False), renderer)
        with pytest.raises(NotInitializedError):
            await relay.init(RelayConfig())
        assert not relay.is_initialized

    async def test_permission_denied(self, renderer) -> None:
        relay = NotificationRelay(InMemoryTransport(permission_granted=False), renderer)
        with pytest.raises(PermissionDeniedError):
            await relay.init(RelayConfig())
        assert not relay.is_initialized

    async def test_channel_setup_failure(self, relay) -> None:
        config = RelayConfig(channels=(Channel(id="promo", name="Promo", group_id="missing"),))
        with pytest.raises(ChannelSetupError):
            await relay.init(config)
        assert not relay.is_initialized

    async def test_launch_payload_is_replayed_as_tap(self, transport, make_message) -> None:
        message = make_message()
        renderer = LogRenderer(launch_payload=message.to_transport_data()["content"])
        on_selected = AsyncMock()
        relay = NotificationRelay(transport, renderer)
        subscription = relay.events()

        await relay.init(RelayConfig(hooks=CallbackHooks(on_selected=on_selected)))

        on_selected.assert_awaited_once()
        subscription.close()
        assert [event.type async for event in subscription] == [RelayEventType.TAPPED]


class TestOperationsRequireInit:
    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("push", ("message",)),
            ("show_notification", ("message",)),
            ("cancel", (1,)),
            ("cancel_all", ()),
            ("subscribe_to_topic", ("news",)),
            ("unsubscribe_from_topic", ("news",)),
        ],
    )
    async def test_raises_not_initialized(self, relay, make_message, operation, args) -> None:
        args = tuple(make_message() if arg == "message" else arg for arg in args)
        with pytest.raises(NotInitializedError):
            await getattr(relay, operation)(*args)


class TestPush:
    async def test_end_to_end(self, relay, transport, sleep_recorder, make_message) -> None:
        history = InMemoryHistoryStore()
        await relay.init(RelayConfig(max_retries=2, history=history))
        transport.fail("dev1", times=1)
        subscription = relay.events()

        report = await relay.push(make_message(recipients=("dev1", "dev2")))
        subscription.close()

        assert transport.attempts == {"dev1": 2, "dev2": 1}
        assert sorted(report.succeeded) == ["dev1", "dev2"]
        assert [event.type async for event in subscription] == [RelayEventType.ADDED]
        assert history.save_count == 1

    async def test_operation_keeps_its_config_snapshot(self, transport, renderer, make_message) -> None:
        gate = asyncio.Event()
        delays: list[float] = []

        async def slow_sleep(seconds: float) -> None:
            delays.append(seconds)
            await gate.wait()

        relay = NotificationRelay(transport, renderer, sleep=slow_sleep)
        await relay.init(RelayConfig(max_retries=3, retry_delay=5.0))
        transport.fail("d1")

        task = asyncio.create_task(relay.push(make_message(recipients=("d1",))))
        await asyncio.sleep(0)
        relay.configure(relay.config.replace(max_retries=10))
        gate.set()
        await task

        assert transport.attempts["d1"] == 3
        assert delays == [5.0, 5.0]
        assert relay.config.max_retries == 10

    async def test_show_notification_renders_locally(self, relay, renderer, transport, make_message) -> None:
        await relay.init(RelayConfig())
        message = make_message()

        assert await relay.show_notification(message) is True

        assert message.notification_id in renderer.shown
        assert transport.sent == []


class TestInbound:
    async def test_transport_delivery_reaches_relay(self, relay, transport, renderer, make_message) -> None:
        await relay.init(RelayConfig(hooks=CallbackHooks(should_show=lambda m: True)))
        subscription = relay.events()
        message = make_message()

        await transport.deliver(message.to_transport_data())
        subscription.close()

        assert message.notification_id in renderer.shown
        types = [event.type async for event in subscription]
        assert types == [RelayEventType.ADDED, RelayEventType.RECEIVED]

    async def test_tray_tap_reaches_relay(self, relay, transport, renderer, make_message) -> None:
        await relay.init(RelayConfig())
        message = make_message()
        await relay.show_notification(message)
        subscription = relay.events()

        await renderer.select(message.notification_id)
        subscription.close()

        events = [event async for event in subscription]
        assert [event.type for event in events] == [RelayEventType.TAPPED]
        assert events[0].message.id == message.id

    async def test_token_refresh_calls_hook(self, relay, transport) -> None:
        on_token_refresh = AsyncMock()
        await relay.init(RelayConfig(hooks=CallbackHooks(on_token_refresh=on_token_refresh)))

        await transport.refresh_token("token-2")

        on_token_refresh.assert_awaited_once_with("token-2")
        assert await relay.get_token() == "token-2"


class TestTopicsAndTray:
    async def test_topic_tracking_and_dispose(self, relay, transport) -> None:
        await relay.init(RelayConfig())
        await relay.subscribe_to_topic("news")
        await relay.subscribe_to_topic("sport")
        await relay.unsubscribe_from_topic("sport")

        assert transport.topics == {"news"}
        assert relay.subscribed_topics == frozenset({"news"})

        await relay.dispose()

        assert transport.topics == set()
        assert not relay.is_initialized
        assert relay.config.history is None
        assert relay.config.max_retries == 3

    async def test_cancel(self, relay, renderer, make_message) -> None:
        await relay.init(RelayConfig())
        first, second = make_message(id="a"), make_message(id="b")
        await relay.show_notification(first)
        await relay.show_notification(second)

        await relay.cancel(first.notification_id)
        assert set(renderer.shown) == {second.notification_id}

        await relay.cancel_all()
        assert renderer.shown == {}

    async def test_check_permission(self, relay) -> None:
        assert await relay.check_permission() is True

    async def test_dispose_resets_even_when_transport_close_fails(
        self, relay, transport
    ) -> None:
        await relay.init(RelayConfig(max_retries=7))
        transport.close = AsyncMock(side_effect=RuntimeError("session already gone"))

        with pytest.raises(RuntimeError):
            await relay.dispose()

        assert not relay.is_initialized
        assert relay.config.max_retries == 3

    async def test_dispose_closes_event_stream(self, relay) -> None:
        await relay.init(RelayConfig())
        subscription = relay.events()
        await relay.dispose()
        assert [event async for event in subscription] == []


class TestHistory:
    @pytest.fixture
    def history(self) -> InMemoryHistoryStore:
        return InMemoryHistoryStore()

    async def test_pass_throughs_use_current_user(self, relay, history, make_message) -> None:
        relay.configure(RelayConfig(history=history, current_user_id=lambda: "u1"))
        mine = make_message(id="a", targeted_user_id="u1")
        other = make_message(id="b", targeted_user_id="u2")
        await relay.save_notification(mine)
        await relay.save_notification(other)

        assert [m.id for m in await relay.query()] == ["a"]
        assert await relay.count_unseen() == 1

        await relay.mark_all_as_seen()
        assert await relay.count_unseen() == 0
        assert await relay.count_unseen("u2") == 1

        await relay.mark_as_seen("b")
        assert (await relay.get_notification("b")).seen is True

        await relay.delete_notification("a")
        assert await relay.get_notification("a") is None

    async def test_disabled_history_is_a_silent_no_op(self, relay, make_message) -> None:
        await relay.save_notification(make_message(id="a"))
        assert await relay.get_notification("a") is None
        assert await relay.query("u1") == []
        assert await relay.count_unseen() == 0
        assert [count async for count in relay.watch_unseen()] == [0]

    async def test_watch_unseen_streams_changes(self, relay, history, make_message) -> None:
        relay.configure(RelayConfig(history=history))
        counts: list[int] = []

        async def watch() -> None:
            async for count in relay.watch_unseen():
                counts.append(count)
                if len(counts) == 3:
                    return

        task = asyncio.create_task(watch())
        await asyncio.sleep(0)
        await relay.save_notification(make_message(id="a"))
        await relay.mark_as_seen("a")
        await asyncio.wait_for(task, timeout=1)

        assert counts == [0, 1, 0]
