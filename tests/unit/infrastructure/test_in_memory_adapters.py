"""Tests for the in-memory transport and the log renderer."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from pushrelay.core.domain.channel import Channel, EffectiveChannel, GroupChannel, Importance
from pushrelay.core.domain.errors import RenderError, TransportError, TransportErrorKind
from pushrelay.core.utils.time import utc_now
from pushrelay.infrastructure.rendering.log_renderer import LogRenderer
from pushrelay.infrastructure.transport.in_memory_transport import InMemoryTransport


@pytest.fixture
def effective() -> EffectiveChannel:
    return EffectiveChannel(
        id="general",
        name="General",
        importance=Importance.DEFAULT,
        play_sound=True,
        show_badge=True,
        enable_vibration=True,
        enable_lights=False,
    )


class TestInMemoryTransport:
    async def test_records_sends(self) -> None:
        transport = InMemoryTransport()
        await transport.send("d1", title="t", body="b", data={"content": "{}"})
        assert transport.sent_to("d1")[0].data == {"content": "{}"}
        assert transport.attempts["d1"] == 1

    async def test_scripted_failures(self) -> None:
        transport = InMemoryTransport()
        transport.fail("d1", times=2, kind=TransportErrorKind.SEND_TIMEOUT)

        for _ in range(2):
            with pytest.raises(TransportError) as exc_info:
                await transport.send("d1", title="t", body=None, data={})
            assert exc_info.value.kind is TransportErrorKind.SEND_TIMEOUT
        await transport.send("d1", title="t", body=None, data={})

        assert transport.attempts["d1"] == 3
        assert len(transport.sent) == 1

    async def test_topics(self) -> None:
        transport = InMemoryTransport()
        await transport.subscribe_topic("news")
        await transport.unsubscribe_topic("missing")
        assert transport.topics == {"news"}


class TestLogRenderer:
    async def test_show_cancel(self, effective) -> None:
        renderer = LogRenderer()
        await renderer.show(1, title="t", body="b", channel=effective, payload="{}")
        await renderer.show(2, title="t", body="b", channel=effective, payload="{}")

        await renderer.cancel(1)
        assert set(renderer.shown) == {2}

        await renderer.cancel_all()
        assert renderer.shown == {}

    async def test_shown_log_names_sound_resource(self, effective) -> None:
        logger = MagicMock()
        renderer = LogRenderer(logger=logger)
        ringing = EffectiveChannel(**{**effective.__dict__, "sound": "ding.mp3"})

        await renderer.show(1, title="t", body=None, channel=ringing, payload="{}")

        assert logger.info.call_args.kwargs["sound"] == "ding"

    async def test_schedule_then_cancel(self, effective) -> None:
        renderer = LogRenderer()
        send_at = utc_now() + timedelta(hours=1)
        await renderer.schedule(
            5, title="t", body=None, channel=effective, payload="{}", send_at=send_at, timezone="UTC"
        )
        assert renderer.scheduled[5].send_at == send_at
        await renderer.cancel(5)
        assert renderer.scheduled == {}

    async def test_channel_group_must_exist(self, effective) -> None:
        renderer = LogRenderer()
        channel = Channel(id="promo", name="Promo", group_id="g")
        grouped = EffectiveChannel(**{**effective.__dict__, "id": "promo", "group_id": "g"})

        with pytest.raises(RenderError):
            await renderer.create_channel(channel, grouped)

        await renderer.create_channel_group(GroupChannel(id="g", name="Group"))
        await renderer.create_channel(channel, grouped)
        assert renderer.channels["promo"].group_id == "g"

    async def test_select_invokes_handler_with_payload(self, effective) -> None:
        renderer = LogRenderer()
        handler = AsyncMock()
        renderer.set_selection_handler(handler)
        await renderer.show(1, title="t", body=None, channel=effective, payload='{"id": "x"}')

        await renderer.select(1)

        handler.assert_awaited_once_with('{"id": "x"}')
        assert renderer.shown == {}
        with pytest.raises(RenderError):
            await renderer.select(1)

    async def test_launch_payload_is_returned_once(self) -> None:
        renderer = LogRenderer(launch_payload="payload")
        assert await renderer.launch_payload() == "payload"
        assert await renderer.launch_payload() is None
