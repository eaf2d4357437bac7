"""Tests for FcmTransport with a mocked aiohttp session."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from pushrelay.core.domain.errors import TransportError, TransportErrorKind
from pushrelay.infrastructure.transport.fcm_transport import FcmTransport


def _mock_response(status: int = 200, body: str = "") -> MagicMock:
    """Create a mock aiohttp response context manager."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=body)
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def _mock_session(response_ctx=None, error: Exception | None = None) -> MagicMock:
    session = MagicMock()
    session.closed = False
    if error is not None:
        session.post = MagicMock(side_effect=error)
    else:
        session.post = MagicMock(return_value=response_ctx)
    return session


class TestSend:
    async def test_posts_notification_with_server_key(self) -> None:
        transport = FcmTransport("secret", endpoint="https://fcm.test/send")
        session = _mock_session(_mock_response(body=json.dumps({"success": 1, "failure": 0})))

        with patch.object(transport, "_get_session", AsyncMock(return_value=session)):
            await transport.send(
                "device-1", title="Hi", body="There", data={"content": "{}"}
            )

        args, kwargs = session.post.call_args
        assert args == ("https://fcm.test/send",)
        assert kwargs["headers"]["Authorization"] == "key=secret"
        assert kwargs["json"] == {
            "to": "device-1",
            "notification": {"title": "Hi", "body": "There"},
            "data": {"content": "{}"},
        }

    async def test_http_error_status(self) -> None:
        transport = FcmTransport("secret")
        session = _mock_session(_mock_response(status=401, body="Unauthorized"))

        with patch.object(transport, "_get_session", AsyncMock(return_value=session)):
            with pytest.raises(TransportError) as exc_info:
                await transport.send("device-1", title="Hi", body=None, data={})

        assert exc_info.value.kind is TransportErrorKind.UNKNOWN
        assert exc_info.value.details["status"] == 401
        assert exc_info.value.target == "device-1"

    async def test_failure_result_in_body(self) -> None:
        transport = FcmTransport("secret")
        body = json.dumps({"success": 0, "failure": 1, "results": [{"error": "NotRegistered"}]})
        session = _mock_session(_mock_response(body=body))

        with patch.object(transport, "_get_session", AsyncMock(return_value=session)):
            with pytest.raises(TransportError, match="NotRegistered"):
                await transport.send("device-1", title="Hi", body=None, data={})

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (aiohttp.ConnectionTimeoutError(), TransportErrorKind.CONNECT_TIMEOUT),
            (aiohttp.SocketTimeoutError(), TransportErrorKind.RECEIVE_TIMEOUT),
            (TimeoutError(), TransportErrorKind.SEND_TIMEOUT),
            (aiohttp.ClientConnectionError("refused"), TransportErrorKind.CONNECTION_ERROR),
            (aiohttp.ClientPayloadError("bad payload"), TransportErrorKind.UNKNOWN),
        ],
    )
    async def test_error_classification(self, error, kind) -> None:
        transport = FcmTransport("secret")
        session = _mock_session(error=error)

        with patch.object(transport, "_get_session", AsyncMock(return_value=session)):
            with pytest.raises(TransportError) as exc_info:
                await transport.send("device-1", title="Hi", body=None, data={})

        assert exc_info.value.kind is kind
        assert exc_info.value.__cause__ is error


class TestTopicsAndTokens:
    async def test_subscribe_uses_instance_id_relation(self) -> None:
        transport = FcmTransport("secret", device_token="tok")
        session = _mock_session(_mock_response())

        with patch.object(transport, "_get_session", AsyncMock(return_value=session)):
            await transport.subscribe_topic("news")
            await transport.unsubscribe_topic("news")

        subscribe_call, unsubscribe_call = session.post.call_args_list
        assert subscribe_call.args[0] == "https://iid.googleapis.com/iid/v1/tok/rel/topics/news"
        assert unsubscribe_call.args[0] == "https://iid.googleapis.com/iid/v1:batchRemove"
        assert unsubscribe_call.kwargs["json"] == {
            "to": "/topics/news",
            "registration_tokens": ["tok"],
        }

    async def test_topics_need_a_device_token(self) -> None:
        with pytest.raises(TransportError):
            await FcmTransport("secret").subscribe_topic("news")

    async def test_ready_and_permission_follow_server_key(self) -> None:
        assert not FcmTransport("").is_ready()
        assert await FcmTransport("").request_permission(badge=True, sound=True) is False
        assert await FcmTransport("k").check_permission() is True

    async def test_token_refresh_and_inbound_delivery(self) -> None:
        transport = FcmTransport("secret")
        on_token = AsyncMock()
        on_message = AsyncMock()
        transport.on_token_refresh(on_token)
        transport.listen(on_message)

        await transport.update_token("tok-2")
        await transport.deliver({"content": "{}"})

        on_token.assert_awaited_once_with("tok-2")
        on_message.assert_awaited_once_with({"content": "{}"})
        assert await transport.get_token() == "tok-2"

    async def test_close_closes_session(self) -> None:
        transport = FcmTransport("secret")
        session = MagicMock()
        session.closed = False
        session.close = AsyncMock()
        transport._session = session

        await transport.close()

        session.close.assert_awaited_once()
