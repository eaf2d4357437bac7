"""Tests for domain error types."""

import pytest

from pushrelay.core.domain.errors import (
    ChannelSetupError,
    DecodeError,
    InvalidMessageError,
    RelayError,
    RenderError,
    TransportError,
    TransportErrorKind,
)


class TestRelayError:
    def test_create_basic(self) -> None:
        err = RelayError(message="Something failed")
        assert err.message == "Something failed"
        assert err.code == "relay_error"
        assert err.details == {}
        assert str(err) == "Something failed"

    def test_can_be_raised_and_caught(self) -> None:
        with pytest.raises(RelayError) as exc_info:
            raise InvalidMessageError("bad message")
        assert exc_info.value.code == "invalid_message"


class TestTransportError:
    def test_carries_kind_and_target(self) -> None:
        err = TransportError("timeout", kind=TransportErrorKind.CONNECT_TIMEOUT, target="d1")
        assert err.kind is TransportErrorKind.CONNECT_TIMEOUT
        assert err.target == "d1"
        assert err.details == {"kind": "connect_timeout", "target": "d1"}
        assert err.code == "transport_error"

    def test_default_kind_is_unknown(self) -> None:
        assert TransportError("x").kind is TransportErrorKind.UNKNOWN


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (DecodeError("x"), "decode_error"),
        (RenderError("x", notification_id=3), "render_error"),
        (ChannelSetupError("x"), "channel_setup_error"),
    ],
)
def test_subclass_codes(error: RelayError, code: str) -> None:
    assert error.code == code
    assert isinstance(error, RelayError)


def test_render_error_records_notification_id() -> None:
    assert RenderError("x", notification_id=3).details == {"notification_id": 3}
