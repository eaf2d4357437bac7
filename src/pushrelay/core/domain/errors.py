"""Domain-specific exception types for pushrelay."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


@dataclass
class RelayError(Exception):
    """Base exception for pushrelay domain errors."""

    message: str
    code: str = "relay_error"
    details: Dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.details is None:
            self.details = {}


class InvalidMessageError(RelayError):
    """Raised when a notification violates its construction contract."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="invalid_message", details=details)


class NotInitializedError(RelayError):
    """Raised when a dispatch operation runs before ``init``."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="not_initialized", details=details)


class PermissionDeniedError(RelayError):
    """Raised when the platform or the user refused a required permission."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="permission_denied", details=details)


class TransportErrorKind(str, Enum):
    """Classification of a failed send attempt. Used for logging only."""

    CONNECTION_ERROR = "connection_error"
    CONNECT_TIMEOUT = "connect_timeout"
    SEND_TIMEOUT = "send_timeout"
    RECEIVE_TIMEOUT = "receive_timeout"
    UNKNOWN = "unknown"


class TransportError(RelayError):
    """A single delivery attempt failed. Always retryable."""

    def __init__(
        self,
        message: str,
        *,
        kind: TransportErrorKind = TransportErrorKind.UNKNOWN,
        target: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        details.setdefault("kind", kind.value)
        if target:
            details.setdefault("target", target)
        self.kind = kind
        self.target = target
        super().__init__(message=message, code="transport_error", details=details)


class DecodeError(RelayError):
    """Raised for malformed inbound payloads."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="decode_error", details=details)


class RenderError(RelayError):
    """Raised when the platform renderer fails to display a notification."""

    def __init__(
        self,
        message: str,
        *,
        notification_id: int | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if notification_id is not None:
            details.setdefault("notification_id", notification_id)
        super().__init__(message=message, code="render_error", details=details)


class ChannelSetupError(RelayError):
    """Raised when channel registration fails during ``init``."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="channel_setup_error", details=details)


class ConfigError(RelayError):
    """Raised for invalid relay configuration."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="config_error", details=details)


class DeliveryStateError(RelayError):
    """Raised on an illegal per-target state transition."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="delivery_state_error", details=details)
