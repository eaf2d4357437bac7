"""Relay configuration value.

A :class:`RelayConfig` is immutable and passed explicitly to every core
operation. Replacing the configuration means building a new value
(:meth:`RelayConfig.replace`); operations already running keep the snapshot
they started with.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from pushrelay.core.domain.channel import Channel, GroupChannel
from pushrelay.core.domain.errors import ConfigError
from pushrelay.core.interfaces.hooks import NotificationHooks, SilentHooks

if TYPE_CHECKING:
    from pushrelay.core.interfaces.history import HistoryStoreProtocol

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 5.0


@dataclass(frozen=True)
class RelayConfig:
    """Process settings for one relay.

    Attributes:
        server_key: Transport credential (FCM server key).
        icon: Default tray icon resource.
        max_retries: Attempts per target; 0 still means one attempt.
        retry_delay: Seconds to wait between attempts of one target.
        retry_backoff: Multiplier applied to ``retry_delay`` per retry
            (1.0 keeps the delay constant).
        default_channel: Channel used for unknown or missing channel ids and
            as the source of inherited display flags.
        channels: Additional channels, unique by id.
        group_channels: Channel groups registered before the channels.
        current_user_id: Accessor for the signed-in user, used by history
            queries when no user id is given.
        hooks: Application hook strategy.
        history: History store; ``None`` disables history.
        log_level: Log level for the relay loggers.
    """

    server_key: str = ""
    icon: str = ""
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS
    retry_backoff: float = 1.0
    default_channel: Channel = field(default_factory=Channel.default)
    channels: tuple[Channel, ...] = ()
    group_channels: tuple[GroupChannel, ...] = ()
    current_user_id: Callable[[], str | None] | None = None
    hooks: NotificationHooks = field(default_factory=SilentHooks)
    history: "HistoryStoreProtocol | None" = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", tuple(self.channels))
        object.__setattr__(self, "group_channels", tuple(self.group_channels))
        if self.max_retries < 0:
            raise ConfigError(
                "max_retries must be >= 0", details={"max_retries": self.max_retries}
            )
        if self.retry_delay < 0:
            raise ConfigError(
                "retry_delay must be >= 0", details={"retry_delay": self.retry_delay}
            )
        if self.retry_backoff <= 0:
            raise ConfigError(
                "retry_backoff must be > 0", details={"retry_backoff": self.retry_backoff}
            )

    @classmethod
    def defaults(cls) -> "RelayConfig":
        """Return the configuration used before ``init`` and after ``dispose``."""
        return cls()

    @property
    def max_attempts(self) -> int:
        """Total attempts per target."""
        return max(1, self.max_retries)

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (2-based; attempt 1 never waits)."""
        if attempt <= 1:
            return 0.0
        return self.retry_delay * (self.retry_backoff ** (attempt - 2))

    def merged_channels(self) -> list[Channel]:
        """Configured channels with unset display flags taken from the default."""
        return [channel.merged_over(self.default_channel) for channel in self.channels]

    def resolve_user_id(self, user_id: str | None = None) -> str | None:
        """Return ``user_id`` or the current user from the accessor."""
        if user_id is not None:
            return user_id
        if self.current_user_id is None:
            return None
        return self.current_user_id()

    def replace(self, **changes: Any) -> "RelayConfig":
        """Return a new configuration with ``changes`` applied."""
        return replace(self, **changes)
