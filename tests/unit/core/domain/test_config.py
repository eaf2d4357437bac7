"""Tests for RelayConfig."""

import pytest

from pushrelay.core.domain.channel import Channel
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.errors import ConfigError
from pushrelay.core.interfaces.hooks import SilentHooks


class TestRelayConfig:
    def test_defaults(self) -> None:
        config = RelayConfig.defaults()
        assert config.max_retries == 3
        assert config.retry_delay == 5.0
        assert config.history is None
        assert isinstance(config.hooks, SilentHooks)
        assert config.default_channel.id == "general"

    @pytest.mark.parametrize(("max_retries", "attempts"), [(0, 1), (1, 1), (2, 2), (3, 3)])
    def test_max_attempts(self, max_retries: int, attempts: int) -> None:
        assert RelayConfig(max_retries=max_retries).max_attempts == attempts

    def test_constant_delay(self) -> None:
        config = RelayConfig(retry_delay=5.0)
        assert config.delay_before(1) == 0.0
        assert config.delay_before(2) == 5.0
        assert config.delay_before(3) == 5.0

    def test_backoff_delay(self) -> None:
        config = RelayConfig(retry_delay=1.0, retry_backoff=2.0)
        assert [config.delay_before(n) for n in (2, 3, 4)] == [1.0, 2.0, 4.0]

    @pytest.mark.parametrize(
        "changes",
        [{"max_retries": -1}, {"retry_delay": -0.5}, {"retry_backoff": 0}],
    )
    def test_rejects_invalid_values(self, changes) -> None:
        with pytest.raises(ConfigError):
            RelayConfig(**changes)

    def test_replace_returns_new_value(self) -> None:
        config = RelayConfig(server_key="a")
        replaced = config.replace(server_key="b")
        assert config.server_key == "a"
        assert replaced.server_key == "b"

    def test_merged_channels_inherit_from_default(self) -> None:
        config = RelayConfig(
            default_channel=Channel(id="general", name="General", play_sound=False),
            channels=[Channel(id="promo", name="Promo")],
        )
        assert config.channels == (Channel(id="promo", name="Promo"),)
        assert config.merged_channels()[0].play_sound is False

    def test_resolve_user_id(self) -> None:
        config = RelayConfig(current_user_id=lambda: "current")
        assert config.resolve_user_id("explicit") == "explicit"
        assert config.resolve_user_id() == "current"
        assert RelayConfig().resolve_user_id() is None
