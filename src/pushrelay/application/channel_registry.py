"""Channel resolution.

Resolves the effective display attributes for a channel name by merging the
matching configured channel over the default channel. The registry keeps no
state: every call reads the configuration it is given, so resolution always
reflects the configuration snapshot of the calling operation.

Precedence per field (highest first):
  1. message-level override (``importance``, ``play_sound``)
  2. matching configured channel
  3. default channel
  4. baseline (importance=default, play_sound/show_badge/enable_vibration=True,
     enable_lights=False)
"""

from __future__ import annotations

import structlog

from pushrelay.core.domain.channel import Channel, EffectiveChannel, Importance
from pushrelay.core.domain.config import RelayConfig
from pushrelay.core.domain.errors import ChannelSetupError
from pushrelay.core.interfaces.renderer import RendererProtocol

logger = structlog.get_logger(__name__)

BASELINE_IMPORTANCE = Importance.DEFAULT
BASELINE_PLAY_SOUND = True
BASELINE_SHOW_BADGE = True
BASELINE_ENABLE_VIBRATION = True
BASELINE_ENABLE_LIGHTS = False


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


class ChannelRegistry:
    """Resolves and registers notification channels."""

    def find(self, channel_name: str | None, config: RelayConfig) -> Channel:
        """Return the configured channel for ``channel_name`` or the default channel."""
        if channel_name is not None:
            for channel in config.channels:
                if channel.id == channel_name:
                    return channel
            if channel_name != config.default_channel.id:
                logger.debug("channels.unknown_channel", channel=channel_name)
        return config.default_channel

    def resolve(
        self,
        channel_name: str | None,
        config: RelayConfig,
        *,
        importance: Importance | None = None,
        play_sound: bool | None = None,
    ) -> EffectiveChannel:
        """Resolve the effective channel. Never raises; unknown names use the default."""
        matched = self.find(channel_name, config)
        default = config.default_channel
        return EffectiveChannel(
            id=matched.id,
            name=matched.name,
            group_id=matched.group_id,
            description=matched.description,
            importance=_first_set(
                importance, matched.importance, default.importance, BASELINE_IMPORTANCE
            ),
            play_sound=_first_set(
                play_sound, matched.play_sound, default.play_sound, BASELINE_PLAY_SOUND
            ),
            show_badge=_first_set(matched.show_badge, default.show_badge, BASELINE_SHOW_BADGE),
            enable_vibration=_first_set(
                matched.enable_vibration, default.enable_vibration, BASELINE_ENABLE_VIBRATION
            ),
            enable_lights=_first_set(
                matched.enable_lights, default.enable_lights, BASELINE_ENABLE_LIGHTS
            ),
            led_color=_first_set(matched.led_color, default.led_color),
            sound=_first_set(matched.sound, default.sound),
        )

    def channels(self, config: RelayConfig) -> list[Channel]:
        """Default channel followed by every configured channel merged over it."""
        return [config.default_channel, *config.merged_channels()]

    def has_sound(self, config: RelayConfig) -> bool:
        """Whether any channel asks for sound (decides the permission request)."""
        return any(
            self.resolve(channel.id, config).play_sound for channel in self.channels(config)
        )

    def has_badge(self, config: RelayConfig) -> bool:
        """Whether any channel asks for a badge."""
        return any(
            self.resolve(channel.id, config).show_badge for channel in self.channels(config)
        )

    def validate(self, config: RelayConfig) -> None:
        """Check that channel ids are unique and the default id is not redefined.

        Raises:
            ChannelSetupError: If the channel list is inconsistent.
        """
        seen = {config.default_channel.id}
        for channel in config.channels:
            if channel.id in seen:
                raise ChannelSetupError(
                    f"Channel id '{channel.id}' is registered more than once",
                    details={"channel": channel.id},
                )
            seen.add(channel.id)

    async def setup(self, config: RelayConfig, renderer: RendererProtocol) -> None:
        """Register group channels, then channels, with the renderer.

        Raises:
            ChannelSetupError: If validation or any registration fails.
        """
        self.validate(config)
        channels = self.channels(config)
        try:
            for group in config.group_channels:
                await renderer.create_channel_group(group)
            for channel in channels:
                await renderer.create_channel(channel, self.resolve(channel.id, config))
        except ChannelSetupError:
            raise
        except Exception as exc:
            raise ChannelSetupError(
                f"Error initializing channel: {exc}",
                details={"error": str(exc)},
            ) from exc
        logger.info("channels.registered", channels=[channel.id for channel in channels])
