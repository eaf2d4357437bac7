"""Notification tray adapters."""

from pushrelay.infrastructure.rendering.log_renderer import LogRenderer, RenderedNotification

__all__ = ["LogRenderer", "RenderedNotification"]
