"""pushrelay - push notification relay with channels, retry and history."""

__version__ = "0.1.0"
