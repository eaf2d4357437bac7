"""Small shared helpers with no domain logic."""

from pushrelay.core.utils.time import from_epoch_ms, to_epoch_ms, utc_now

__all__ = ["utc_now", "to_epoch_ms", "from_epoch_ms"]
