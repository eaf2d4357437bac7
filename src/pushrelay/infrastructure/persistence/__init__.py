"""History persistence adapters."""

from pushrelay.infrastructure.persistence.history_store import (
    DisabledHistoryStore,
    FileHistoryStore,
    InMemoryHistoryStore,
)

__all__ = ["DisabledHistoryStore", "FileHistoryStore", "InMemoryHistoryStore"]
