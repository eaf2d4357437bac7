"""
Logging Protocol Interface for Core Domain.

Defines the LoggerProtocol interface so collaborators can accept any
structured logger (structlog bound loggers satisfy it).
"""

from typing import Any, Protocol


class LoggerProtocol(Protocol):
    """Protocol for structured logging calls."""

    def info(self, event: str, **kwargs: Any) -> None:
        """Log an informational message."""
        ...

    def warning(self, event: str, **kwargs: Any) -> None:
        """Log a warning message."""
        ...

    def error(self, event: str, **kwargs: Any) -> None:
        """Log an error message."""
        ...

    def debug(self, event: str, **kwargs: Any) -> None:
        """Log a debug message."""
        ...
