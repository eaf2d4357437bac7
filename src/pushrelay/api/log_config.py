"""Logging setup for the command line and embedding hosts."""

import logging
import os

import structlog

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_log_level(level: str | None = None) -> int:
    """Map a level name (or ``PUSHRELAY_LOG_LEVEL``/``LOGLEVEL``) to a logging level."""
    name = level or os.getenv("PUSHRELAY_LOG_LEVEL") or os.getenv("LOGLEVEL") or "WARNING"
    return LOG_LEVELS.get(name.upper(), logging.WARNING)


def configure_logging(level: str | None = None) -> int:
    """Configure stdlib logging and structlog with the same level."""
    log_level = resolve_log_level(level)
    logging.basicConfig(level=log_level, format="%(message)s")
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
    return log_level
