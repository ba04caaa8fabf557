"""Console logging for the Conduit CLI."""
import logging
import os
import sys

ROOT_LOGGER = "conduit"


class ConsoleFormatter(logging.Formatter):
    """Plain messages for progress; warnings and errors carry their level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname}: {message}"
        return message


def _parse_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger in the 'conduit' hierarchy.

    The stdout handler is attached to 'conduit' the first time any logger
    is requested; stage loggers ('conduit.fetch', 'conduit.upload', ...)
    stay handler-free and propagate to it. LOG_LEVEL sets the initial level.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ConsoleFormatter("%(message)s"))
        root.addHandler(handler)
        root.setLevel(_parse_level(os.getenv("LOG_LEVEL", "INFO")))

    return logging.getLogger(name)


def set_level(level: str) -> None:
    """Change the level of every Conduit logger at once (e.g. for --verbose)."""
    get_logger().setLevel(_parse_level(level))
