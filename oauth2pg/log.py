"""
Logging helpers for oauth2pg.

The stores report garbage collection failures to a logger sink. Any
object with an ``error(msg, *args)`` method qualifies, which includes
every ``logging.Logger``.
"""

import logging
import sys
from typing import Any, Protocol


class Logger(Protocol):
    """Sink for formatted error messages."""

    def error(self, msg: str, *args: Any) -> None:
        ...


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


__all__ = ["Logger", "configure_logging"]
