"""Logging setup for graphbridge."""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

_LOG_NAMESPACE = "graphbridge"


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | int | str = "INFO",
) -> None:
    """Route graphbridge log records to stderr through rich.

    Args:
        level: The log level to use (string or int)
    """
    logger = logging.getLogger(_LOG_NAMESPACE)
    # Remove any existing handlers to avoid duplicates on reconfiguration
    for hdlr in logger.handlers[:]:
        logger.removeHandler(hdlr)

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
