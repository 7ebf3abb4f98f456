"""Logging configuration: route library loggers through rich."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "trace_wrangler"


def configure_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """
    Attach a RichHandler to the package logger.

    Safe to call more than once; the handler is replaced rather than stacked.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
