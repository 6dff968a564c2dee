"""Logging setup utilities for rshell.

Diagnostics go through the ``rshell`` logger to stderr so they never mix
with remote output written to stdout.
"""

from __future__ import annotations

import logging
import sys

from rshell.config.settings import LoggingConfig

# Set on every handler installed here, so a repeated setup replaces them.
_HANDLER_MARK = "_rshell_handler"


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the ``rshell`` package logger.

    Handlers from a previous call are removed (and closed) first, so
    calling this again changes the level or log file without duplicating
    output.

    Args:
        config: Logging configuration. If None, uses defaults
                (WARNING level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    package_logger = logging.getLogger("rshell")
    package_logger.setLevel(getattr(logging, config.level.upper(), logging.WARNING))

    for handler in list(package_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            package_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        package_logger.addHandler(handler)

    package_logger.debug("Logging initialized at %s level", config.level)
