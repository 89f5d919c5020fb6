"""Diagnostics channel for the MCP server.

stdout carries the JSON-RPC frames of the stdio transport, so a single stray
line there desynchronises the client. Every free-form message in this package
goes through the logger returned by :func:`get_logger`, whose only handler
writes to stderr. Nothing in the package calls ``print``.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union

LOGGER_NAME = "coralogix-mcp"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stderr`` is at emit time.

    Resolving the stream lazily keeps the handler pointed at stderr even when
    ``sys.stderr`` is swapped (pytest capture, MCP hosts wrapping the process).
    """

    def __init__(self) -> None:
        logging.Handler.__init__(self)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(h, StderrHandler) for h in logger.handlers):
        handler = StderrHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        # Root handlers may point at stdout; never hand records to them.
        logger.propagate = False
        if logger.level == logging.NOTSET:
            logger.setLevel(logging.INFO)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or a child of it for ``name``."""
    logger = _package_logger()
    return logger.getChild(name) if name else logger


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Set the diagnostics level (e.g. ``"DEBUG"`` or ``logging.WARNING``)."""
    logger = _package_logger()
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
    return logger
