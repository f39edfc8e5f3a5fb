"""Logging setup for the back office service."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_HANDLER_NAME = "travel_backoffice"


def configure_logging(level="INFO") -> logging.Logger:
    """
    Install a single stream handler on the package logger.

    Safe to call more than once: an existing handler is reused and only the
    level is updated.
    """
    root = logging.getLogger("travel_backoffice")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(level)

    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)
            return root

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    return root


def reset_logging() -> None:
    """Remove the package handler (used by tests)."""
    root = logging.getLogger("travel_backoffice")
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
