"""Logging configuration for simulation runs."""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Set the root log level; unknown level names fall back to INFO."""
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(format=_FORMAT)
    logging.getLogger().setLevel(resolved)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
