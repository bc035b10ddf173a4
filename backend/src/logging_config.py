"""Central logging configuration for the viewer core and its CLI."""

from __future__ import annotations

import logging
import logging.config
import os
from typing import Optional


VIEWER_PACKAGES = ("annotations", "ingest", "series", "session", "viewer", "cli")

_configured_level: Optional[str] = None


def _logger_entries(level_name: str) -> dict[str, dict]:
    entries: dict[str, dict] = {name: {"level": level_name} for name in VIEWER_PACKAGES}
    # pydicom and asyncio only speak up when debugging
    quiet = "DEBUG" if level_name == "DEBUG" else "WARNING"
    entries["pydicom"] = {"level": quiet, "handlers": ["stdout"], "propagate": False}
    entries["asyncio"] = {"level": quiet}
    return entries


def configure_logging(default_level: Optional[str] = None, *, force: bool = False) -> str:
    """Route logs to stdout and return the level in effect.

    Repeated calls are no-ops unless ``force`` is set with a different level.
    """

    global _configured_level

    level_name = (default_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if _configured_level is not None and not (force and level_name != _configured_level):
        return _configured_level

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"level": level_name, "handlers": ["stdout"]},
            "loggers": _logger_entries(level_name),
        }
    )
    _configured_level = level_name
    return level_name
