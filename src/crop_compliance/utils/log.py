"""
Logging setup driven by Settings.

The level comes from `Settings.log_level` (LOG_LEVEL env or
`logging.level` in settings.yaml). With `cli.log_to_file` on, records
also go to `paths.log_dir/crop-compliance.log`.

Usage:
    from crop_compliance.utils.log import get_logger
    logger = get_logger(__name__)
    logger.info("Verified crop %s against standard %d", crop_id, standard_id)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from crop_compliance.config import Settings, get_settings

PACKAGE = "crop_compliance"
LOG_FILE_NAME = "crop-compliance.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False
_handlers: list[logging.Handler] = []


def resolve_level(name: str) -> int:
    """Level name ("debug", "WARNING", ...) to its number. Unknown names give INFO."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def log_file_for(settings: Settings) -> Path | None:
    """Where file logging writes, or None when it is off."""
    if not settings.cli.log_to_file:
        return None
    return settings.paths.log_dir / LOG_FILE_NAME


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """
    Attach handlers to the package logger. Call once at startup;
    later calls return the logger unchanged.
    """
    global _configured
    root = logging.getLogger(PACKAGE)
    if _configured:
        return root
    settings = settings or get_settings()

    root.setLevel(resolve_level(settings.log_level))
    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = log_file_for(settings)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_file), encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(fmt)
        root.addHandler(handler)
    _handlers.extend(handlers)
    _configured = True
    return root


def reset_logging() -> None:
    """Detach and close whatever setup_logging attached."""
    global _configured
    root = logging.getLogger(PACKAGE)
    for handler in _handlers:
        root.removeHandler(handler)
        handler.close()
    _handlers.clear()
    root.setLevel(logging.NOTSET)
    _configured = False


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, namespaced under the package."""
    if not name.startswith(PACKAGE):
        name = f"{PACKAGE}.{name}"
    return logging.getLogger(name)
