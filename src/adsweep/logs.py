"""Logging setup shared by CLI commands."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from adsweep.config.models import LoggingSettings

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_TAG = "_adsweep_handler"


def configure_logging(
    settings: LoggingSettings,
    *,
    console: Console | None = None,
    log_to_file: bool = True,
) -> logging.Logger:
    """Install rotating-file and rich console handlers on the package logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Logging section of the configuration.
        console: Console receiving log records; defaults to stderr.
        log_to_file: Whether to write the rotating log file.

    Returns:
        logging.Logger: The configured ``adsweep`` logger.
    """
    logger = logging.getLogger("adsweep")
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    rich_handler.setLevel(max(level, logging.WARNING))
    setattr(rich_handler, _HANDLER_TAG, True)
    logger.addHandler(rich_handler)

    if log_to_file:
        path = Path(settings.path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max(settings.max_size_mb, 1) * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(level)
        setattr(file_handler, _HANDLER_TAG, True)
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
