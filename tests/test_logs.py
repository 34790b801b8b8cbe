"""Logging setup tests."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from rich.console import Console

from adsweep.config.models import LoggingSettings
from adsweep.logs import configure_logging


def test_configure_logging_writes_file_and_replaces_handlers(tmp_path: Path) -> None:
    settings = LoggingSettings(level="debug", path=str(tmp_path / "logs" / "adsweep.log"))
    console = Console(file=io.StringIO())

    logger = configure_logging(settings, console=console)
    configure_logging(settings, console=console)
    logging.getLogger("adsweep.directory.fetch").info("Fetched 3 account(s).")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    for handler in logger.handlers:
        handler.flush()
    assert "Fetched 3 account(s)." in (tmp_path / "logs" / "adsweep.log").read_text("utf-8")

    configure_logging(LoggingSettings(level="bogus"), log_to_file=False)
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
