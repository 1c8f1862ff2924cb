"""Logging setup for the docwatch CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from docwatch.config.models import LoggingSettings

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: LoggingSettings, *, console: Console | None = None) -> logging.Logger:
    """Attach handlers to the ``docwatch`` logger according to ``settings``.

    Console output goes through a ``RichHandler`` on stderr. When
    ``settings.file`` is set, records are also written to a rotating file.
    Calling this again replaces previously installed handlers.

    Args:
        settings: Logging section of the loaded configuration.
        console: Optional console for the rich handler.

    Returns:
        logging.Logger: The configured package logger.
    """
    logger = logging.getLogger("docwatch")
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_docwatch_handler", False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    rich_handler._docwatch_handler = True  # type: ignore[attr-defined]
    logger.addHandler(rich_handler)

    if settings.file:
        path = Path(settings.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler._docwatch_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
