"""
ChatLink - Logging configuration.

Console output goes through rich; an optional rotating log file uses the
plain LOG_FORMAT layout.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .constants import LOG_BACKUP_COUNT, LOG_DATE_FORMAT, LOG_FORMAT, LOG_MAX_BYTES


def setup_logging(config=None, console: Optional[Console] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure the ``chatlink`` logger.

    Args:
        config: Optional Config supplying the [logging] section
        console: Console for rich output (defaults to stderr)
        verbose: Force DEBUG level

    Returns:
        The configured package logger
    """
    level_name = config.get("logging", "level", "INFO") if config else "INFO"
    log_file = config.get("logging", "file", "") if config else ""
    console_logging = config.get("logging", "console_logging", True) if config else True

    level = logging.DEBUG if verbose else getattr(logging, str(level_name).upper(), logging.INFO)

    logger = logging.getLogger("chatlink")
    logger.setLevel(level)

    # Replace handlers from any previous call
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console_logging:
        logger.addHandler(
            RichHandler(
                console=console or Console(stderr=True),
                show_time=False,
                show_path=False,
            )
        )

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
