"""
Handler factories for console and rotating file output.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Sequence


def _configure(
    handler: logging.Handler,
    level: int,
    formatter: logging.Formatter,
    filters: Optional[Sequence[logging.Filter]],
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    for log_filter in filters or ():
        handler.addFilter(log_filter)
    return handler


def create_console_handler(
    level: int,
    formatter: logging.Formatter,
    filters: Optional[Sequence[logging.Filter]] = None
) -> logging.StreamHandler:
    """
    Handler writing to stdout.

    Example:
        >>> handler = create_console_handler(logging.INFO, TextFormatter())
    """
    return _configure(logging.StreamHandler(sys.stdout), level, formatter, filters)


def create_file_handler(
    file_path: str,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    filters: Optional[Sequence[logging.Filter]] = None
) -> RotatingFileHandler:
    """
    Rotating file handler; parent directories are created.

    Rotation keeps ``app.log``, ``app.log.1`` ... ``app.log.<backup_count>``.

    Example:
        >>> handler = create_file_handler("/var/log/http.log", logging.INFO, JSONFormatter())
    """
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    return _configure(handler, level, formatter, filters)
