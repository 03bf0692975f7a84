"""
Structured logger used by the request engine and the client.

Fields are passed as keyword arguments and land on the LogRecord via
``extra``; sensitive values (tokens, passwords, query secrets) are masked
before they reach any handler.
"""

import logging
from typing import Optional, Any

from .config import LoggingConfig
from .formatters import get_formatter
from .filters import CorrelationIdFilter, ExtraFieldsFilter
from .handlers import create_console_handler, create_file_handler
from ...utils.sanitizer import mask_sensitive_data, mask_url

LIBRARY_LOGGER_NAME = "http_request_core"

_URL_FIELDS = ('url', 'request_url', 'location')


class HTTPClientLogger:
    """
    Logger wrapper with keyword fields and masking.

    With a LoggingConfig the logger owns its handlers (console and/or
    rotating file) and does not propagate. Without one it is passive: records
    go up the ``http_request_core`` hierarchy to whatever the application
    configured (a NullHandler by default).

    Example:
        >>> logger = HTTPClientLogger(LoggingConfig.create(level="DEBUG"))
        >>> logger.info("Request completed", method="GET", status_code=200)
    """

    def __init__(self, config: Optional[LoggingConfig] = None, name: str = LIBRARY_LOGGER_NAME):
        self.config = config
        self.name = name
        self._closed = False
        self._logger = logging.getLogger(name)

        if config is not None:
            self._install_handlers(config)

    def _install_handlers(self, config: LoggingConfig) -> None:
        level = config.level_number
        self._logger.setLevel(level)
        self._logger.propagate = False
        self._logger.handlers.clear()

        filters = []
        if config.enable_correlation_id:
            filters.append(CorrelationIdFilter())
        if config.extra_fields:
            filters.append(ExtraFieldsFilter(config.extra_fields))

        formatter = get_formatter(config.format.value)

        if config.enable_console:
            self._logger.addHandler(create_console_handler(level, formatter, filters))

        if config.enable_file and config.file_path:
            self._logger.addHandler(create_file_handler(
                file_path=config.file_path,
                level=level,
                formatter=formatter,
                max_bytes=config.max_bytes,
                backup_count=config.backup_count,
                filters=filters,
            ))

    @property
    def logger(self) -> logging.Logger:
        """Underlying stdlib logger."""
        return self._logger

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _sanitize(self, fields: dict) -> dict:
        fields = mask_sensitive_data(fields)
        for key in _URL_FIELDS:
            if isinstance(fields.get(key), str):
                fields[key] = mask_url(fields[key])
        return fields

    def log(self, level: int, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log message at ``level`` with masked keyword fields."""
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(level, message, exc_info=exc_info, extra=self._sanitize(kwargs))

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """
        Log info message.

        Example:
            >>> logger.info("Request completed", status_code=200, duration_ms=150)
        """
        self.log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(logging.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log error with the active exception's traceback."""
        self.log(logging.ERROR, message, exc_info=True, **kwargs)

    def close(self) -> None:
        """
        Flush and close owned handlers. Idempotent; no-op for a passive logger.
        """
        if self._closed:
            return
        self._closed = True

        if self.config is None:
            return

        for handler in self._logger.handlers[:]:
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


# Global logger instance (singleton pattern)
_default_logger: Optional[HTTPClientLogger] = None


def get_logger(config: Optional[LoggingConfig] = None) -> HTTPClientLogger:
    """
    Global library logger; ``config`` is only used on the first call.

    Example:
        >>> logger = get_logger(LoggingConfig.create(format="json"))
    """
    global _default_logger

    if _default_logger is None:
        _default_logger = HTTPClientLogger(config)

    return _default_logger


def configure_logging(config: LoggingConfig) -> HTTPClientLogger:
    """
    Replace the global library logger with a configured one.

    Example:
        >>> configure_logging(LoggingConfig.create(level="DEBUG", format="colored"))
    """
    global _default_logger
    if _default_logger is not None:
        _default_logger.close()
    _default_logger = HTTPClientLogger(config)
    return _default_logger
