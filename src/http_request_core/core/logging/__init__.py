"""
Logging for HTTP Request Core.

Example:
    >>> from http_request_core.core.logging import LoggingConfig, configure_logging
    >>>
    >>> configure_logging(LoggingConfig.create(level="DEBUG", format="json"))
    >>>
    >>> # or per client
    >>> config = HTTPClientConfig(logging=LoggingConfig.create(format="colored"))
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import HTTPClientLogger, get_logger, configure_logging, LIBRARY_LOGGER_NAME
from .formatters import JSONFormatter, TextFormatter, ColoredFormatter, get_formatter
from .filters import (
    CorrelationIdFilter,
    ExtraFieldsFilter,
    set_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    clear_correlation_id,
)
from .handlers import create_console_handler, create_file_handler

__all__ = [
    # Config
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    # Logger
    "HTTPClientLogger",
    "get_logger",
    "configure_logging",
    "LIBRARY_LOGGER_NAME",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "ColoredFormatter",
    "get_formatter",
    # Filters
    "CorrelationIdFilter",
    "ExtraFieldsFilter",
    "set_correlation_id",
    "get_correlation_id",
    "reset_correlation_id",
    "clear_correlation_id",
    # Handlers
    "create_console_handler",
    "create_file_handler",
]
