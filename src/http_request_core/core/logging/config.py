"""
Logging configuration for HTTP Request Core.

A LoggingConfig turns on the library's own handlers. Without one the
library logs through the standard ``http_request_core`` logger hierarchy
and leaves handler setup to the application.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class LogLevel(str, Enum):
    """Level names accepted by the library handlers."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, value: Union[str, "LogLevel"]) -> "LogLevel":
        """Case-insensitive lookup; ``WARN`` is accepted for WARNING."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().upper()
        return cls("WARNING" if name == "WARN" else name)


class LogFormat(str, Enum):
    """Record layouts: one JSON object per line, plain text or ANSI colored text."""
    JSON = "json"
    TEXT = "text"
    COLORED = "colored"

    @classmethod
    def parse(cls, value: Union[str, "LogFormat"]) -> "LogFormat":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class LoggingConfig:
    """
    Configuration for request lifecycle logging.

    ``level`` and ``format`` may be given as enum members or plain strings;
    ``extra_fields`` is frozen like the client headers.

    Attributes:
        level: Minimum level emitted by the library handlers
        format: Output format (json, text, colored)
        enable_console: Write to stdout
        enable_file: Write to a rotating file (needs file_path)
        file_path: Log file path
        max_bytes: Rotate when the file reaches this size
        backup_count: Rotated files to keep
        enable_correlation_id: Stamp each record with the logical request id
        extra_fields: Static fields added to every record (service, env, ...)

    Example:
        >>> config = LoggingConfig.create(level="DEBUG", format="json")
        >>> client = AsyncHTTPClient(HTTPClientConfig(logging=config))
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    enable_console: bool = True
    enable_file: bool = False
    file_path: Optional[str] = None
    max_bytes: int = DEFAULT_MAX_BYTES
    backup_count: int = 5
    enable_correlation_id: bool = True
    extra_fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'level', LogLevel.parse(self.level))
        object.__setattr__(self, 'format', LogFormat.parse(self.format))
        object.__setattr__(self, 'extra_fields', MappingProxyType(dict(self.extra_fields)))

        if self.enable_file and not self.file_path:
            raise ValueError("file_path is required when enable_file=True")
        if self.max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count must be non-negative")

    @property
    def level_number(self) -> int:
        """Numeric stdlib level (e.g. logging.INFO)."""
        return logging.getLevelName(self.level.value)

    @classmethod
    def create(
        cls,
        level: Union[str, LogLevel] = "INFO",
        format: Union[str, LogFormat] = "text",
        **options: Any
    ) -> "LoggingConfig":
        """
        Create LoggingConfig from plain strings.

        Args:
            level: Level name, case-insensitive
            format: json, text or colored, case-insensitive
            **options: Remaining LoggingConfig fields

        Raises:
            ValueError: Unknown level or format, invalid file/rotation options

        Example:
            >>> LoggingConfig.create(level="debug", format="JSON", extra_fields={"service": "billing"})
        """
        if options.get('extra_fields') is None:
            options.pop('extra_fields', None)
        return cls(level=level, format=format, **options)
