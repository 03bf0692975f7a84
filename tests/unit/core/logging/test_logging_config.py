"""
Tests for LoggingConfig.
"""

import logging

import pytest

from http_request_core.core.logging.config import LogFormat, LoggingConfig, LogLevel


class TestLoggingConfig:
    """Tests for LoggingConfig dataclass."""

    def test_defaults(self):
        """Default config logs INFO as text to console."""
        config = LoggingConfig()

        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.TEXT
        assert config.enable_console is True
        assert config.enable_file is False
        assert config.file_path is None
        assert config.max_bytes == 10 * 1024 * 1024
        assert config.backup_count == 5
        assert config.enable_correlation_id is True
        assert config.extra_fields == {}

    def test_is_frozen(self):
        """LoggingConfig is immutable."""
        config = LoggingConfig()
        with pytest.raises(Exception):
            config.level = LogLevel.DEBUG

    def test_file_requires_path(self):
        """enable_file without file_path is rejected."""
        with pytest.raises(ValueError, match="file_path is required"):
            LoggingConfig(enable_file=True)

    def test_invalid_rotation(self):
        """max_bytes and backup_count are validated."""
        with pytest.raises(ValueError, match="max_bytes"):
            LoggingConfig(max_bytes=0)
        with pytest.raises(ValueError, match="backup_count"):
            LoggingConfig(backup_count=-1)

    @pytest.mark.parametrize("level,expected", [
        (LogLevel.DEBUG, logging.DEBUG),
        (LogLevel.INFO, logging.INFO),
        (LogLevel.WARNING, logging.WARNING),
        (LogLevel.ERROR, logging.ERROR),
        (LogLevel.CRITICAL, logging.CRITICAL),
    ])
    def test_level_number(self, level, expected):
        """level_number maps to stdlib levels."""
        assert LoggingConfig(level=level).level_number == expected

    def test_plain_strings_accepted(self):
        """Constructor normalizes string level and format."""
        config = LoggingConfig(level="warn", format="Colored")

        assert config.level == LogLevel.WARNING
        assert config.format == LogFormat.COLORED
        assert config.level_number == logging.WARNING

    def test_extra_fields_are_frozen(self):
        """extra_fields is a read-only copy of the given mapping."""
        fields = {"service": "billing"}
        config = LoggingConfig(extra_fields=fields)
        fields["service"] = "changed"

        assert config.extra_fields == {"service": "billing"}
        with pytest.raises(TypeError):
            config.extra_fields["env"] = "prod"


class TestLoggingConfigCreate:
    """Tests for LoggingConfig.create()."""

    def test_strings_are_normalized(self):
        """Level and format are case-insensitive."""
        config = LoggingConfig.create(level="debug", format="JSON")

        assert config.level == LogLevel.DEBUG
        assert config.format == LogFormat.JSON

    def test_all_options(self, tmp_path):
        """create() passes every option through."""
        path = str(tmp_path / "http.log")
        config = LoggingConfig.create(
            level="WARNING",
            format="colored",
            enable_console=False,
            enable_file=True,
            file_path=path,
            max_bytes=1024,
            backup_count=2,
            enable_correlation_id=False,
            extra_fields={"service": "billing"},
        )

        assert config.format == LogFormat.COLORED
        assert config.enable_console is False
        assert config.file_path == path
        assert config.max_bytes == 1024
        assert config.backup_count == 2
        assert config.enable_correlation_id is False
        assert config.extra_fields == {"service": "billing"}

    def test_invalid_level(self):
        """Unknown level name raises ValueError."""
        with pytest.raises(ValueError):
            LoggingConfig.create(level="VERBOSE")

    def test_invalid_format(self):
        """Unknown format name raises ValueError."""
        with pytest.raises(ValueError):
            LoggingConfig.create(format="xml")
