"""
Build HTTPClientConfig from environment variables and .env files.
"""

from typing import Any, Optional

from ..config import HTTPClientConfig, RetryConfig
from ..logging.config import LoggingConfig
from .validator import HTTPRequestSettings


def settings_to_config(settings: HTTPRequestSettings) -> HTTPClientConfig:
    """Convert validated settings to HTTPClientConfig."""
    logging_config = None
    if settings.log_enabled:
        logging_config = LoggingConfig.create(
            level=settings.log_level,
            format=settings.log_format,
            enable_console=settings.log_enable_console,
            enable_file=settings.log_enable_file,
            file_path=settings.log_file_path,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
            enable_correlation_id=settings.log_enable_correlation_id,
        )

    return HTTPClientConfig(
        headers=settings.headers,
        user_agent=settings.user_agent,
        retry=RetryConfig(
            retries=settings.retries,
            backoff_base_ms=settings.retry_backoff_base_ms,
            jitter_ms=settings.retry_jitter_ms,
        ),
        timeout_ms=settings.timeout_ms,
        follow_redirect=settings.follow_redirect,
        verify_ssl=settings.verify_ssl,
        encoding=settings.encoding,
        logging=logging_config,
    )


def load_from_env(env_file: Optional[str] = '.env', **overrides: Any) -> HTTPClientConfig:
    """
    Load HTTPClientConfig from environment.

    Priority (highest to lowest):
    1. **overrides - explicit values (same names as HTTPRequestSettings fields)
    2. Environment variables (HTTP_REQUEST_*)
    3. env_file (None disables .env loading)
    4. Defaults

    Raises:
        pydantic.ValidationError: Invalid value in environment or overrides

    Example:
        >>> config = load_from_env()
        >>> config = load_from_env(env_file="deploy/.env.production", retries=5)
    """
    settings = HTTPRequestSettings(_env_file=env_file, **overrides)
    return settings_to_config(settings)
