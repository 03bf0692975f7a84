"""
Pydantic settings for environment configuration.

All variables are flat and prefixed with ``HTTP_REQUEST_``.
"""

from typing import Optional, Dict, Literal
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HTTPRequestSettings(BaseSettings):
    """
    HTTP Request Core configuration from environment variables.

    Reads from (highest priority first):
    1. Init kwargs
    2. Environment variables (HTTP_REQUEST_*)
    3. .env file
    4. Defaults

    Example .env file:
        HTTP_REQUEST_RETRIES=3
        HTTP_REQUEST_TIMEOUT_MS=5000
        HTTP_REQUEST_FOLLOW_REDIRECT=false
        HTTP_REQUEST_HEADERS={"x-api-key": "secret"}
        HTTP_REQUEST_LOG_ENABLED=true
        HTTP_REQUEST_LOG_FORMAT=json

    Usage:
        >>> settings = HTTPRequestSettings()
        >>> settings.retries
        2
    """

    model_config = SettingsConfigDict(
        env_prefix='HTTP_REQUEST_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Retry
    retries: int = Field(default=2, ge=0, le=20)
    retry_backoff_base_ms: float = Field(default=1000.0, ge=0)
    retry_jitter_ms: float = Field(default=100.0, ge=0)

    # Request defaults
    timeout_ms: Optional[float] = Field(default=None, gt=0, description="Per-attempt deadline")
    follow_redirect: bool = Field(default=True)
    verify_ssl: bool = Field(default=True)
    encoding: Optional[str] = Field(default="utf-8", description="Empty value = raw bytes")
    user_agent: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)

    # Logging
    log_enabled: bool = Field(default=False, description="Install library handlers")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text", "colored"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=False)
    log_file_path: Optional[str] = None
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    log_enable_correlation_id: bool = Field(default=True)

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('log_format', mode='before')
    @classmethod
    def normalize_format(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator('encoding', mode='before')
    @classmethod
    def empty_encoding(cls, v):
        """Empty string means "return bytes"."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def validate_log_file(self) -> 'HTTPRequestSettings':
        """file_path is required when file logging is on."""
        if self.log_enable_file and not self.log_file_path:
            raise ValueError("log_file_path is required when log_enable_file=True")
        return self
