"""Тесты для системы конфигурации."""

import pytest
from http_request_core.core.config import RetryConfig, HTTPClientConfig
from http_request_core.core.logging import LoggingConfig

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RetryConfig
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_retry_config_defaults():
    """Тест дефолтных значений."""
    config = RetryConfig()
    assert config.retries == 2
    assert config.backoff_base_ms == 1000
    assert config.jitter_ms == 100

def test_retry_config_validation_negative_retries():
    """Тест валидации - отрицательное количество повторов."""
    with pytest.raises(ValueError, match="retries must be non-negative"):
        RetryConfig(retries=-1)

def test_retry_config_validation_negative_backoff():
    """Тест валидации - отрицательный backoff."""
    with pytest.raises(ValueError, match="backoff_base_ms"):
        RetryConfig(backoff_base_ms=-1)

def test_retry_config_validation_negative_jitter():
    """Тест валидации - отрицательный jitter."""
    with pytest.raises(ValueError, match="jitter_ms"):
        RetryConfig(jitter_ms=-0.5)

def test_retry_config_immutable():
    """Тест immutability."""
    config = RetryConfig()
    with pytest.raises(Exception):  # frozen dataclass
        config.retries = 10

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HTTPClientConfig
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_http_client_config_defaults():
    """Тест дефолтных значений."""
    config = HTTPClientConfig()
    assert dict(config.headers) == {}
    assert config.user_agent is None
    assert config.retry == RetryConfig()
    assert config.timeout_ms is None
    assert config.follow_redirect is True
    assert config.verify_ssl is True
    assert config.encoding == "utf-8"
    assert config.logging is None

def test_http_client_config_headers_frozen_and_lowercased():
    """Заголовки приводятся к нижнему регистру и неизменяемы."""
    config = HTTPClientConfig(headers={"X-API-Key": "secret"})
    assert config.headers["x-api-key"] == "secret"
    with pytest.raises(TypeError):
        config.headers["x-other"] = "1"

def test_http_client_config_invalid_timeout():
    """Тест валидации - неположительный дедлайн."""
    with pytest.raises(ValueError, match="timeout_ms must be positive"):
        HTTPClientConfig(timeout_ms=0)

def test_http_client_config_create():
    """Тест фабричного метода create()."""
    logging_config = LoggingConfig.create(level="DEBUG")
    config = HTTPClientConfig.create(
        retries=5,
        timeout_ms=2000,
        headers={"Accept": "text/plain"},
        user_agent="svc/1.0",
        follow_redirect=False,
        verify_ssl=False,
        encoding=None,
        logging=logging_config,
        backoff_base_ms=10,
    )
    assert config.retry.retries == 5
    assert config.retry.backoff_base_ms == 10
    assert config.timeout_ms == 2000
    assert config.headers["accept"] == "text/plain"
    assert config.user_agent == "svc/1.0"
    assert config.follow_redirect is False
    assert config.verify_ssl is False
    assert config.encoding is None
    assert config.logging is logging_config

def test_http_client_config_with_timeout():
    """with_timeout возвращает новый конфиг."""
    config = HTTPClientConfig()
    new_config = config.with_timeout(500)
    assert new_config.timeout_ms == 500
    assert config.timeout_ms is None

def test_http_client_config_with_retries():
    """with_retries сохраняет остальные параметры retry."""
    config = HTTPClientConfig.create(backoff_base_ms=10)
    new_config = config.with_retries(7)
    assert new_config.retry.retries == 7
    assert new_config.retry.backoff_base_ms == 10
    assert config.retry.retries == 2

def test_http_client_config_with_headers():
    """with_headers объединяет заголовки."""
    config = HTTPClientConfig(headers={"A": "1"})
    new_config = config.with_headers({"B": "2"})
    assert dict(new_config.headers) == {"a": "1", "b": "2"}
    assert dict(config.headers) == {"a": "1"}
