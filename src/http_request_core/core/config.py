"""
Система конфигурации для HTTP Request Core.

Все конфиги immutable (frozen dataclasses): один конфиг безопасно
разделяется между всеми логическими запросами клиента.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Mapping, TYPE_CHECKING
from types import MappingProxyType

if TYPE_CHECKING:
    from .logging import LoggingConfig

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RETRY CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class RetryConfig:
    """
    Конфигурация retry стратегии по умолчанию.

    Задержка перед попыткой N: 2**N * backoff_base_ms + uniform(0, jitter_ms).

    Args:
        retries: Количество повторов после первой попытки
        backoff_base_ms: Базовая задержка (мс)
        jitter_ms: Верхняя граница случайной добавки (мс)

    Examples:
        >>> RetryConfig(retries=2)
        >>> RetryConfig(retries=5, backoff_base_ms=500)
    """
    retries: int = 2
    backoff_base_ms: float = 1000.0
    jitter_ms: float = 100.0

    def __post_init__(self):
        """Валидация."""
        if self.retries < 0:
            raise ValueError("retries must be non-negative")
        if self.backoff_base_ms < 0:
            raise ValueError("backoff_base_ms must be non-negative")
        if self.jitter_ms < 0:
            raise ValueError("jitter_ms must be non-negative")

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MAIN CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _freeze_dict(d: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """
    Convert dict to immutable MappingProxyType with lower-case keys.

    Example:
        >>> frozen = _freeze_dict({"X-API-Key": "secret"})
        >>> frozen["x-api-key"]
        'secret'
    """
    if d is None:
        return MappingProxyType({})
    return MappingProxyType({str(k).lower(): v for k, v in d.items()})


@dataclass(frozen=True)
class HTTPClientConfig:
    """
    Главная конфигурация клиента.

    Значения служат умолчаниями для каждого дескриптора запроса;
    опции конкретного запроса их переопределяют.

    Args:
        headers: Дефолтные заголовки (ключи приводятся к нижнему регистру)
        user_agent: Значение user-agent (None = имя и версия пакета)
        retry: Конфигурация retry
        timeout_ms: Дедлайн одной попытки (мс), None = без дедлайна
        follow_redirect: Следовать редиректам
        verify_ssl: Проверять SSL сертификаты
        encoding: Кодировка тела в buffered режиме (None = bytes)
        logging: Конфигурация логирования (None = stdlib logger пакета)

    Examples:
        >>> config = HTTPClientConfig(timeout_ms=5000)
        >>> config = HTTPClientConfig.create(retries=5, headers={"X-Token": "t"})
    """
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    user_agent: Optional[str] = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    timeout_ms: Optional[float] = None
    follow_redirect: bool = True
    verify_ssl: bool = True
    encoding: Optional[str] = "utf-8"
    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Freeze headers and validate."""
        object.__setattr__(self, 'headers', _freeze_dict(self.headers))

        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

    @classmethod
    def create(
        cls,
        retries: int = 2,
        timeout_ms: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        user_agent: Optional[str] = None,
        follow_redirect: bool = True,
        verify_ssl: bool = True,
        encoding: Optional[str] = "utf-8",
        logging: Optional['LoggingConfig'] = None,
        **retry_kwargs
    ) -> 'HTTPClientConfig':
        """
        Удобный конструктор конфигурации.

        Args:
            retries: Количество повторов (не включая первую попытку)
            timeout_ms: Дедлайн попытки (мс)
            headers: Заголовки
            user_agent: user-agent
            follow_redirect: Следовать редиректам
            verify_ssl: Проверять SSL
            encoding: Кодировка тела ответа
            logging: Конфигурация логирования
            **retry_kwargs: backoff_base_ms, jitter_ms

        Returns:
            HTTPClientConfig instance

        Examples:
            >>> config = HTTPClientConfig.create(retries=0, timeout_ms=2000)
        """
        return cls(
            headers=headers or {},
            user_agent=user_agent,
            retry=RetryConfig(retries=retries, **retry_kwargs),
            timeout_ms=timeout_ms,
            follow_redirect=follow_redirect,
            verify_ssl=verify_ssl,
            encoding=encoding,
            logging=logging,
        )

    def with_timeout(self, timeout_ms: Optional[float]) -> 'HTTPClientConfig':
        """
        Создать новый конфиг с изменённым дедлайном.

        Example:
            >>> new_config = config.with_timeout(10_000)
        """
        return replace(self, timeout_ms=timeout_ms)

    def with_retries(self, retries: int) -> 'HTTPClientConfig':
        """
        Создать новый конфиг с изменённым количеством повторов.

        Example:
            >>> new_config = config.with_retries(5)
        """
        return replace(self, retry=replace(self.retry, retries=retries))

    def with_headers(self, headers: Dict[str, str]) -> 'HTTPClientConfig':
        """
        Создать новый конфиг с дополнительными заголовками.

        Example:
            >>> new_config = config.with_headers({"X-API-Key": "secret"})
        """
        merged = dict(self.headers)
        merged.update({k.lower(): v for k, v in headers.items()})
        return replace(self, headers=merged)
