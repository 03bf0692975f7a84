"""
Retry policy для транспортных ошибок.

Политика - это функция (attempt, error) -> задержка в мс или None.
None (или неположительное значение) означает "больше не пытаться".

Включает:
- Exponential backoff с jitter
- Классификацию ошибок по символьному коду (ECONNRESET, ENOTFOUND, ...)
"""

import asyncio
import errno
import logging
import random
import socket
import ssl
from dataclasses import dataclass
from typing import Callable, Optional, Union

import httpx

from .config import RetryConfig
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RetryPolicy = Callable[[int, BaseException], Optional[float]]

# Ошибки, которые всегда имеет смысл повторить
RETRYABLE_ERROR_CODES = frozenset({
    'ETIMEDOUT',
    'ECONNRESET',
    'EADDRINUSE',
    'ESOCKETTIMEDOUT',
    'ECONNREFUSED',
    'EPIPE',
})

# Повтор не поможет: хост не существует, сеть недоступна, проблемы TLS
NON_RETRYABLE_ERROR_CODES = frozenset({
    'ENOTFOUND',
    'ENETUNREACH',
    'CERT_VERIFY_FAILED',
    'SSL_ERROR',
})

_DNS_NOT_FOUND = {
    getattr(socket, name)
    for name in ('EAI_NONAME', 'EAI_NODATA', 'EAI_FAIL')
    if hasattr(socket, name)
}


def _iter_causes(error: BaseException):
    """Пройти по цепочке __cause__/__context__ без зацикливания."""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def get_error_code(error: BaseException) -> Optional[str]:
    """
    Определить символьный код транспортной ошибки.

    httpx оборачивает исключения сокета (httpx -> httpcore -> OSError),
    поэтому код ищется по всей цепочке причин.

    Args:
        error: Исключение транспорта

    Returns:
        Код вида 'ECONNREFUSED' или None, если код неизвестен

    Examples:
        >>> get_error_code(httpx.ConnectTimeout("timed out"))
        'ETIMEDOUT'
    """
    explicit = getattr(error, 'code', None)
    if isinstance(explicit, str):
        return explicit

    for exc in _iter_causes(error):
        if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, socket.timeout)):
            return 'ETIMEDOUT'
        if isinstance(exc, ssl.SSLCertVerificationError):
            return 'CERT_VERIFY_FAILED'
        if isinstance(exc, ssl.SSLError):
            return 'SSL_ERROR'
        if isinstance(exc, socket.gaierror):
            if exc.errno in _DNS_NOT_FOUND:
                return 'ENOTFOUND'
            if exc.errno == getattr(socket, 'EAI_AGAIN', None):
                return 'EAI_AGAIN'
            return 'ENOTFOUND'
        if isinstance(exc, OSError) and exc.errno is not None:
            return errno.errorcode.get(exc.errno)

    # Без низкоуровневой причины - по типу исключения httpx
    if isinstance(error, httpx.RemoteProtocolError):
        return 'ECONNRESET'
    if isinstance(error, httpx.WriteError):
        return 'EPIPE'
    if isinstance(error, httpx.ReadError):
        return 'ECONNRESET'
    return None


def is_retry_allowed(error: BaseException) -> bool:
    """
    Решить, допускает ли ошибка повтор.

    Whitelist -> True, blacklist -> False, неизвестный код -> True.
    """
    code = get_error_code(error)
    if code is None:
        return True
    if code in RETRYABLE_ERROR_CODES:
        return True
    if code in NON_RETRYABLE_ERROR_CODES:
        return False
    return True


@dataclass(frozen=True)
class BackoffRetryPolicy:
    """
    Политика по умолчанию: exponential backoff с jitter.

    Args:
        retries: Максимум повторов
        backoff_base_ms: Базовая задержка (мс)
        jitter_ms: Верхняя граница jitter (мс)

    Examples:
        >>> policy = BackoffRetryPolicy(retries=2)
        >>> policy(1, httpx.ConnectError("refused"))  # ~2000-2100 мс
        >>> policy(3, httpx.ConnectError("refused")) is None
        True
    """
    retries: int = 2
    backoff_base_ms: float = 1000.0
    jitter_ms: float = 100.0

    @classmethod
    def from_config(cls, config: RetryConfig) -> 'BackoffRetryPolicy':
        """Создать политику из RetryConfig."""
        return cls(
            retries=config.retries,
            backoff_base_ms=config.backoff_base_ms,
            jitter_ms=config.jitter_ms,
        )

    def get_wait_time(self, attempt: int) -> float:
        """Задержка (мс) перед попыткой attempt."""
        noise = random.random() * self.jitter_ms
        return (1 << attempt) * self.backoff_base_ms + noise

    def __call__(self, attempt: int, error: BaseException) -> Optional[float]:
        if attempt > self.retries:
            return None

        if not is_retry_allowed(error):
            logger.debug(
                f"Error {type(error).__name__} ({get_error_code(error)}) is not retryable"
            )
            return None

        return self.get_wait_time(attempt)


def resolve_retry_policy(
    retries: Union[int, RetryPolicy, None],
    config: Optional[RetryConfig] = None,
) -> RetryPolicy:
    """
    Привести опцию `retries` к функции политики.

    Args:
        retries: int (количество повторов), callable (своя политика) или None
        config: RetryConfig с параметрами backoff (по умолчанию RetryConfig())

    Returns:
        Callable (attempt, error) -> delay_ms | None
    """
    config = config or RetryConfig()

    if retries is None:
        return BackoffRetryPolicy.from_config(config)

    if callable(retries):
        return retries

    if isinstance(retries, bool) or not isinstance(retries, int):
        raise ConfigurationError(
            f"retries must be an int or a callable, not {type(retries).__name__}"
        )

    return BackoffRetryPolicy(
        retries=retries,
        backoff_base_ms=config.backoff_base_ms,
        jitter_ms=config.jitter_ms,
    )
