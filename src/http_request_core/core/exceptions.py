"""
Иерархия исключений HTTP Request Core.

Каждая ошибка жизненного цикла запроса несёт эффективные параметры
дескриптора, действовавшего в момент сбоя:
host, hostname, method, path, protocol, url.

Классификация:
- RequestError (retryable=True) - транспортная ошибка, бюджет retry исчерпан
- FatalError (fatal=True) - НЕ ретраить никогда
"""

from http import HTTPStatus
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .descriptor import RequestDescriptor
    from .response import Response


def status_message_for(status_code: int) -> Optional[str]:
    """Стандартная reason phrase для статус кода (или None)."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return None

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class HTTPClientException(Exception):
    """
    Базовое исключение HTTP Request Core.

    Args:
        message: Сообщение об ошибке
        descriptor: Дескриптор запроса, действовавший в момент сбоя
        code: Символьный код ошибки (ECONNREFUSED, ETIMEDOUT, ...)

    Attributes:
        response: Response объект, если ответ был получен до сбоя
    """

    retryable: bool = False
    fatal: bool = False

    def __init__(
        self,
        message: str,
        descriptor: Optional['RequestDescriptor'] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.descriptor = descriptor
        self.response: Optional['Response'] = None

        self.host: Optional[str] = None
        self.hostname: Optional[str] = None
        self.method: Optional[str] = None
        self.path: Optional[str] = None
        self.protocol: Optional[str] = None
        self.url: Optional[str] = None

        if descriptor is not None:
            self.host = descriptor.host
            self.hostname = descriptor.hostname
            self.method = descriptor.method
            self.path = descriptor.path
            self.protocol = descriptor.protocol
            self.url = descriptor.href

        super().__init__(message)

    def to_dict(self) -> dict:
        """Поля ошибки для структурированного логирования."""
        data: dict = {
            "error_type": type(self).__name__,
            "error": self.message,
            "method": self.method,
            "url": self.url,
        }
        if self.code is not None:
            data["code"] = self.code
        status_code = getattr(self, "status_code", None)
        if status_code is not None:
            data["status_code"] = status_code
        return data

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ТРАНСПОРТНЫЕ ОШИБКИ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RequestError(HTTPClientException):
    """
    Транспортная ошибка (connection refused, reset, DNS, таймаут),
    после того как retry policy отказалась от новой попытки.

    Исходное исключение доступно через `cause` и `__cause__`.

    Args:
        cause: Исходное исключение транспорта
        descriptor: Дескриптор запроса
        code: Символьный код ошибки (если удалось определить)
    """
    retryable = True

    def __init__(
        self,
        cause: BaseException,
        descriptor: Optional['RequestDescriptor'] = None,
        code: Optional[str] = None,
    ):
        self.cause = cause
        message = str(cause) or type(cause).__name__
        super().__init__(message, descriptor, code=code)
        self.__cause__ = cause


class ReadError(HTTPClientException):
    """
    Ошибка чтения тела ответа.

    Args:
        cause: Исходное исключение
        descriptor: Дескриптор запроса
    """

    def __init__(
        self,
        cause: BaseException,
        descriptor: Optional['RequestDescriptor'] = None,
    ):
        self.cause = cause
        message = str(cause) or type(cause).__name__
        super().__init__(message, descriptor, code=getattr(cause, 'code', None))
        self.__cause__ = cause

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ФАТАЛЬНЫЕ ОШИБКИ (fatal=True)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class FatalError(HTTPClientException):
    """
    Фатальная ошибка - НЕ ретраить.

    Примеры: неподдерживаемый протокол, неудачный статус, битый JSON.
    """
    fatal = True


class UnsupportedProtocolError(FatalError):
    """
    Протокол URL не http/https. Транспорт не вызывается.

    Args:
        descriptor: Дескриптор запроса
    """

    def __init__(self, descriptor: 'RequestDescriptor'):
        super().__init__(f'Unsupported protocol "{descriptor.protocol}"', descriptor)


class ParseError(FatalError):
    """
    Тело ответа не является валидным JSON.

    Args:
        cause: Исключение парсера
        status_code: HTTP статус ответа
        descriptor: Дескриптор запроса
        data: Сырое тело ответа (в сообщение попадают первые 77 символов)
    """

    PREVIEW_LENGTH = 77

    def __init__(
        self,
        cause: BaseException,
        status_code: int,
        descriptor: 'RequestDescriptor',
        data: Any,
    ):
        self.cause = cause
        self.status_code = status_code
        self.status_message = status_message_for(status_code)
        self.body_preview = data[:self.PREVIEW_LENGTH]

        super().__init__(
            f'{cause} in "{descriptor.href}": \n{self.body_preview}...',
            descriptor,
        )
        self.__cause__ = cause


class HTTPError(FatalError):
    """
    Итоговый статус код вне допустимого окна.

    Args:
        status_code: HTTP статус
        descriptor: Дескриптор запроса
    """

    def __init__(self, status_code: int, descriptor: 'RequestDescriptor'):
        self.status_code = status_code
        self.status_message = status_message_for(status_code)

        super().__init__(
            f"Response code {status_code} ({self.status_message})",
            descriptor,
        )


class MaxRedirectsError(FatalError):
    """
    Превышено количество редиректов.

    Args:
        status_code: Статус последнего редирект-ответа
        descriptor: Дескриптор запроса
        max_redirects: Лимит редиректов
    """

    def __init__(
        self,
        status_code: int,
        descriptor: 'RequestDescriptor',
        max_redirects: int = 10,
    ):
        self.status_code = status_code
        self.status_message = status_message_for(status_code)
        self.max_redirects = max_redirects

        super().__init__(f"Redirected {max_redirects} times. Aborting.", descriptor)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# СПЕЦИАЛЬНЫЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ConfigurationError(HTTPClientException):
    """
    Ошибка конфигурации или невалидные опции запроса.

    Бросается синхронно, до любого сетевого обмена.
    """
    fatal = True
