"""
События жизненного цикла запроса.

RequestEngine.run() отдаёт события в порядке:
request (на каждую попытку, включая редиректы) -> redirect* -> response | error.
Ровно одно терминальное событие (response или error) на логический запрос.
"""

from dataclasses import dataclass
from typing import ClassVar, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .descriptor import RequestDescriptor
    from .exceptions import HTTPClientException
    from .response import Response
    from .transport import RequestChannel


@dataclass(frozen=True)
class RequestEvent:
    """
    Попытка начата; тело запроса нужно записать в channel.

    Attributes:
        channel: Записываемое тело запроса
        descriptor: Дескриптор этой попытки (после редиректа - новый URL)
        attempt: Номер попытки в рамках логического запроса (с 1)
    """
    name: ClassVar[str] = "request"
    terminal: ClassVar[bool] = False

    channel: 'RequestChannel'
    descriptor: 'RequestDescriptor'
    attempt: int


@dataclass(frozen=True)
class RedirectEvent:
    """Получен редирект; следующая попытка пойдёт на descriptor.url."""
    name: ClassVar[str] = "redirect"
    terminal: ClassVar[bool] = False

    response: 'Response'
    descriptor: 'RequestDescriptor'


@dataclass(frozen=True)
class ResponseEvent:
    """Финальный ответ; тело ещё не прочитано."""
    name: ClassVar[str] = "response"
    terminal: ClassVar[bool] = True

    response: 'Response'


@dataclass(frozen=True)
class ErrorEvent:
    """Логический запрос завершился ошибкой."""
    name: ClassVar[str] = "error"
    terminal: ClassVar[bool] = True

    error: 'HTTPClientException'


LifecycleEvent = Union[RequestEvent, RedirectEvent, ResponseEvent, ErrorEvent]
