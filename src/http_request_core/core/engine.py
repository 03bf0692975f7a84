"""
Движок запросов: state machine одного логического запроса.

Логический запрос = одна или несколько попыток (retry) и переходов
по редиректам. Движок ничего не знает про буферизацию или потоки:
он отдаёт события, а адаптеры (buffered, streaming) решают, что с ними
делать.

Порядок событий:
    request -> (redirect -> request)* -> response | error

Ровно одно терминальное событие на логический запрос.
"""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, List, Optional
from urllib.parse import urljoin

import httpx

from .descriptor import RequestDescriptor
from .events import ErrorEvent, LifecycleEvent, RedirectEvent, RequestEvent, ResponseEvent
from .exceptions import MaxRedirectsError, RequestError, UnsupportedProtocolError
from .logging import HTTPClientLogger
from .response import Response
from .retry_policy import get_error_code
from .transport import Transport

REDIRECT_STATUS_CODES = frozenset({300, 301, 302, 303, 305, 307, 308})
REDIRECT_METHODS = frozenset({'GET', 'HEAD'})
MAX_REDIRECTS = 10


def decode_header_value(value: bytes) -> str:
    """
    Декодировать сырое значение заголовка: UTF-8, иначе Latin-1.

    Location с не-ASCII символами часто приходит в UTF-8,
    а httpx по умолчанию декодирует заголовки как Latin-1.
    """
    try:
        return value.decode('utf-8')
    except UnicodeDecodeError:
        return value.decode('latin-1')


def get_location(response: httpx.Response) -> Optional[str]:
    """Значение Location из сырых заголовков ответа (или None)."""
    for key, value in response.headers.raw:
        if key.lower() == b'location':
            return decode_header_value(value)
    return None


@dataclass
class AttemptState:
    """
    Изменяемое состояние логического запроса.

    Attributes:
        descriptor: Дескриптор текущей попытки (меняется на редиректах)
        request_url: Исходный URL
        redirect_count: Пройдено редиректов
        retry_count: Использовано обращений к retry policy
        attempts: Начато попыток
        redirect_urls: URL пройденных редиректов по порядку
    """
    descriptor: RequestDescriptor
    request_url: str
    redirect_count: int = 0
    retry_count: int = 0
    attempts: int = 0
    redirect_urls: List[str] = field(default_factory=list)


class RequestEngine:
    """
    Выполнение логического запроса как поток событий.

    Args:
        transport: Transport для отдельных попыток
        logger: HTTPClientLogger (по умолчанию пассивный logger пакета)
        sleep: Функция ожидания в секундах (подменяется в тестах)
        max_redirects: Лимит редиректов

    Example:
        >>> engine = RequestEngine(Transport())
        >>> async for event in engine.run(descriptor):
        ...     if isinstance(event, RequestEvent):
        ...         event.channel.end()
    """

    def __init__(
        self,
        transport: Transport,
        logger: Optional[HTTPClientLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_redirects: int = MAX_REDIRECTS,
    ):
        self.transport = transport
        self.max_redirects = max_redirects
        self._logger = logger or HTTPClientLogger(name="http_request_core.engine")
        self._sleep = sleep

    @staticmethod
    def is_redirect(response: httpx.Response, descriptor: RequestDescriptor) -> bool:
        """Нужно ли следовать этому ответу как редиректу."""
        return (
            descriptor.follow_redirect
            and response.status_code in REDIRECT_STATUS_CODES
            and descriptor.method in REDIRECT_METHODS
            and 'location' in response.headers
        )

    async def run(self, descriptor: RequestDescriptor) -> AsyncIterator[LifecycleEvent]:
        """
        Выполнить логический запрос.

        Тело каждой попытки пишет потребитель: в обработчике RequestEvent
        он обязан завершить event.channel (end() или pipe()).

        Yields:
            RequestEvent, RedirectEvent, затем ResponseEvent или ErrorEvent
        """
        state = AttemptState(descriptor=descriptor, request_url=descriptor.href)

        while True:
            current = state.descriptor

            if not current.has_supported_protocol:
                error = UnsupportedProtocolError(current)
                self._logger.warning("Unsupported protocol", **error.to_dict())
                yield ErrorEvent(error)
                return

            try:
                connection = self.transport.open(current)
            except httpx.InvalidURL as exc:
                error = RequestError(exc, current, code='ERR_INVALID_URL')
                self._logger.error("Invalid request URL", **error.to_dict())
                yield ErrorEvent(error)
                return

            state.attempts += 1
            self._logger.debug(
                "Request started",
                method=current.method,
                url=current.href,
                attempt=state.attempts,
            )
            yield RequestEvent(connection.channel, current, state.attempts)

            try:
                raw = await connection.send()
            except (httpx.TransportError, OSError) as exc:
                state.retry_count += 1
                delay = current.retry_policy(state.retry_count, exc)
                code = get_error_code(exc)

                if delay is not None and delay > 0:
                    self._logger.warning(
                        "Retrying request",
                        method=current.method,
                        url=current.href,
                        retry=state.retry_count,
                        delay_ms=round(delay, 1),
                        error=str(exc) or type(exc).__name__,
                        code=code,
                    )
                    await self._sleep(delay / 1000)
                    continue

                error = RequestError(exc, current, code=code)
                self._logger.error("Request failed", retries=state.retry_count - 1, **error.to_dict())
                yield ErrorEvent(error)
                return
            except Exception as exc:
                # Ошибка источника тела запроса: без retry
                error = RequestError(exc, current)
                self._logger.error("Request body failed", **error.to_dict())
                yield ErrorEvent(error)
                return

            if self.is_redirect(raw, current):
                location = get_location(raw)
                await raw.aclose()
                state.redirect_count += 1

                response = Response(
                    raw,
                    current,
                    request_url=state.request_url,
                    redirect_urls=state.redirect_urls,
                    decompress=False,
                )

                if state.redirect_count > self.max_redirects:
                    error = MaxRedirectsError(raw.status_code, current, self.max_redirects)
                    error.response = response
                    self._logger.error("Too many redirects", **error.to_dict())
                    yield ErrorEvent(error)
                    return

                next_url = urljoin(current.href, location)
                state.redirect_urls.append(next_url)
                state.descriptor = current.with_url(next_url)

                self._logger.debug(
                    "Following redirect",
                    status_code=raw.status_code,
                    url=current.href,
                    location=next_url,
                    redirect_count=state.redirect_count,
                )
                yield RedirectEvent(response, state.descriptor)
                continue

            response = Response(
                raw,
                current,
                request_url=state.request_url,
                redirect_urls=state.redirect_urls,
                decompress=current.method != 'HEAD',
            )

            # Обработчики, подписанные синхронно после старта, успевают получить ответ
            await asyncio.sleep(0)

            self._logger.debug(
                "Response received",
                method=current.method,
                url=current.href,
                status_code=response.status_code,
            )
            yield ResponseEvent(response)
            return
