"""
Streaming адаптер: логический запрос как duplex объект.

Записываемая сторона - тело запроса (для POST/PUT/PATCH без body),
читаемая сторона - тело финального ответа. События жизненного цикла
(request, redirect, response, error) доставляются подписчикам on().
"""

import asyncio
import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from .descriptor import BodyKind, PAYLOAD_METHODS, RequestDescriptor
from .engine import RequestEngine
from .events import ErrorEvent, RedirectEvent, RequestEvent, ResponseEvent
from .exceptions import ConfigurationError, HTTPClientException, HTTPError, ReadError, RequestError
from .logging import HTTPClientLogger
from .response import Response, is_status_acceptable
from .transport import RequestChannel

_EOF = object()

EVENTS = frozenset({'request', 'redirect', 'response', 'error'})


class DuplexStream:
    """
    Duplex поток одного логического запроса.

    Создаётся внутри работающего event loop; запрос стартует в фоновой
    задаче на следующей итерации loop, поэтому подписки, сделанные сразу
    после создания, получают все события.

    Читаемая сторона ограничена буфером в max_buffered_chunks чанков:
    если её не читать, передача тела ответа останавливается.
    Закрывать через aclose() или async with.

    Args:
        descriptor: Дескриптор запроса (json не поддерживается)
        engine: RequestEngine
        logger: HTTPClientLogger
        on_close: Корутина, вызываемая после завершения (закрыть клиент и т.п.)
        max_buffered_chunks: Размер буфера читаемой стороны

    Raises:
        ConfigurationError: json=True (синхронно, до любого обмена)

    Example:
        >>> stream = client.stream_post("https://example.com/upload")
        >>> stream.on("response", lambda r: print(r.status_code))
        >>> stream.write(b"chunk")
        >>> stream.end()
        >>> async for chunk in stream:
        ...     print(chunk)
    """

    def __init__(
        self,
        descriptor: RequestDescriptor,
        engine: RequestEngine,
        logger: Optional[HTTPClientLogger] = None,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
        max_buffered_chunks: int = 64,
    ):
        if descriptor.json:
            raise ConfigurationError("Stream mode can not be used together with json option")

        self.descriptor = descriptor
        self._engine = engine
        self._logger = logger or HTTPClientLogger(name="http_request_core.streaming")
        self._on_close = on_close
        self._listeners: Dict[str, List[Callable[..., Any]]] = {name: [] for name in EVENTS}

        if descriptor.body.kind is BodyKind.EMPTY:
            self._input = RequestChannel()
        else:
            self._input = RequestChannel(
                accepts_body=False,
                not_writable_message="Stream is not writable when request body is set",
            )

        self._output: asyncio.Queue = asyncio.Queue(maxsize=max_buffered_chunks)
        self._settled = asyncio.Event()
        self._response: Optional[Response] = None
        self._error: Optional[BaseException] = None
        self._output_finished = False
        self._stream_consumed = False

        self._task = asyncio.get_running_loop().create_task(self._drive())

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # PUBLIC API
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def on(self, event: str, handler: Callable[..., Any]) -> 'DuplexStream':
        """
        Подписаться на событие.

        Сигнатуры обработчиков (sync или async):
            request(channel), redirect(response, descriptor),
            response(response), error(error)

        Async обработчики выполняются до продолжения запроса:
        внутри них нельзя ждать тело ответа этого же потока.

        Raises:
            ValueError: Неизвестное событие
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}. Available: {', '.join(sorted(EVENTS))}")
        self._listeners[event].append(handler)
        return self

    @property
    def writable(self) -> bool:
        return self._input.writable

    def write(self, data: Any) -> None:
        """
        Записать чанк тела запроса.

        Raises:
            ConfigurationError: Тело запроса задано через body
        """
        self._input.write(data)

    def end(self, data: Any = None) -> None:
        """Завершить тело запроса."""
        if self.descriptor.body.kind is not BodyKind.EMPTY:
            if data is not None:
                self._input.write(data)
            return
        self._input.end(data)

    async def response(self) -> Response:
        """
        Дождаться ответа.

        Raises:
            HTTPClientException: Ошибка запроса или HTTPError (с .response)
        """
        await self._settled.wait()
        if self._error is not None:
            raise self._error
        return self._response

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_bytes()

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """
        Чанки тела ответа.

        Raises:
            HTTPClientException: Ошибка до получения ответа или ReadError
        """
        while True:
            item = await self._output.get()
            if item is _EOF:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def read(self) -> bytes:
        """Прочитать тело ответа целиком."""
        return b"".join([chunk async for chunk in self.iter_bytes()])

    async def aclose(self) -> None:
        """Прервать запрос и освободить ресурсы. Идемпотентно."""
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        if self._response is not None:
            await self._response.aclose()

    async def __aenter__(self) -> 'DuplexStream':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # DRIVER
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def _drive(self) -> None:
        try:
            async for event in self._engine.run(self.descriptor):
                if isinstance(event, RequestEvent):
                    await self._on_request(event)
                elif isinstance(event, RedirectEvent):
                    await self._emit('redirect', event.response, event.descriptor)
                elif isinstance(event, ResponseEvent):
                    await self._on_response(event.response)
                elif isinstance(event, ErrorEvent):
                    await self._fail(event.error)
        except HTTPClientException as error:
            await self._fail(error)
        except Exception as exc:
            await self._fail(RequestError(exc, self.descriptor))
        finally:
            if not self._settled.is_set():
                self._error = self._error or RequestError(
                    asyncio.CancelledError("Request aborted"), self.descriptor
                )
                self._settled.set()
            self._finish_output()
            if self._on_close is not None:
                await self._on_close()

    async def _on_request(self, event: RequestEvent) -> None:
        await self._emit('request', event.channel)

        body = self.descriptor.body
        channel = event.channel

        if body.kind is BodyKind.STREAM_FACTORY:
            channel.pipe(body.open())
        elif body.is_stream:
            if self._stream_consumed:
                # Поток уже прочитан предыдущей попыткой
                self._logger.warning(
                    "Streamed request body can not be replayed, sending attempt without body",
                    method=event.descriptor.method,
                    url=event.descriptor.href,
                    attempt=event.attempt,
                )
                channel.end()
            else:
                self._stream_consumed = True
                channel.pipe(body.payload)
        elif body.is_fixed:
            channel.end(body.payload)
        elif self.descriptor.method in PAYLOAD_METHODS:
            channel.pipe(self._input)
        else:
            channel.end()

    async def _on_response(self, response: Response) -> None:
        self._response = response

        if is_status_acceptable(response.status_code, follow_redirect=True):
            self._settled.set()
            await self._emit('response', response)
        else:
            error = HTTPError(response.status_code, response.descriptor)
            error.response = response
            self._error = error
            self._settled.set()
            await self._emit('error', error)

        # Тело отдаётся и при HTTPError
        try:
            async for chunk in response.aiter_bytes():
                await self._output.put(chunk)
        except Exception as exc:
            error = ReadError(exc, response.descriptor)
            error.response = response
            await self._output.put(error)
            self._output_finished = True
            await self._emit('error', error)
            return

        await self._output.put(_EOF)
        self._output_finished = True

    async def _fail(self, error: HTTPClientException) -> None:
        self._error = error
        self._settled.set()
        await self._output.put(error)
        self._output_finished = True
        await self._emit('error', error)

    def _finish_output(self) -> None:
        """Гарантировать EOF для читателей после отмены."""
        if self._output_finished:
            return
        self._output_finished = True
        while not self._output.empty():
            self._output.get_nowait()
        self._output.put_nowait(self._error if self._response is None else _EOF)

    async def _emit(self, event: str, *args: Any) -> None:
        for handler in list(self._listeners[event]):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self._logger.exception(
                    f"Error in {event} handler {getattr(handler, '__name__', handler)!r}",
                    method=self.descriptor.method,
                    url=self.descriptor.href,
                )
