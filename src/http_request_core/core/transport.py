"""
Транспорт: один HTTP обмен через httpx.

httpx используется как транспорт одного обмена: редиректы, retry и
распаковка тела выполняются движком, поэтому клиент создаётся с
follow_redirects=False, а ответ читается как поток.

RequestChannel - записываемая сторона тела запроса. Движок публикует её
в событии `request`, адаптеры пишут в неё тело (целиком, из потока или
из duplex входа).
"""

import asyncio
import logging
from collections.abc import AsyncIterable
from typing import Any, AsyncIterator, Dict, Optional, TYPE_CHECKING

import httpx

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .descriptor import RequestDescriptor

logger = logging.getLogger(__name__)

_EOF = object()


class _Pipe:
    __slots__ = ('source',)

    def __init__(self, source: Any):
        self.source = source


def to_bytes(data: Any) -> bytes:
    """Привести чанк тела к bytes (str кодируется в UTF-8)."""
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode('utf-8')
    raise ConfigurationError(
        f"body chunks must be bytes or str, not {type(data).__name__}"
    )


async def iterate_source(source: Any) -> AsyncIterator[bytes]:
    """Итерировать sync или async источник байтов."""
    if isinstance(source, AsyncIterable):
        async for chunk in source:
            yield to_bytes(chunk)
    else:
        for chunk in source:
            yield to_bytes(chunk)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REQUEST CHANNEL
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RequestChannel:
    """
    Записываемое тело запроса одной попытки.

    Данные накапливаются в очереди и отдаются httpx как async iterable.
    Тело завершается либо end(), либо pipe(source) - после pipe всё
    содержимое источника уходит в запрос и канал закрывается.

    Args:
        accepts_body: False для запросов без тела (GET без body и т.п.)
        not_writable_message: Текст ConfigurationError при записи в такой канал

    Example:
        >>> channel.write(b"chunk-1")
        >>> channel.end(b"chunk-2")
    """

    def __init__(self, accepts_body: bool = True, not_writable_message: Optional[str] = None):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._accepts_body = accepts_body
        self._not_writable_message = not_writable_message or "Request does not accept a body"
        self._ended = False
        self._drained = False
        self.bytes_written = 0

    @property
    def writable(self) -> bool:
        return self._accepts_body and not self._ended

    @property
    def ended(self) -> bool:
        return self._ended

    def _check_writable(self, operation: str) -> None:
        if not self._accepts_body:
            raise ConfigurationError(self._not_writable_message)
        if self._ended:
            raise ConfigurationError(f"{operation} after end")

    def write(self, data: Any) -> None:
        """Записать чанк тела."""
        self._check_writable("write")
        chunk = to_bytes(data)
        if chunk:
            self.bytes_written += len(chunk)
            self._queue.put_nowait(chunk)

    def end(self, data: Any = None) -> None:
        """Завершить тело (опционально с последним чанком). Повторный вызов - no-op."""
        if self._ended:
            return
        if data is not None and len(data):
            self.write(data)
        self._ended = True
        self._queue.put_nowait(_EOF)

    def pipe(self, source: Any) -> None:
        """Отправить источник (sync/async iterable) как остаток тела и завершить его."""
        self._check_writable("pipe")
        self._ended = True
        self._queue.put_nowait(_Pipe(source))

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        # Повторная итерация после завершения тела ничего не отдаёт
        while not self._drained:
            item = await self._queue.get()
            if item is _EOF:
                self._drained = True
                return
            if isinstance(item, _Pipe):
                async for chunk in iterate_source(item.source):
                    if chunk:
                        self.bytes_written += len(chunk)
                        yield chunk
                self._drained = True
                return
            yield item

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CONNECTION / TRANSPORT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Connection:
    """
    Одна попытка: собранный httpx.Request и его канал тела.

    send() ждёт заголовки ответа; если задан дедлайн, по его истечении
    бросается httpx.TimeoutException.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        channel: RequestChannel,
        timeout_ms: Optional[float] = None,
    ):
        self.request = request
        self.channel = channel
        self._client = client
        self._timeout_ms = timeout_ms

    async def send(self) -> httpx.Response:
        send = self._client.send(self.request, stream=True)
        if self._timeout_ms is None:
            return await send

        try:
            return await asyncio.wait_for(send, self._timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            raise httpx.TimeoutException(
                f"Timeout awaiting response ({self._timeout_ms:g} ms)",
                request=self.request,
            ) from exc


class Transport:
    """
    Фабрика соединений поверх httpx.AsyncClient.

    Клиенты создаются лениво: один основной и по одному на каждый
    unix socket.

    Args:
        verify_ssl: Проверять SSL сертификаты
        transport: Свой httpx транспорт (например httpx.MockTransport в тестах)
        client: Готовый httpx.AsyncClient (не закрывается в close())
    """

    def __init__(
        self,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._verify_ssl = verify_ssl
        self._transport = transport
        self._client = client
        self._owns_client = client is None
        self._socket_clients: Dict[str, httpx.AsyncClient] = {}

    def _create_client(self, transport: Optional[httpx.AsyncBaseTransport]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=transport,
            verify=self._verify_ssl,
            follow_redirects=False,
            timeout=None,
        )

    def get_client(self, socket_path: Optional[str] = None) -> httpx.AsyncClient:
        """Ленивое создание клиента (для unix socket - отдельный клиент)."""
        if socket_path is not None:
            client = self._socket_clients.get(socket_path)
            if client is None:
                transport = self._transport or httpx.AsyncHTTPTransport(
                    uds=socket_path, verify=self._verify_ssl
                )
                client = self._create_client(transport)
                self._socket_clients[socket_path] = client
                logger.debug(f"Created unix socket client for {socket_path}")
            return client

        if self._client is None:
            self._client = self._create_client(self._transport)
            logger.debug("Created httpx.AsyncClient")
        return self._client

    def open(self, descriptor: 'RequestDescriptor') -> Connection:
        """
        Подготовить попытку запроса по дескриптору.

        Тело ещё не записано: его пишут в connection.channel.
        """
        client = self.get_client(descriptor.socket_path)

        if descriptor.accepts_body:
            channel = RequestChannel()
            content = channel
        else:
            channel = RequestChannel(
                accepts_body=False,
                not_writable_message=f"{descriptor.method} request without body is not writable",
            )
            content = None

        kwargs: Dict[str, Any] = {}
        if descriptor.timeout_ms is not None:
            kwargs['timeout'] = httpx.Timeout(descriptor.timeout_ms / 1000)

        request = client.build_request(
            descriptor.method,
            descriptor.url,
            headers=dict(descriptor.headers),
            content=content,
            **kwargs,
        )
        return Connection(client, request, channel, descriptor.timeout_ms)

    async def close(self) -> None:
        """Закрыть созданные клиенты."""
        for client in self._socket_clients.values():
            await client.aclose()
        self._socket_clients.clear()

        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
