"""
Асинхронный HTTP клиент: buffered и streaming запросы.

Клиент разделяет между запросами конфигурацию и пул соединений httpx.
Каждый вызов - отдельный логический запрос со своими retry и редиректами.
"""

import time
import uuid
from typing import Any, Awaitable, Callable, Optional

import httpx

from .core.buffered import BufferedAdapter
from .core.config import HTTPClientConfig
from .core.descriptor import RequestDescriptor, build_descriptor
from .core.engine import RequestEngine
from .core.exceptions import HTTPClientException
from .core.logging import HTTPClientLogger
from .core.logging.filters import reset_correlation_id, set_correlation_id
from .core.response import Response
from .core.streaming import DuplexStream
from .core.transport import Transport


class AsyncHTTPClient:
    """
    Асинхронный HTTP клиент с retry, редиректами и stream режимом.

    Example:
        >>> async with AsyncHTTPClient(retries=3, timeout_ms=5000) as client:
        ...     response = await client.get("https://api.example.com/users", json=True)
        ...     print(response.body)

        >>> # Stream режим
        >>> async with client.stream_get("https://example.com/big.bin") as stream:
        ...     async for chunk in stream:
        ...         handle(chunk)

    Args:
        config: HTTPClientConfig (если указан, остальные параметры игнорируются)
        transport: Свой httpx транспорт (например httpx.MockTransport)
        sleep: Функция ожидания между retry (секунды)
        **kwargs: Параметры HTTPClientConfig.create()
    """

    def __init__(
        self,
        config: Optional[HTTPClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        **kwargs: Any,
    ):
        self._config = config if config is not None else HTTPClientConfig.create(**kwargs)

        if self._config.logging is not None:
            self._logger = HTTPClientLogger(self._config.logging)
        else:
            self._logger = HTTPClientLogger(name="http_request_core.client")

        self._transport = Transport(verify_ssl=self._config.verify_ssl, transport=transport)

        engine_kwargs: dict = {"logger": self._logger}
        if sleep is not None:
            engine_kwargs["sleep"] = sleep
        self._engine = RequestEngine(self._transport, **engine_kwargs)
        self._buffered = BufferedAdapter(self._engine, logger=self._logger)

    @property
    def config(self) -> HTTPClientConfig:
        return self._config

    @property
    def engine(self) -> RequestEngine:
        return self._engine

    async def __aenter__(self) -> "AsyncHTTPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Закрыть соединения и освободить ресурсы."""
        await self._transport.close()

    def build(self, url: Any, **options: Any) -> RequestDescriptor:
        """
        Построить дескриптор запроса с умолчаниями клиента.

        Raises:
            ConfigurationError: Невалидные опции
        """
        return build_descriptor(url, config=self._config, **options)

    # ==================== Buffered ====================

    async def request(self, url: Any, **options: Any) -> Response:
        """
        Выполнить логический запрос и прочитать тело ответа.

        Args:
            url: URL запроса
            **options: Опции build_descriptor() (method, headers, query, body,
                       json, form, auth, encoding, retries, follow_redirect, timeout)

        Returns:
            Response с заполненным body

        Raises:
            ConfigurationError: Невалидные опции (до сетевого обмена)
            RequestError, ReadError, ParseError, HTTPError,
            MaxRedirectsError, UnsupportedProtocolError
        """
        descriptor = self.build(url, **options)

        token = set_correlation_id(uuid.uuid4().hex[:16])
        start = time.monotonic()
        try:
            response = await self._buffered.execute(descriptor)
            self._logger.info(
                "Request completed",
                method=descriptor.method,
                url=response.url,
                status_code=response.status_code,
                redirects=len(response.redirect_urls),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            return response
        except HTTPClientException as error:
            self._logger.warning(
                "Request failed",
                duration_ms=round((time.monotonic() - start) * 1000, 2),
                **error.to_dict(),
            )
            raise
        finally:
            reset_correlation_id(token)

    async def get(self, url: Any, **options: Any) -> Response:
        """GET запрос."""
        options["method"] = "GET"
        return await self.request(url, **options)

    async def post(self, url: Any, **options: Any) -> Response:
        """POST запрос."""
        options["method"] = "POST"
        return await self.request(url, **options)

    async def put(self, url: Any, **options: Any) -> Response:
        """PUT запрос."""
        options["method"] = "PUT"
        return await self.request(url, **options)

    async def patch(self, url: Any, **options: Any) -> Response:
        """PATCH запрос."""
        options["method"] = "PATCH"
        return await self.request(url, **options)

    async def head(self, url: Any, **options: Any) -> Response:
        """HEAD запрос."""
        options["method"] = "HEAD"
        return await self.request(url, **options)

    async def delete(self, url: Any, **options: Any) -> Response:
        """DELETE запрос."""
        options["method"] = "DELETE"
        return await self.request(url, **options)

    # ==================== Streaming ====================

    def open_stream(
        self,
        descriptor: RequestDescriptor,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> DuplexStream:
        """
        Запустить готовый дескриптор в stream режиме.

        Фоновая задача потока получает свой correlation id.
        """
        token = set_correlation_id(uuid.uuid4().hex[:16])
        try:
            return DuplexStream(descriptor, self._engine, logger=self._logger, on_close=on_close)
        finally:
            reset_correlation_id(token)

    def stream(self, url: Any, **options: Any) -> DuplexStream:
        """
        Логический запрос как duplex поток.

        Должен вызываться внутри работающего event loop.

        Raises:
            ConfigurationError: json=True или невалидные опции
        """
        return self.open_stream(self.build(url, **options))

    def stream_get(self, url: Any, **options: Any) -> DuplexStream:
        options["method"] = "GET"
        return self.stream(url, **options)

    def stream_post(self, url: Any, **options: Any) -> DuplexStream:
        options["method"] = "POST"
        return self.stream(url, **options)

    def stream_put(self, url: Any, **options: Any) -> DuplexStream:
        options["method"] = "PUT"
        return self.stream(url, **options)

    def stream_patch(self, url: Any, **options: Any) -> DuplexStream:
        options["method"] = "PATCH"
        return self.stream(url, **options)

    def stream_head(self, url: Any, **options: Any) -> DuplexStream:
        options["method"] = "HEAD"
        return self.stream(url, **options)

    def stream_delete(self, url: Any, **options: Any) -> DuplexStream:
        options["method"] = "DELETE"
        return self.stream(url, **options)
