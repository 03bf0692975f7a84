"""
Функции уровня модуля для одиночных запросов.

Каждый вызов создаёт клиент на один логический запрос и закрывает его.
Для серии запросов выгоднее AsyncHTTPClient (общий пул соединений).

Example:
    >>> import http_request_core as hrc
    >>> response = await hrc.get("https://example.com/", json=True)
    >>> stream = hrc.stream_get("https://example.com/file.bin")
"""

from typing import Any, Optional

from .client import AsyncHTTPClient
from .core.config import HTTPClientConfig
from .core.response import Response
from .core.streaming import DuplexStream


async def request(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> Response:
    """
    Выполнить buffered запрос.

    Args:
        url: URL запроса
        config: Конфигурация клиента (по умолчанию HTTPClientConfig())
        **options: Опции запроса (см. AsyncHTTPClient.request)
    """
    async with AsyncHTTPClient(config) as client:
        return await client.request(url, **options)


async def get(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> Response:
    options["method"] = "GET"
    return await request(url, config, **options)


async def post(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> Response:
    options["method"] = "POST"
    return await request(url, config, **options)


async def put(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> Response:
    options["method"] = "PUT"
    return await request(url, config, **options)


async def patch(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> Response:
    options["method"] = "PATCH"
    return await request(url, config, **options)


async def head(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> Response:
    options["method"] = "HEAD"
    return await request(url, config, **options)


async def delete(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> Response:
    options["method"] = "DELETE"
    return await request(url, config, **options)


def stream(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> DuplexStream:
    """
    Запрос в stream режиме; клиент закрывается, когда поток завершён.

    Raises:
        ConfigurationError: json=True или невалидные опции (синхронно)
    """
    client = AsyncHTTPClient(config)
    descriptor = client.build(url, **options)
    return client.open_stream(descriptor, on_close=client.close)


def stream_get(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> DuplexStream:
    options["method"] = "GET"
    return stream(url, config, **options)


def stream_post(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> DuplexStream:
    options["method"] = "POST"
    return stream(url, config, **options)


def stream_put(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> DuplexStream:
    options["method"] = "PUT"
    return stream(url, config, **options)


def stream_patch(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> DuplexStream:
    options["method"] = "PATCH"
    return stream(url, config, **options)


def stream_head(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> DuplexStream:
    options["method"] = "HEAD"
    return stream(url, config, **options)


def stream_delete(url: Any, config: Optional[HTTPClientConfig] = None, **options: Any) -> DuplexStream:
    options["method"] = "DELETE"
    return stream(url, config, **options)
