"""
Buffered адаптер: логический запрос -> один Response с прочитанным телом.

Поверх событий движка:
- пишет тело запроса в каждую попытку
- читает тело ответа целиком, декодирует (encoding) и парсит JSON
- проверяет статус и превращает события error в исключения
"""

import json
from typing import Optional

from .descriptor import BodyKind, RequestDescriptor
from .engine import RequestEngine
from .events import ErrorEvent, RequestEvent, ResponseEvent
from .exceptions import HTTPClientException, HTTPError, ParseError, ReadError
from .logging import HTTPClientLogger
from .response import Response, is_status_acceptable


class BufferedAdapter:
    """
    Выполнить запрос и вернуть Response с заполненным `body`.

    Args:
        engine: RequestEngine
        logger: HTTPClientLogger (по умолчанию пассивный logger пакета)

    Example:
        >>> adapter = BufferedAdapter(engine)
        >>> response = await adapter.execute(descriptor)
        >>> response.body
        'ok'
    """

    def __init__(self, engine: RequestEngine, logger: Optional[HTTPClientLogger] = None):
        self.engine = engine
        self._logger = logger or HTTPClientLogger(name="http_request_core.buffered")

    async def execute(self, descriptor: RequestDescriptor) -> Response:
        """
        Raises:
            RequestError: Транспортная ошибка после исчерпания retry
            ReadError: Ошибка чтения тела ответа
            ParseError: Невалидный JSON (json=True)
            HTTPError: Статус вне окна успеха
            MaxRedirectsError: Больше 10 редиректов
            UnsupportedProtocolError: Схема не http/https
        """
        response: Optional[Response] = None
        error: Optional[HTTPClientException] = None
        stream_consumed = False

        async for event in self.engine.run(descriptor):
            if isinstance(event, RequestEvent):
                stream_consumed = self._write_body(event, stream_consumed)
            elif isinstance(event, ResponseEvent):
                response = event.response
            elif isinstance(event, ErrorEvent):
                error = event.error

        if error is not None:
            raise error

        return await self._finish(response)

    def _write_body(self, event: RequestEvent, stream_consumed: bool) -> bool:
        """Записать тело в попытку; вернуть, был ли уже отдан одноразовый поток."""
        body = event.descriptor.body
        channel = event.channel

        if body.kind is BodyKind.STREAM_FACTORY:
            channel.pipe(body.open())
            return stream_consumed

        if body.is_stream:
            if stream_consumed:
                # Поток уже прочитан предыдущей попыткой
                self._logger.warning(
                    "Streamed request body can not be replayed, sending attempt without body",
                    method=event.descriptor.method,
                    url=event.descriptor.href,
                    attempt=event.attempt,
                )
                channel.end()
                return True
            channel.pipe(body.payload)
            return True

        channel.end(body.payload)
        return stream_consumed

    async def _finish(self, response: Response) -> Response:
        descriptor = response.descriptor

        try:
            data = await response.aread()
            if descriptor.encoding is not None:
                data = data.decode(descriptor.encoding, errors='replace')
        except Exception as exc:
            error = ReadError(exc, descriptor)
            error.response = response
            raise error from exc

        response.body = data

        try:
            if descriptor.json and data:
                try:
                    response.body = json.loads(data)
                except ValueError as exc:
                    raise ParseError(exc, response.status_code, descriptor, data) from exc

            if not is_status_acceptable(response.status_code, descriptor.follow_redirect):
                raise HTTPError(response.status_code, descriptor)
        except HTTPClientException as error:
            error.response = response
            raise

        return response
