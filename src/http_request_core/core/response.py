"""
Response - ответ, опубликованный движком запросов.

Оборачивает httpx.Response, добавляя финальный URL, исходный URL
и цепочку редиректов. Тело читается ровно один раз.
"""

from typing import AsyncIterator, Iterable, List, TYPE_CHECKING

import httpx

from .exceptions import status_message_for

if TYPE_CHECKING:
    from .descriptor import RequestDescriptor


def is_status_acceptable(status_code: int, follow_redirect: bool = True) -> bool:
    """
    Проверить, попадает ли статус в окно успеха.

    Окно: 200..299 при follow_redirect, иначе 200..399. 304 допустим всегда.

    Examples:
        >>> is_status_acceptable(304)
        True
        >>> is_status_acceptable(302, follow_redirect=False)
        True
        >>> is_status_acceptable(302)
        False
    """
    upper = 299 if follow_redirect else 399
    return status_code == 304 or 200 <= status_code <= upper


class Response:
    """
    HTTP ответ.

    Attributes:
        status_code: HTTP статус
        status_message: Reason phrase
        headers: Заголовки ответа (httpx.Headers, регистр ключей не важен)
        method: Метод запроса
        url: Финальный URL (после редиректов)
        request_url: Исходный URL логического запроса
        redirect_urls: URL всех пройденных редиректов по порядку
        body: Тело после буферизации (str, bytes или JSON); None в stream режиме
        raw: Исходный httpx.Response
    """

    def __init__(
        self,
        raw: httpx.Response,
        descriptor: 'RequestDescriptor',
        request_url: str,
        redirect_urls: Iterable[str] = (),
        decompress: bool = True,
    ):
        self.raw = raw
        self.descriptor = descriptor
        self.status_code = raw.status_code
        self.status_message = raw.reason_phrase or status_message_for(raw.status_code)
        self.headers = raw.headers
        self.method = descriptor.method
        self.url = descriptor.href
        self.request_url = request_url
        self.redirect_urls: List[str] = list(redirect_urls)
        self.body = None

        # httpx декодирует content-encoding (gzip, deflate, br, zstd) в aiter_bytes
        self._stream: AsyncIterator[bytes] = raw.aiter_bytes() if decompress else raw.aiter_raw()
        self._consumed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        """
        Итератор по телу ответа (уже распакованному).

        Raises:
            RuntimeError: Тело уже прочитано
        """
        if self._consumed:
            raise RuntimeError("Response body has already been consumed")
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._stream:
                if chunk:
                    yield chunk
        finally:
            await self.raw.aclose()

    async def aread(self) -> bytes:
        """Прочитать тело целиком."""
        return b"".join([chunk async for chunk in self.aiter_bytes()])

    async def aclose(self) -> None:
        """Закрыть соединение без чтения тела."""
        await self.raw.aclose()

    def __repr__(self) -> str:
        return f"<Response [{self.status_code} {self.status_message or ''}]>".replace(" ]", "]")
