"""
Дескриптор запроса и его построение из пользовательских опций.

RequestDescriptor - неизменяемое, полностью разрешённое описание одного
логического запроса: URL с уже подставленным query, метод, заголовки
(ключи в нижнем регистре), тело, политика retry, дедлайн, режим JSON.

Вид тела (BodyKind) определяется один раз при построении дескриптора.
"""

import base64
import json as jsonlib
import re
from collections.abc import AsyncIterable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from .._version import __version__
from .config import HTTPClientConfig
from .exceptions import ConfigurationError
from .retry_policy import BackoffRetryPolicy, RetryPolicy, resolve_retry_policy

SUPPORTED_SCHEMES = frozenset({'http', 'https'})
PAYLOAD_METHODS = frozenset({'POST', 'PUT', 'PATCH'})

DEFAULT_USER_AGENT = f"http-request-core/{__version__}"
DEFAULT_ACCEPT_ENCODING = "gzip,deflate"

_SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*://')
_UNIX_PATH_RE = re.compile(r'(.+):(.+)')

_MISSING: Any = object()

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BODY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class BodyKind(str, Enum):
    """Вид тела запроса."""
    EMPTY = "empty"
    BYTES = "bytes"
    TEXT = "text"
    MULTIPART_STREAM = "multipart_stream"
    STREAM = "stream"
    STREAM_FACTORY = "stream_factory"


@dataclass(frozen=True)
class MultipartStream:
    """
    Готовый multipart/form-data поток с известным boundary.

    Args:
        stream: Итерируемый (sync или async) источник байтов
        boundary: Boundary, которым закодирован поток

    Example:
        >>> body = MultipartStream(encoder_stream, boundary="----abc")
        >>> await client.post(url, body=body)
    """
    stream: Any
    boundary: str


@dataclass(frozen=True)
class Body:
    """
    Тело запроса как tagged variant.

    Attributes:
        kind: Вид тела
        payload: bytes, str, поток или фабрика потоков
        boundary: Boundary для MULTIPART_STREAM
    """
    kind: BodyKind = BodyKind.EMPTY
    payload: Any = None
    boundary: Optional[str] = None

    @property
    def is_fixed(self) -> bool:
        """Тело известно целиком (bytes/str)."""
        return self.kind in (BodyKind.BYTES, BodyKind.TEXT)

    @property
    def is_stream(self) -> bool:
        """Одноразовый поток."""
        return self.kind in (BodyKind.STREAM, BodyKind.MULTIPART_STREAM)

    def content_length(self) -> Optional[int]:
        """Длина в байтах для фиксированного тела, иначе None."""
        if self.kind is BodyKind.BYTES:
            return len(self.payload)
        if self.kind is BodyKind.TEXT:
            return len(self.payload.encode('utf-8'))
        if self.kind is BodyKind.EMPTY:
            return 0
        return None

    def open(self) -> Any:
        """
        Источник байтов для очередной попытки.

        Для STREAM_FACTORY каждый вызов создаёт новый поток.
        """
        if self.kind is BodyKind.STREAM_FACTORY:
            return self.payload()
        return self.payload


def _is_stream(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray, memoryview, Mapping)):
        return False
    return isinstance(value, (AsyncIterable, Iterable))

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DESCRIPTOR
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class RequestDescriptor:
    """
    Полностью разрешённая конфигурация логического запроса.

    Производные поля (protocol, host, hostname, path, href) вычисляются из url,
    поэтому редирект меняет только url (см. with_url).

    Examples:
        >>> d = RequestDescriptor(url="https://example.com/a?b=1")
        >>> d.protocol, d.host, d.path
        ('https:', 'example.com', '/a?b=1')
    """
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: Body = field(default_factory=Body)
    follow_redirect: bool = True
    retry_policy: RetryPolicy = field(default_factory=BackoffRetryPolicy)
    timeout_ms: Optional[float] = None
    json: bool = False
    encoding: Optional[str] = "utf-8"
    socket_path: Optional[str] = None

    def __post_init__(self):
        """Normalize method and freeze headers."""
        object.__setattr__(self, 'method', self.method.upper())
        object.__setattr__(
            self,
            'headers',
            MappingProxyType({str(k).lower(): str(v) for k, v in self.headers.items()}),
        )

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme.lower()

    @property
    def protocol(self) -> str:
        """Схема в форме 'https:'."""
        return f"{self.scheme}:"

    @property
    def host(self) -> Optional[str]:
        """host[:port]; None для unix socket."""
        if self.socket_path is not None:
            return None
        return urlsplit(self.url).netloc or None

    @property
    def hostname(self) -> Optional[str]:
        if self.socket_path is not None:
            return None
        return urlsplit(self.url).hostname

    @property
    def path(self) -> str:
        """Путь вместе с query."""
        parts = urlsplit(self.url)
        path = parts.path or '/'
        if parts.query:
            path += '?' + parts.query
        return path

    @property
    def href(self) -> str:
        return self.url

    @property
    def has_supported_protocol(self) -> bool:
        return self.scheme in SUPPORTED_SCHEMES

    @property
    def accepts_body(self) -> bool:
        """Нужен ли поток тела запроса для транспорта."""
        return self.body.kind is not BodyKind.EMPTY or self.method in PAYLOAD_METHODS

    def with_url(self, url: str) -> 'RequestDescriptor':
        """Копия дескриптора с другим целевым URL (остальные поля без изменений)."""
        return replace(self, url=url)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BUILDER
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _normalize_url(url: Union[str, httpx.URL], query: Any) -> Tuple[str, Optional[str]]:
    """
    Разобрать URL: схема по умолчанию, query, unix socket.

    Returns:
        (url, socket_path)
    """
    if isinstance(url, httpx.URL):
        url = str(url)

    if not isinstance(url, str):
        raise ConfigurationError(
            f"Parameter `url` must be a string or httpx.URL, not {type(url).__name__}"
        )

    url = url.strip()
    if url.startswith('unix:'):
        url = 'http://' + url
    elif url.startswith('//'):
        url = 'http:' + url
    elif not _SCHEME_RE.match(url):
        url = 'http://' + url

    parts = urlsplit(url)

    if parts.username is not None or parts.password is not None:
        raise ConfigurationError("Basic authentication must be done with auth option")

    if query:
        if not isinstance(query, str):
            query = urlencode(query, doseq=True)
        parts = parts._replace(query=query.lstrip('?'))

    path = parts.path or '/'
    socket_path = None

    # unix:/var/run/docker.sock:/containers/json
    if parts.hostname == 'unix':
        match = _UNIX_PATH_RE.match(path)
        if match:
            socket_path = match.group(1)
            path = match.group(2)
            parts = parts._replace(netloc='localhost')

    return urlunsplit(parts._replace(path=path)), socket_path


def _build_body(
    body: Any,
    headers: Dict[str, str],
    form: bool,
    json: bool,
) -> Body:
    """Определить BodyKind и проставить content-type / content-length."""
    if body is None:
        return Body()

    if isinstance(body, MultipartStream):
        if form or json:
            raise ConfigurationError("body must be a mapping when form or json is used")
        headers.setdefault('content-type', f"multipart/form-data; boundary={body.boundary}")
        return Body(BodyKind.MULTIPART_STREAM, body.stream, boundary=body.boundary)

    if form:
        if not isinstance(body, Mapping):
            raise ConfigurationError("body must be a mapping when form or json is used")
        headers.setdefault('content-type', 'application/x-www-form-urlencoded')
        result = Body(BodyKind.TEXT, urlencode(body, doseq=True))
    elif json:
        if not isinstance(body, (Mapping, list)):
            raise ConfigurationError("body must be a mapping when form or json is used")
        headers.setdefault('content-type', 'application/json')
        result = Body(BodyKind.TEXT, jsonlib.dumps(body))
    elif isinstance(body, str):
        result = Body(BodyKind.TEXT, body)
    elif isinstance(body, (bytes, bytearray, memoryview)):
        result = Body(BodyKind.BYTES, bytes(body))
    elif _is_stream(body):
        return Body(BodyKind.STREAM, body)
    elif callable(body):
        return Body(BodyKind.STREAM_FACTORY, body)
    else:
        raise ConfigurationError(
            "body must be a str, bytes, stream, stream factory or a mapping "
            f"(with form or json), not {type(body).__name__}"
        )

    if 'content-length' not in headers and 'transfer-encoding' not in headers:
        headers['content-length'] = str(result.content_length())

    return result


def _basic_auth(auth: Tuple[str, str]) -> str:
    user, password = auth
    token = base64.b64encode(f"{user}:{password}".encode('utf-8')).decode('ascii')
    return f"Basic {token}"


def build_descriptor(
    url: Union[str, httpx.URL],
    *,
    method: Optional[str] = None,
    headers: Optional[Mapping[str, Any]] = None,
    query: Union[str, Mapping[str, Any], None] = None,
    body: Any = None,
    json: bool = False,
    form: bool = False,
    auth: Optional[Tuple[str, str]] = None,
    encoding: Optional[str] = _MISSING,
    retries: Union[int, RetryPolicy, None] = None,
    follow_redirect: Optional[bool] = None,
    timeout: Optional[float] = None,
    config: Optional[HTTPClientConfig] = None,
) -> RequestDescriptor:
    """
    Построить RequestDescriptor из URL и опций.

    Args:
        url: Абсолютный URL; без схемы подставляется http://,
             unix:/path/to.sock:/request/path - запрос через unix socket
        method: HTTP метод (по умолчанию GET, или POST если есть body)
        headers: Заголовки запроса (ключи приводятся к нижнему регистру)
        query: Query строка или mapping (заменяет query из URL)
        body: str, bytes, поток (sync/async iterable), MultipartStream,
              фабрика потоков (callable) или mapping при form/json
        json: Кодировать body как JSON и декодировать JSON ответа
        form: Кодировать body как application/x-www-form-urlencoded
        auth: (user, password) для Basic авторизации
        encoding: Кодировка тела ответа; None - вернуть bytes
        retries: Количество повторов или своя политика (attempt, error) -> ms
        follow_redirect: Следовать редиректам (GET/HEAD)
        timeout: Дедлайн попытки в миллисекундах
        config: Конфигурация клиента с умолчаниями

    Returns:
        RequestDescriptor

    Raises:
        ConfigurationError: Невалидная комбинация опций

    Examples:
        >>> build_descriptor("example.com/search", query={"q": "python"})
        >>> build_descriptor("https://api.example.com", body={"a": 1}, json=True)
    """
    config = config or HTTPClientConfig()

    full_url, socket_path = _normalize_url(url, query)

    merged: Dict[str, str] = {
        'user-agent': config.user_agent or DEFAULT_USER_AGENT,
        'accept-encoding': DEFAULT_ACCEPT_ENCODING,
    }
    merged.update(config.headers)
    if headers:
        merged.update({str(k).lower(): str(v) for k, v in headers.items()})

    if json and 'accept' not in merged:
        merged['accept'] = 'application/json'

    if auth is not None:
        merged.setdefault('authorization', _basic_auth(auth))

    request_body = _build_body(body, merged, form=form, json=json)

    if method is None:
        method = 'POST' if request_body.kind is not BodyKind.EMPTY else 'GET'

    if timeout is None:
        timeout = config.timeout_ms
    if timeout is not None and timeout <= 0:
        raise ConfigurationError("timeout must be a positive number of milliseconds")

    return RequestDescriptor(
        url=full_url,
        method=method,
        headers=merged,
        body=request_body,
        follow_redirect=config.follow_redirect if follow_redirect is None else follow_redirect,
        retry_policy=resolve_retry_policy(retries, config.retry),
        timeout_ms=timeout,
        json=json,
        encoding=config.encoding if encoding is _MISSING else encoding,
        socket_path=socket_path,
    )
