"""
Local HTTP/1.1 server for integration tests.

Handlers receive a ``ServerRequest`` and return ``(status, headers, body)``;
async handlers are awaited. Returning ``None`` drops the connection
without a response.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Optional

import pytest_asyncio


@dataclass
class ServerRequest:
    method: str
    target: str
    headers: Dict[str, str]
    body: bytes

    @property
    def path(self) -> str:
        return self.target.split("?", 1)[0]


@dataclass
class LocalServer:
    handler: Callable[[ServerRequest], Any]
    requests: List[ServerRequest] = field(default_factory=list)
    url: str = ""
    _server: Optional[asyncio.AbstractServer] = None

    async def start(self, unix_path: Optional[str] = None) -> "LocalServer":
        if unix_path is not None:
            self._server = await asyncio.start_unix_server(self._serve, path=unix_path)
            self.url = f"unix:{unix_path}:"
        else:
            self._server = await asyncio.start_server(self._serve, "127.0.0.1", 0)
            port = self._server.sockets[0].getsockname()[1]
            self.url = f"http://127.0.0.1:{port}"
        return self

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def _serve(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                try:
                    request = await _read_request(reader)
                except (asyncio.IncompleteReadError, ConnectionError):
                    break
                self.requests.append(request)

                result = self.handler(request)
                if inspect.isawaitable(result):
                    result = await result
                if result is None:
                    break

                status, headers, body = result
                writer.write(_encode_response(request.method, status, headers, body))
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            writer.close()


async def _read_request(reader: asyncio.StreamReader) -> ServerRequest:
    head = await reader.readuntil(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    method, target, _ = lines[0].split(" ", 2)

    headers = {}
    for line in lines[1:]:
        if line:
            key, value = line.split(":", 1)
            headers[key.strip().lower()] = value.strip()

    body = b""
    if headers.get("transfer-encoding", "").lower() == "chunked":
        while True:
            size = int((await reader.readline()).split(b";")[0].strip(), 16)
            if size == 0:
                await reader.readline()
                break
            body += await reader.readexactly(size)
            await reader.readexactly(2)
    elif "content-length" in headers:
        body = await reader.readexactly(int(headers["content-length"]))

    return ServerRequest(method, target, headers, body)


def _encode_response(method: str, status: int, headers: Dict[str, str], body: bytes) -> bytes:
    try:
        reason = HTTPStatus(status).phrase
    except ValueError:
        reason = "Unknown"

    lines = [f"HTTP/1.1 {status} {reason}"]
    lines.extend(f"{key}: {value}" for key, value in headers.items())
    if not any(key.lower() == "content-length" for key in headers):
        lines.append(f"Content-Length: {len(body)}")

    head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
    if method == "HEAD" or status in (204, 304):
        return head
    return head + body


@pytest_asyncio.fixture
async def local_server():
    """
    Factory: start a LocalServer with the given handler.

    Example:
        async def test_x(local_server):
            server = await local_server(lambda request: (200, {}, b"ok"))
    """
    servers = []

    async def factory(handler, unix_path: Optional[str] = None) -> LocalServer:
        server = await LocalServer(handler).start(unix_path)
        servers.append(server)
        return server

    yield factory

    for server in servers:
        await server.stop()
