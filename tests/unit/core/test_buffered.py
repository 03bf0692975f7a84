"""
Tests for the buffered adapter.
"""

import json
import logging

import httpx
import pytest

from http_request_core.core.buffered import BufferedAdapter
from http_request_core.core.descriptor import build_descriptor
from http_request_core.core.exceptions import (
    HTTPError,
    MaxRedirectsError,
    ParseError,
    ReadError,
    RequestError,
    UnsupportedProtocolError,
)


class FailingStream(httpx.AsyncByteStream):
    """Response body that breaks after the first chunk."""

    async def __aiter__(self):
        yield b"partial"
        raise httpx.ReadError("connection lost")


@pytest.fixture
def make_adapter(make_engine):
    def factory(handler) -> BufferedAdapter:
        return BufferedAdapter(make_engine(handler))

    return factory


class TestBody:
    """Reading and decoding the response body."""

    @pytest.mark.asyncio
    async def test_text_body(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(200, text="привет"))
        response = await adapter.execute(build_descriptor("https://example.com/"))
        assert response.body == "привет"
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_bytes_body_without_encoding(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(200, content=b"\x00\xff"))
        response = await adapter.execute(build_descriptor("https://example.com/", encoding=None))
        assert response.body == b"\x00\xff"

    @pytest.mark.asyncio
    async def test_custom_encoding(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(200, content="café".encode("latin-1")))
        response = await adapter.execute(build_descriptor("https://example.com/", encoding="latin-1"))
        assert response.body == "café"

    @pytest.mark.asyncio
    async def test_invalid_bytes_are_replaced(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(200, content=b"ok\xff"))
        response = await adapter.execute(build_descriptor("https://example.com/"))
        assert response.body == "ok�"

    @pytest.mark.asyncio
    async def test_read_failure(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(200, stream=FailingStream()))

        with pytest.raises(ReadError, match="connection lost") as exc_info:
            await adapter.execute(build_descriptor("https://example.com/"))

        assert exc_info.value.response is not None
        assert exc_info.value.response.status_code == 200


class TestJSON:
    """JSON mode."""

    @pytest.mark.asyncio
    async def test_round_trip(self, make_adapter):
        async def handler(request: httpx.Request):
            payload = json.loads(await request.aread())
            assert request.headers["content-type"] == "application/json"
            assert request.headers["accept"] == "application/json"
            return httpx.Response(200, json={"echo": payload})

        adapter = make_adapter(handler)
        response = await adapter.execute(
            build_descriptor("https://example.com/", body={"a": [1, 2]}, json=True)
        )
        assert response.body == {"echo": {"a": [1, 2]}}

    @pytest.mark.asyncio
    async def test_empty_body_is_not_parsed(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(204))
        response = await adapter.execute(build_descriptor("https://example.com/", json=True))
        assert response.body == ""

    @pytest.mark.asyncio
    async def test_invalid_json(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ParseError) as exc_info:
            await adapter.execute(build_descriptor("https://example.com/", json=True))

        error = exc_info.value
        assert error.status_code == 200
        assert error.response.body == "<html>oops</html>"
        assert "<html>oops</html>" in str(error)

    @pytest.mark.asyncio
    async def test_parse_error_wins_over_status(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(500, text="Internal error"))

        with pytest.raises(ParseError) as exc_info:
            await adapter.execute(build_descriptor("https://example.com/", json=True))
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_json_error_body_with_http_error(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(422, json={"detail": "bad"}))

        with pytest.raises(HTTPError) as exc_info:
            await adapter.execute(build_descriptor("https://example.com/", json=True))
        assert exc_info.value.response.body == {"detail": "bad"}


class TestStatusWindow:
    """Acceptable statuses."""

    @pytest.mark.asyncio
    async def test_404(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(404, text="missing"))

        with pytest.raises(HTTPError) as exc_info:
            await adapter.execute(build_descriptor("https://example.com/x"))

        error = exc_info.value
        assert error.status_code == 404
        assert error.status_message == "Not Found"
        assert error.response.body == "missing"
        assert error.url == "https://example.com/x"

    @pytest.mark.asyncio
    async def test_304_accepted(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(304))
        response = await adapter.execute(build_descriptor("https://example.com/"))
        assert response.status_code == 304

    @pytest.mark.asyncio
    async def test_3xx_accepted_without_follow(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(302, headers={"location": "/x"}))
        response = await adapter.execute(build_descriptor("https://example.com/", follow_redirect=False))
        assert response.status_code == 302

    @pytest.mark.asyncio
    async def test_3xx_rejected_with_follow(self, make_adapter):
        # POST is not redirected, the 302 is final
        adapter = make_adapter(lambda request: httpx.Response(302, headers={"location": "/x"}))

        with pytest.raises(HTTPError) as exc_info:
            await adapter.execute(build_descriptor("https://example.com/", method="POST"))
        assert exc_info.value.status_code == 302


class TestErrors:
    """Engine errors surface as exceptions."""

    @pytest.mark.asyncio
    async def test_request_error(self, make_adapter):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        adapter = make_adapter(handler)
        with pytest.raises(RequestError):
            await adapter.execute(build_descriptor("https://example.com/", retries=0))

    @pytest.mark.asyncio
    async def test_unsupported_protocol(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(200))
        with pytest.raises(UnsupportedProtocolError):
            await adapter.execute(build_descriptor("ftp://example.com/"))

    @pytest.mark.asyncio
    async def test_max_redirects(self, make_adapter):
        adapter = make_adapter(lambda request: httpx.Response(301, headers={"location": "/loop"}))
        with pytest.raises(MaxRedirectsError) as exc_info:
            await adapter.execute(build_descriptor("https://example.com/loop"))
        assert exc_info.value.response.status_code == 301

    @pytest.mark.asyncio
    async def test_body_source_failure(self, make_adapter, sleep_recorder):
        """Exception from the body source becomes a RequestError without retry."""
        async def source():
            yield b"a"
            raise ValueError("disk gone")

        adapter = make_adapter(lambda request: httpx.Response(200))
        with pytest.raises(RequestError) as exc_info:
            await adapter.execute(build_descriptor("https://example.com/upload", body=source()))

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert str(exc_info.value) == "disk gone"
        assert sleep_recorder.delays == []


class TestRequestBody:
    """Request body is written into every attempt."""

    @pytest.mark.asyncio
    async def test_fixed_body_replayed_on_retry(self, make_adapter):
        bodies = []

        async def handler(request: httpx.Request):
            bodies.append(await request.aread())
            if len(bodies) == 1:
                raise httpx.ReadError("reset", request=request)
            return httpx.Response(200)

        adapter = make_adapter(handler)
        await adapter.execute(build_descriptor("https://example.com/", body="payload"))
        assert bodies == [b"payload", b"payload"]

    @pytest.mark.asyncio
    async def test_stream_factory_replayed_on_retry(self, make_adapter):
        bodies = []

        async def handler(request: httpx.Request):
            bodies.append(await request.aread())
            if len(bodies) == 1:
                raise httpx.ReadError("reset", request=request)
            return httpx.Response(200)

        def factory():
            return iter([b"a", b"b"])

        adapter = make_adapter(handler)
        await adapter.execute(build_descriptor("https://example.com/", body=factory))
        assert bodies == [b"ab", b"ab"]

    @pytest.mark.asyncio
    async def test_stream_not_replayed(self, make_adapter, caplog):
        bodies = []

        async def handler(request: httpx.Request):
            bodies.append(await request.aread())
            if len(bodies) == 1:
                raise httpx.ReadError("reset", request=request)
            return httpx.Response(200)

        async def source():
            yield b"chunk-1"
            yield b"chunk-2"

        adapter = make_adapter(handler)
        with caplog.at_level(logging.WARNING, logger="http_request_core"):
            await adapter.execute(build_descriptor("https://example.com/", body=source()))

        assert bodies == [b"chunk-1chunk-2", b""]
        assert "can not be replayed" in caplog.text

    @pytest.mark.asyncio
    async def test_form_body(self, make_adapter):
        seen = {}

        async def handler(request: httpx.Request):
            seen["body"] = await request.aread()
            seen["type"] = request.headers["content-type"]
            return httpx.Response(200)

        adapter = make_adapter(handler)
        await adapter.execute(build_descriptor("https://example.com/", body={"a": "1", "b": "x y"}, form=True))
        assert seen["body"] == b"a=1&b=x+y"
        assert seen["type"] == "application/x-www-form-urlencoded"
