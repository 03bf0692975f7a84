"""
Pytest configuration and fixtures for http-request-core tests.
"""

import logging
from typing import Callable, List

import httpx
import pytest

from http_request_core.client import AsyncHTTPClient
from http_request_core.core.engine import RequestEngine
from http_request_core.core.logging.config import LoggingConfig
from http_request_core.core.transport import Transport


class SleepRecorder:
    """Replacement for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def delays_ms(self) -> List[float]:
        return [round(d * 1000, 3) for d in self.delays]


@pytest.fixture(autouse=True)
def reset_library_loggers():
    """Drop handlers/levels installed by configured loggers between tests."""
    yield
    manager = logging.Logger.manager
    names = [name for name in manager.loggerDict if name.startswith("http_request_core")]
    for name in names:
        lib_logger = logging.getLogger(name)
        for handler in lib_logger.handlers[:]:
            if not isinstance(handler, logging.NullHandler):
                handler.close()
                lib_logger.removeHandler(handler)
        lib_logger.setLevel(logging.NOTSET)
        lib_logger.propagate = True


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "https://api.example.com"


@pytest.fixture
def sleep_recorder():
    """Records retry delays without sleeping."""
    return SleepRecorder()


@pytest.fixture
def make_engine(sleep_recorder) -> Callable[..., RequestEngine]:
    """
    Factory: RequestEngine over httpx.MockTransport.

    Example:
        def test_x(make_engine):
            engine = make_engine(lambda request: httpx.Response(200))
    """
    def factory(handler) -> RequestEngine:
        transport = Transport(transport=httpx.MockTransport(handler))
        return RequestEngine(transport, sleep=sleep_recorder)

    return factory


@pytest.fixture
def make_client(sleep_recorder) -> Callable[..., AsyncHTTPClient]:
    """Factory: AsyncHTTPClient over httpx.MockTransport with recorded sleeps."""
    def factory(handler, **kwargs) -> AsyncHTTPClient:
        return AsyncHTTPClient(
            transport=httpx.MockTransport(handler),
            sleep=sleep_recorder,
            **kwargs,
        )

    return factory


@pytest.fixture
def logging_config():
    """LoggingConfig with DEBUG level and console output."""
    return LoggingConfig.create(
        level="DEBUG",
        enable_console=True,
        enable_file=False
    )
