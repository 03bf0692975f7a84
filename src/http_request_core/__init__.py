"""HTTP Request Core - HTTP requests with retries, redirects and streaming."""

import logging

from ._version import __version__
from .client import AsyncHTTPClient
from .api import (
    request,
    get,
    post,
    put,
    patch,
    head,
    delete,
    stream,
    stream_get,
    stream_post,
    stream_put,
    stream_patch,
    stream_head,
    stream_delete,
)
from .core.config import HTTPClientConfig, RetryConfig
from .core.descriptor import MultipartStream, RequestDescriptor, build_descriptor
from .core.response import Response
from .core.streaming import DuplexStream
from .core.retry_policy import BackoffRetryPolicy
from .core.exceptions import (
    HTTPClientException,
    RequestError,
    ReadError,
    ParseError,
    HTTPError,
    MaxRedirectsError,
    UnsupportedProtocolError,
    ConfigurationError,
)
from .core.logging import LoggingConfig
from .core.env_config import load_from_env

# Set up logging - add NullHandler to prevent "No handler found" warnings
# Users can configure logging themselves using logging.getLogger('http_request_core')
logging.getLogger('http_request_core').addHandler(logging.NullHandler())

__author__ = "HTTP Client Contributors"
__license__ = "MIT"

# All public exports
__all__ = [
    # Client
    "AsyncHTTPClient",

    # One-shot helpers
    "request",
    "get",
    "post",
    "put",
    "patch",
    "head",
    "delete",
    "stream",
    "stream_get",
    "stream_post",
    "stream_put",
    "stream_patch",
    "stream_head",
    "stream_delete",

    # Config
    "HTTPClientConfig",
    "RetryConfig",
    "LoggingConfig",
    "load_from_env",

    # Request / response
    "MultipartStream",
    "RequestDescriptor",
    "build_descriptor",
    "Response",
    "DuplexStream",
    "BackoffRetryPolicy",

    # Exceptions
    "HTTPClientException",
    "RequestError",
    "ReadError",
    "ParseError",
    "HTTPError",
    "MaxRedirectsError",
    "UnsupportedProtocolError",
    "ConfigurationError",

    # Version
    "__version__",
]
