"""Core HTTP Request модули."""

from .config import RetryConfig, HTTPClientConfig
from .descriptor import (
    Body,
    BodyKind,
    MultipartStream,
    RequestDescriptor,
    build_descriptor,
)
from .engine import RequestEngine, AttemptState, MAX_REDIRECTS, REDIRECT_STATUS_CODES
from .events import ErrorEvent, LifecycleEvent, RedirectEvent, RequestEvent, ResponseEvent
from .buffered import BufferedAdapter
from .streaming import DuplexStream
from .response import Response, is_status_acceptable
from .transport import Transport, Connection, RequestChannel
from .retry_policy import (
    RetryPolicy,
    BackoffRetryPolicy,
    get_error_code,
    is_retry_allowed,
    resolve_retry_policy,
)
from .exceptions import (
    HTTPClientException,
    FatalError,
    RequestError,
    ReadError,
    ParseError,
    HTTPError,
    MaxRedirectsError,
    UnsupportedProtocolError,
    ConfigurationError,
)

__all__ = [
    # Config
    "RetryConfig",
    "HTTPClientConfig",
    # Descriptor
    "Body",
    "BodyKind",
    "MultipartStream",
    "RequestDescriptor",
    "build_descriptor",
    # Engine
    "RequestEngine",
    "AttemptState",
    "MAX_REDIRECTS",
    "REDIRECT_STATUS_CODES",
    "ErrorEvent",
    "LifecycleEvent",
    "RedirectEvent",
    "RequestEvent",
    "ResponseEvent",
    # Adapters
    "BufferedAdapter",
    "DuplexStream",
    "Response",
    "is_status_acceptable",
    "Transport",
    "Connection",
    "RequestChannel",
    # Retry
    "RetryPolicy",
    "BackoffRetryPolicy",
    "get_error_code",
    "is_retry_allowed",
    "resolve_retry_policy",
    # Exceptions
    "HTTPClientException",
    "FatalError",
    "RequestError",
    "ReadError",
    "ParseError",
    "HTTPError",
    "MaxRedirectsError",
    "UnsupportedProtocolError",
    "ConfigurationError",
]
