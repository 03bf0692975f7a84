"""
Log filters: correlation id and static extra fields.

The correlation id lives in a ContextVar, so each asyncio task (one
logical request) sees its own value.
"""

import logging
from contextvars import ContextVar, Token
from typing import Dict, Any, Optional

_correlation_id: ContextVar[Optional[str]] = ContextVar("http_request_core_correlation_id", default=None)


def set_correlation_id(correlation_id: str) -> Token:
    """
    Set correlation id for the current context.

    Returns:
        Token that can be passed to reset_correlation_id()

    Example:
        >>> token = set_correlation_id("req-12345")
        >>> logger.info("Processing request")  # record.correlation_id == "req-12345"
    """
    return _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Correlation id of the current context, or None."""
    return _correlation_id.get()


def reset_correlation_id(token: Token) -> None:
    """Restore the value that was active before set_correlation_id()."""
    _correlation_id.reset(token)


def clear_correlation_id() -> None:
    """Drop correlation id for the current context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to records logged inside a request context."""

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id
        return True


class ExtraFieldsFilter(logging.Filter):
    """
    Adds static fields to every record.

    Fields already present on the record win.

    Example:
        >>> handler.addFilter(ExtraFieldsFilter({"service": "billing"}))
    """

    def __init__(self, extra_fields: Dict[str, Any]):
        super().__init__()
        self.extra_fields = dict(extra_fields)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.extra_fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
