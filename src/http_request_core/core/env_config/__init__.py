"""
Environment configuration for HTTP Request Core.

Example:
    >>> from http_request_core.core.env_config import load_from_env
    >>>
    >>> config = load_from_env()                   # .env + HTTP_REQUEST_*
    >>> config = load_from_env(env_file=None, retries=0)
"""

from .loader import load_from_env, settings_to_config
from .validator import HTTPRequestSettings

__all__ = [
    "load_from_env",
    "settings_to_config",
    "HTTPRequestSettings",
]
