"""
Proxy error taxonomy.

Every ``ProxyError`` carries the HTTP status and the plain-text body the
caller receives. They are raised by the proxy handler after logging and
rendered by the exception handler registered in ``main.create_app``.
"""

from typing import Optional

from fastapi import status


class ProxyError(Exception):
    """Base class for errors that end a single proxied request."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingKey(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "X-APP_KEY header not provided"


class UnknownKey(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, app_key: str):
        self.app_key = app_key
        super().__init__(f"No application found for app key {app_key}")


class RequestBuildError(ProxyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "cannot create proxy request"


class UpstreamUnavailable(ProxyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "cannot retrieve proxy response"


class KeyTableError(Exception):
    """The key table file could not be read or validated."""


__all__ = [
    "ProxyError",
    "MissingKey",
    "UnknownKey",
    "RequestBuildError",
    "UpstreamUnavailable",
    "KeyTableError",
]
