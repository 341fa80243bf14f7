"""
Proxy Routes - Key-Substituting Request Forwarding
==================================================

This module implements the catch-all endpoint that forwards every inbound
request to the backend registered for the caller's application key.

Flow:
-----
1. Read the caller's application key from the X-APP_KEY header
2. Resolve it in the key table to a backend base path and real key
3. Rebuild the request against {base_path}/{path}[?query]
4. Copy all inbound headers, then overwrite X-APP_KEY with the real key
5. Stream the inbound body upstream and the backend response back

Error responses are plain text, see ``app.errors``.
"""

import logging
from typing import AsyncIterator, Optional

import httpx
from fastapi import APIRouter, Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.endpoints import HTTPEndpoint
from starlette.requests import ClientDisconnect

from ..errors import MissingKey, RequestBuildError, UnknownKey, UpstreamUnavailable
from ..keys import KeyTable

logger = logging.getLogger(__name__)

APP_KEY_HEADER = "X-APP_KEY"

# Status recorded when the caller goes away before the upstream call completes
CLIENT_CLOSED_REQUEST = 499

proxy_router = APIRouter()


# ============================================================================
# Dependencies
# ============================================================================

def get_key_table(request: Request) -> KeyTable:
    """Key table injected into the application state at construction."""
    return request.app.state.app_state.key_table


def get_backend_client(request: Request) -> httpx.AsyncClient:
    """Shared HTTP client for upstream calls."""
    return request.app.state.app_state.backend_client


def remote_address(request: Request) -> str:
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"


# ============================================================================
# Request Reconstruction
# ============================================================================

def build_target_path(path: str, query: str) -> str:
    """Inbound path, with the raw query string appended when present."""
    if not query:
        return path
    return f"{path}?{query}"


def build_backend_url(base_path: str, target_path: str) -> str:
    """
    Join the backend base path and the target path.

    The join is literal: ``http://backend:8081`` and ``/v1/items`` give
    ``http://backend:8081//v1/items``. Existing key tables are written
    against this form, so slashes are not collapsed.
    """
    return f"{base_path}/{target_path}"


def build_backend_headers(request: Request, real_key: str) -> httpx.Headers:
    """
    Clone the inbound headers and substitute the real key.

    Multi-value headers keep their order. Host is taken from the backend URL
    instead of the inbound request. The inbound header collection is left
    untouched.
    """
    headers = httpx.Headers(
        [(name, value) for name, value in request.headers.raw if name.lower() != b"host"]
    )
    headers[APP_KEY_HEADER] = real_key
    return headers


def request_body(request: Request) -> Optional[AsyncIterator[bytes]]:
    """
    Inbound body as a stream, or None when the request carries no body.

    HTTP/1.1 requests without Content-Length or Transfer-Encoding have no
    body, so none is sent upstream either.
    """
    if "content-length" in request.headers or "transfer-encoding" in request.headers:
        return request.stream()
    return None


# ============================================================================
# Response Relay
# ============================================================================

def relay_response_headers(upstream_headers: httpx.Headers, response: Response) -> None:
    """Copy backend headers: first value set, later values added in order."""
    for name in upstream_headers.keys():
        values = upstream_headers.get_list(name)
        response.headers[name] = values[0]
        for value in values[1:]:
            response.headers.append(name, value)


# ============================================================================
# Proxy Endpoint
# ============================================================================

async def proxy_request(request: Request) -> Response:
    """
    Forward one request to the backend resolved from its application key.

    Raises:
        MissingKey: X-APP_KEY absent or empty
        UnknownKey: X-APP_KEY not in the key table
        RequestBuildError: the backend URL could not be built
        UpstreamUnavailable: the backend could not be reached
    """
    remote_addr = remote_address(request)

    app_key = request.headers.get(APP_KEY_HEADER)
    if not app_key:
        logger.error(
            "Request with no application key from %s",
            remote_addr,
            extra={"remote_addr": remote_addr},
        )
        raise MissingKey()

    target_path = build_target_path(request.url.path, request.url.query)

    backend = get_key_table(request).lookup(app_key)
    if backend is None:
        logger.error(
            "Requested application not found %s from %s",
            app_key,
            remote_addr,
            extra={"app_key": app_key, "remote_addr": remote_addr},
        )
        raise UnknownKey(app_key)

    client = get_backend_client(request)

    try:
        upstream_request = client.build_request(
            request.method,
            build_backend_url(backend.base_path, target_path),
            headers=build_backend_headers(request, backend.real_key),
            content=request_body(request),
        )
    except (httpx.InvalidURL, ValueError) as e:
        logger.error(
            "Cannot create proxy request for %s %s from %s with error message %s",
            request.method,
            request.url,
            remote_addr,
            e,
            extra={"app_key": app_key, "remote_addr": remote_addr, "error": str(e)},
        )
        raise RequestBuildError() from e

    try:
        upstream_response = await client.send(upstream_request, stream=True)
    except httpx.HTTPError as e:
        logger.error(
            "Cannot retrieve proxy response for %s %s from %s with error message %s",
            request.method,
            request.url,
            remote_addr,
            e,
            extra={"app_key": app_key, "remote_addr": remote_addr, "error": str(e)},
        )
        raise UpstreamUnavailable() from e
    except ClientDisconnect:
        logger.warning(
            "Caller %s disconnected while proxying %s",
            remote_addr,
            target_path,
            extra={"app_key": app_key, "remote_addr": remote_addr},
        )
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    async def relay_body() -> AsyncIterator[bytes]:
        # Raw bytes: Content-Encoding and Content-Length are relayed unchanged
        async for chunk in upstream_response.aiter_raw():
            yield chunk
        logger.info(
            "Proxied [%s] for app key [%s] with real app key [%s] from [%s]",
            target_path,
            app_key,
            backend.real_key,
            remote_addr,
            extra={
                "target_path": target_path,
                "app_key": app_key,
                "real_key": backend.real_key,
                "remote_addr": remote_addr,
                "status_code": upstream_response.status_code,
            },
        )

    response = StreamingResponse(
        relay_body(),
        status_code=upstream_response.status_code,
        background=BackgroundTask(upstream_response.aclose),
    )
    relay_response_headers(upstream_response.headers, response)
    return response


class ProxyEndpoint(HTTPEndpoint):
    """
    Route endpoint that proxies every HTTP method.

    Class endpoints are registered without a method list, unlike plain
    functions which Starlette limits to GET and HEAD.
    """

    async def dispatch(self) -> None:
        request = Request(self.scope, receive=self.receive)
        response = await proxy_request(request)
        try:
            await response(self.scope, self.receive, self.send)
        except ClientDisconnect:
            remote_addr = remote_address(request)
            logger.warning(
                "Caller %s disconnected while relaying %s",
                remote_addr,
                request.url.path,
                extra={"remote_addr": remote_addr},
            )
        finally:
            # Starlette skips background tasks when streaming raises;
            # closing the upstream response twice is a no-op
            if response.background is not None:
                await response.background()


proxy_router.add_route("/{path:path}", ProxyEndpoint, include_in_schema=False)
