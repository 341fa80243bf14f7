"""
FastAPI Key Proxy Application Factory
=====================================

Entry point for the key proxy: callers send requests carrying their
application key, the proxy forwards them to the backend registered for that
key with the backend's real key substituted.

Architecture:
    Callers → Key Proxy (this service) → Backend selected by X-APP_KEY

Routers:
    - /*  : Every path and method is proxied (no docs or health routes,
            so that no backend path is shadowed)

Environment Variables:
    - PROXY_HOST: Bind host (default: 0.0.0.0)
    - PROXY_PORT: Bind port (default: 9080, overridden by the first CLI argument)
    - KEYS_FILE: Key table JSON file (default: keys.json)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    keyproxy [port]

    Or through uvicorn with the factory:
        uvicorn keyproxy.app.main:create_app --factory --port 9080
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from .config import Settings, get_settings
from .errors import KeyTableError, ProxyError
from .keys import KeyTable, load_key_table
from .proxy import proxy_router

logger = logging.getLogger(__name__)


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


class AppState:
    """
    Per-application state container.

    Holds the read-only key table and the shared backend HTTP client.
    """
    def __init__(
        self,
        key_table: KeyTable,
        backend_client: Optional[httpx.AsyncClient] = None,
    ):
        self.key_table = key_table
        self.backend_client = backend_client
        # Clients created by the lifespan are closed by it; injected ones are not
        self.owns_backend_client = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Create the shared backend HTTP client (httpx defaults) unless one
          was injected

    Shutdown:
        - Close the backend HTTP client if the lifespan created it
    """
    app_state: AppState = app.state.app_state

    if app_state.backend_client is None:
        app_state.backend_client = httpx.AsyncClient()
        app_state.owns_backend_client = True

    logger.info(
        "Key proxy started",
        extra={"key_count": len(app_state.key_table)},
    )

    yield

    logger.info("Shutting down key proxy")
    if app_state.owns_backend_client:
        await app_state.backend_client.aclose()
        app_state.backend_client = None
        app_state.owns_backend_client = False
    logger.info("Key proxy shutdown complete")


async def proxy_error_handler(request: Request, exc: ProxyError) -> PlainTextResponse:
    """Render a proxy error as its plain-text body."""
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def global_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """
    Global exception handler for unhandled errors.

    Logs the error with traceback and returns a plain-text 500.
    """
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__
        },
        exc_info=True
    )
    return PlainTextResponse("internal server error", status_code=500)


def create_app(
    key_table: Optional[KeyTable] = None,
    backend_client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Application factory function.

    Args:
        key_table: Prepopulated key table; loaded from KEYS_FILE when omitted
        backend_client: HTTP client for upstream calls; created by the
            lifespan when omitted
        settings: Settings to use instead of ``get_settings()``

    Returns:
        FastAPI: Configured application instance

    Raises:
        KeyTableError: If the key table has to be loaded and cannot be
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    if key_table is None:
        key_table = load_key_table(settings.KEYS_FILE)

    app = FastAPI(
        title="Key Proxy",
        description="Reverse proxy substituting backend keys for application keys",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.app_state = AppState(key_table, backend_client)

    app.add_exception_handler(ProxyError, proxy_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(proxy_router)

    return app


def main(argv: Optional[List[str]] = None) -> None:
    """
    Process entry point: ``keyproxy [port]``.

    A key table that cannot be loaded or an invalid port ends the process
    before serving starts.
    """
    argv = sys.argv[1:] if argv is None else argv
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    port = settings.PROXY_PORT
    if argv:
        try:
            port = int(argv[0])
        except ValueError:
            logger.critical("Invalid port argument: %s", argv[0])
            raise SystemExit(2)

    logger.info("Initializing key proxy server on port %s", port)

    try:
        key_table = load_key_table(settings.KEYS_FILE)
    except KeyTableError as e:
        logger.critical("Cannot load config file: %s", e)
        raise SystemExit(1)

    app = create_app(key_table=key_table, settings=settings)

    uvicorn.run(
        app,
        host=settings.PROXY_HOST,
        port=port,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
