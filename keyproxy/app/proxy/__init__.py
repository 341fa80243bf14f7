"""
Proxy Package
=============

Catch-all endpoint that forwards requests to the backend registered for the
caller's application key, substituting the real key.

Usage:
------
    from keyproxy.app.proxy import proxy_router
    app.include_router(proxy_router)
"""

from .routes import proxy_router

__all__ = ["proxy_router"]
