"""
Application Factory - Creates the management API app.

Each call creates a fresh app. Plugins add their own routes to it while
they initialize; the httpd plugin serves it once plugins are started.
"""

from typing import Any

from fastapi import FastAPI
from starlette.routing import Mount

from .. import __version__
from .middleware import ErrorMiddleware, LoggingMiddleware

__all__ = ["create_app"]


def create_app() -> FastAPI:
    """Create the FastAPI application with the core routes."""
    app = FastAPI(
        title="Varnish Agent",
        description="Management API of the Varnish agent",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Add middleware (order matters - last added runs first)
    app.add_middleware(ErrorMiddleware)
    app.add_middleware(LoggingMiddleware)

    @app.get("/help")
    async def help_() -> dict[str, Any]:
        """List every registered URL."""
        urls = []
        for route in app.router.routes:
            if isinstance(route, Mount):
                urls.append({"path": f"{route.path}/", "methods": ["GET"]})
            else:
                methods = getattr(route, "methods", None) or []
                urls.append({"path": route.path, "methods": sorted(methods)})
        return {"urls": urls}

    return app
