"""
httpd - HTTP management API.

Owns the FastAPI app that other plugins add routes to during their own
init, and serves it with uvicorn from the plugin's worker thread.
"""

from collections.abc import Callable, Sequence
from threading import Thread
from typing import TYPE_CHECKING, Any

import structlog
import uvicorn
from fastapi import FastAPI

from ..app import create_app

if TYPE_CHECKING:
    from ..core import AgentCore

__all__ = ["DEFAULT_BIND", "HTTPD", "HttpdPlugin", "get_httpd"]

logger = structlog.get_logger(__name__)

HTTPD = "httpd"
DEFAULT_BIND = "0.0.0.0"


class HttpdPlugin:
    """Serves the management API on the agent's listen port."""

    def __init__(self) -> None:
        self.app: FastAPI | None = None
        self.server: uvicorn.Server | None = None
        self.host = DEFAULT_BIND
        self.port: int | None = None

    def allocate(self, core: "AgentCore") -> None:
        core.options.add(
            "-b", "http_bind", "Address the HTTP API listens on.",
            metavar="address", default=DEFAULT_BIND, owner=HTTPD,
        )

    def init(self, core: "AgentCore") -> None:
        try:
            self.port = int(core.config.port)
        except ValueError:
            raise ValueError(f"Invalid listen port: {core.config.port!r}") from None
        self.host = core.config.option("http_bind", DEFAULT_BIND)
        self.app = create_app()
        logger.debug("httpd_initialized", host=self.host, port=self.port)

    def add_route(
        self,
        path: str,
        endpoint: Callable[..., Any],
        methods: Sequence[str] = ("GET",),
    ) -> None:
        """Register a URL. Only valid before plugins are started."""
        if self.app is None:
            raise RuntimeError("httpd is not initialized")
        self.app.add_api_route(path, endpoint, methods=list(methods))
        logger.debug("url_registered", path=path, methods=list(methods))

    def mount(self, path: str, app: Any, name: str | None = None) -> None:
        """Mount a sub-application (e.g. static files) under path."""
        if self.app is None:
            raise RuntimeError("httpd is not initialized")
        self.app.mount(path, app, name=name)
        logger.debug("app_mounted", path=path)

    def start(self, core: "AgentCore", name: str) -> Thread | None:
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level=core.config.log_level.lower(),
            access_log=False,  # LoggingMiddleware covers requests
        )
        self.server = uvicorn.Server(config)
        core.plugins[name].spawn_worker(self.server.run)
        logger.info("httpd_listening", host=self.host, port=self.port)
        return None


def get_httpd(core: "AgentCore") -> HttpdPlugin | None:
    """Find the initialized httpd plugin through the core."""
    plugin = core.plugins.get(HTTPD)
    if plugin is None or plugin.failed or not isinstance(plugin.handler, HttpdPlugin):
        return None
    if plugin.handler.app is None:
        return None
    return plugin.handler
