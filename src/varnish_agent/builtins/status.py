"""
status - Reports the agent's own state over the API.
"""

import os
from threading import Thread
from typing import TYPE_CHECKING, Any

import structlog

from .. import __version__
from .httpd import get_httpd

if TYPE_CHECKING:
    from ..core import AgentCore

__all__ = ["StatusPlugin"]

logger = structlog.get_logger(__name__)


class StatusPlugin:
    """Serves GET /status: version, PID, instance and plugin states."""

    def __init__(self) -> None:
        self._core: "AgentCore | None" = None

    def init(self, core: "AgentCore") -> None:
        self._core = core
        httpd = get_httpd(core)
        if httpd is None:
            logger.warning("httpd_unavailable", plugin="status")
            return
        httpd.add_route("/status", self.status)

    def start(self, core: "AgentCore", name: str) -> Thread | None:
        return None

    async def status(self) -> dict[str, Any]:
        config = self._core.config
        return {
            "version": __version__,
            # Read per request: the PID changes when the agent forks
            "pid": os.getpid(),
            "name": config.name,
            "port": config.port,
            "admin_endpoint": config.admin_endpoint,
            "plugins": self._core.plugins.list_plugins(),
        }
