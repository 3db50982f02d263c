"""
html - Serves the UI assets from the html directory (-H).
"""

from threading import Thread
from typing import TYPE_CHECKING

import structlog
from starlette.responses import RedirectResponse
from starlette.staticfiles import StaticFiles

from .httpd import get_httpd

if TYPE_CHECKING:
    from ..core import AgentCore

__all__ = ["HtmlPlugin"]

logger = structlog.get_logger(__name__)


class HtmlPlugin:
    def init(self, core: "AgentCore") -> None:
        html_dir = core.config.html_dir
        if not html_dir.is_dir():
            logger.warning("html_dir_missing", path=str(html_dir))
            return

        httpd = get_httpd(core)
        if httpd is None:
            logger.warning("httpd_unavailable", plugin="html")
            return

        httpd.mount("/html", StaticFiles(directory=html_dir, html=True), name="html")
        httpd.add_route("/", self.index)

    def start(self, core: "AgentCore", name: str) -> Thread | None:
        return None

    async def index(self) -> RedirectResponse:
        return RedirectResponse(url="/html/")
