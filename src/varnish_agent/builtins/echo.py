"""
echo - Returns whatever is sent to it. Handy for testing the API.
"""

from threading import Thread
from typing import TYPE_CHECKING

import structlog
from starlette.requests import Request
from starlette.responses import Response

from .httpd import get_httpd

if TYPE_CHECKING:
    from ..core import AgentCore

__all__ = ["EchoPlugin"]

logger = structlog.get_logger(__name__)


class EchoPlugin:
    def init(self, core: "AgentCore") -> None:
        httpd = get_httpd(core)
        if httpd is None:
            logger.warning("httpd_unavailable", plugin="echo")
            return
        httpd.add_route("/echo", self.echo, methods=("POST", "PUT"))

    def start(self, core: "AgentCore", name: str) -> Thread | None:
        return None

    async def echo(self, request: Request) -> Response:
        body = await request.body()
        media_type = request.headers.get("content-type", "text/plain")
        return Response(content=body, media_type=media_type)
