"""
Built-in plugins and the agent's declared plugin order.

The order is fixed: it is the allocation, initialization and start
order. httpd precedes every plugin that registers URLs with it. Names
without a built-in implementation are allocated as inert records; the
admin-protocol client and the log, stats, VCL, parameter and ban
handlers are provided outside this package.
"""

from ..lifecycle import PluginSpec
from .echo import EchoPlugin
from .html import HtmlPlugin
from .httpd import HttpdPlugin, get_httpd
from .status import StatusPlugin

__all__ = [
    "DECLARED_PLUGINS",
    "EchoPlugin",
    "HtmlPlugin",
    "HttpdPlugin",
    "StatusPlugin",
    "get_httpd",
]

DECLARED_PLUGINS: tuple[PluginSpec, ...] = (
    ("pingd", None),
    ("logd", None),
    ("vadmin", None),
    ("httpd", HttpdPlugin),
    ("echo", EchoPlugin),
    ("status", StatusPlugin),
    ("vcl", None),
    ("html", HtmlPlugin),
    ("params", None),
    ("ban", None),
    ("varnishstat", None),
    ("vlog", None),
)
