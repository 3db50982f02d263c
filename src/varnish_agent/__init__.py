"""
Varnish Agent - Administrative daemon in front of a Varnish cache.

Resolves configuration, guards against a second instance, and supervises
a fixed set of plugins (admin client, HTTP API, log and stats relays)
until every one of them has finished.
"""

__version__ = "1.0.0"

from .config import AgentConfig
from .core import AgentCore

__all__ = [
    "__version__",
    "AgentConfig",
    "AgentCore",
]
