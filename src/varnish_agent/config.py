"""
Agent configuration.

Configuration sources (priority order):
1. Command-line flags (resolved once by the option table)
2. Environment variables (VARNISH_AGENT_*)
3. Compiled-in defaults

Environment variables:
- VARNISH_AGENT_PERSIST_DIR: Where VCL and parameters are stored
- VARNISH_AGENT_HTML_DIR: Where the UI assets (/html/) live
- VARNISH_AGENT_PID_FILE: Single-instance lock path (default: /var/run/varnish-agent.pid)
- VARNISH_AGENT_LOG_LEVEL: Log level (default: INFO)
- VARNISH_AGENT_LOG_FILE: Where stdout/stderr go once backgrounded (default: discarded)
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

__all__ = [
    "AgentConfig",
    "DEFAULT_HTML_DIR",
    "DEFAULT_PERSIST_DIR",
    "DEFAULT_PID_FILE",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT",
]

DEFAULT_PERSIST_DIR = Path("/var/lib/varnish-agent")
DEFAULT_HTML_DIR = Path("/usr/share/varnish-agent/html")
DEFAULT_PID_FILE = Path("/var/run/varnish-agent.pid")
DEFAULT_PORT = "6085"
DEFAULT_TIMEOUT = 5.0


def _get_env(key: str, default: str) -> str:
    """Get environment variable with VARNISH_AGENT_ prefix."""
    return os.environ.get(f"VARNISH_AGENT_{key}", default)


def _get_env_path(key: str, default: Path | None) -> Path | None:
    """Get path environment variable."""
    val = os.environ.get(f"VARNISH_AGENT_{key}")
    return Path(val) if val else default


@dataclass(frozen=True)
class AgentConfig:
    """Immutable agent configuration.

    A default instance holds the pre-parse values. The option table builds
    the resolved instance exactly once, and every plugin reads that one.
    """

    persist_dir: Path = field(
        default_factory=lambda: _get_env_path("PERSIST_DIR", DEFAULT_PERSIST_DIR)
    )
    html_dir: Path = field(
        default_factory=lambda: _get_env_path("HTML_DIR", DEFAULT_HTML_DIR)
    )

    # Should match the varnishd -n option
    name: str | None = None
    secret_file: Path | None = None
    admin_endpoint: str | None = None

    timeout: float = DEFAULT_TIMEOUT
    port: str = DEFAULT_PORT
    debug: bool = False

    pid_file: Path = field(
        default_factory=lambda: _get_env_path("PID_FILE", DEFAULT_PID_FILE)
    )
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_file: Path | None = field(default_factory=lambda: _get_env_path("LOG_FILE", None))

    # Values of flags registered by plugins, keyed by dest
    plugin_options: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}),
        hash=False,
    )

    def option(self, dest: str, default: Any = None) -> Any:
        """Read a plugin-registered option value."""
        return self.plugin_options.get(dest, default)
