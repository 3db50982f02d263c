"""
Plugin Protocol - Contract between the supervisor and its plugins.

Plugins are the agent's subsystems:
- Admin-protocol client (vadmin)
- HTTP management API (httpd)
- Log and stats relays
- VCL, parameter and ban management
"""

from threading import Thread
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..core import AgentCore


@runtime_checkable
class PluginProtocol(Protocol):
    """Contract for agent plugins.

    The supervisor drives every plugin through the same phases, in
    registration order: allocate, (parse), init, start.

    Example:
        class PingPlugin:
            def init(self, core: AgentCore) -> None:
                self.interval = core.config.timeout

            def start(self, core: AgentCore, name: str) -> Thread | None:
                core.plugins[name].spawn_worker(self._loop)
                return None
    """

    def init(self, core: "AgentCore") -> None:
        """Called once the configuration is resolved.

        May read core.config and set up internal state. Must not block or
        spawn threads: the process may still fork after this.
        """
        ...

    def start(self, core: "AgentCore", name: str) -> Thread | None:
        """Called after the instance lock is held and the process is final.

        Must return promptly. Long-running work belongs in a worker,
        spawned via core.plugins[name].spawn_worker() or returned here.
        """
        ...


@runtime_checkable
class AllocatingPlugin(Protocol):
    """Plugins that need to act while being allocated.

    Typically to add their own flags to core.options. Configuration is
    not resolved yet; core.config only holds defaults.
    """

    def allocate(self, core: "AgentCore") -> None:
        ...
