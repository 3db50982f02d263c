"""
Lifecycle - Agent process management.

Handles:
- Staged plugin lifecycle (allocate, parse, initialize, start, join)
- PID file management (prevent duplicate instances)
- Daemonization (detach unless running in the foreground)

Example:
    from varnish_agent.lifecycle import Supervisor

    supervisor = Supervisor(DECLARED_PLUGINS)
    sys.exit(supervisor.run(sys.argv[1:]))
"""

from .daemon import daemonize
from .pid import PIDFile
from .supervisor import PluginFactory, PluginSpec, Supervisor

__all__ = [
    "daemonize",
    "PIDFile",
    "PluginFactory",
    "PluginSpec",
    "Supervisor",
]
