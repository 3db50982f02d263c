"""
Agent Core - The one object handed to every plugin.

Bundles the configuration, the plugin registry and the shared flag table.
"""

from .config import AgentConfig
from .options import OptionTable
from .plugins import PluginRegistry

__all__ = ["AgentCore"]


class AgentCore:
    """Configuration plus plugin registry, shared by reference.

    Until resolve() is called, config holds the pre-parse defaults.
    After that it is the resolved configuration and never changes.
    """

    def __init__(
        self,
        options: OptionTable | None = None,
        plugins: PluginRegistry | None = None,
    ) -> None:
        self.options = options if options is not None else OptionTable()
        self.plugins = plugins if plugins is not None else PluginRegistry()
        self._config = AgentConfig()
        self._resolved = False

    @property
    def config(self) -> AgentConfig:
        return self._config

    @property
    def resolved(self) -> bool:
        """True once the command line has been parsed."""
        return self._resolved

    def resolve(self, config: AgentConfig) -> None:
        """Install the resolved configuration.

        Raises:
            RuntimeError: If a configuration was already resolved
        """
        if self._resolved:
            raise RuntimeError("Configuration already resolved")
        self._config = config
        self._resolved = True
