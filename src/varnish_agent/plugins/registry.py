"""
Plugin Registry - Ordered records of every plugin.

Each record tracks one plugin through its lifecycle and owns the handle
of the plugin's worker thread, if it spawned one.
"""

import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from ..contracts import PluginProtocol

__all__ = ["Plugin", "PluginRegistry", "PluginState"]

logger = structlog.get_logger(__name__)


class PluginState(str, Enum):
    """Lifecycle state of a plugin."""

    ALLOCATED = "allocated"
    INITIALIZED = "initialized"
    STARTED = "started"
    TERMINATED = "terminated"
    FAILED = "failed"


@dataclass(eq=False)
class Plugin:
    """Record of one registered plugin.

    A record without a handler is inert: it passes through every phase
    and is never waited on.
    """

    name: str
    handler: PluginProtocol | None = None
    state: PluginState = PluginState.ALLOCATED
    worker: threading.Thread | None = None
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def fail(self, error: BaseException) -> None:
        self.error = error
        self.state = PluginState.FAILED

    def spawn_worker(
        self,
        target: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> threading.Thread:
        """Run target in this plugin's worker thread.

        Exceptions escaping target are stored on the record instead of
        being lost with the thread.

        Raises:
            RuntimeError: If the plugin already has a worker
        """
        if self.worker is not None:
            raise RuntimeError(f"Plugin {self.name} already has a worker")

        thread = threading.Thread(
            target=self._run_worker,
            args=(target, args, kwargs),
            name=f"plugin-{self.name}",
            daemon=True,
        )
        self.worker = thread
        thread.start()
        logger.debug("plugin_worker_spawned", plugin=self.name)
        return thread

    def attach_worker(self, thread: threading.Thread) -> None:
        """Record a worker the plugin started on its own."""
        if self.worker is not None and self.worker is not thread:
            raise RuntimeError(f"Plugin {self.name} already has a worker")
        self.worker = thread

    def _run_worker(
        self,
        target: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        try:
            target(*args, **kwargs)
        except Exception as e:
            self.error = e
            logger.exception("plugin_worker_failed", plugin=self.name, error=str(e))
        else:
            logger.info("plugin_worker_exited", plugin=self.name)

    def to_dict(self) -> dict[str, Any]:
        info: dict[str, Any] = {
            "name": self.name,
            "state": self.state.value,
            "worker": self.worker is not None and self.worker.is_alive(),
        }
        if self.error is not None:
            info["error"] = str(self.error)
        return info


class PluginRegistry:
    """Append-only, ordered collection of plugin records.

    Example:
        registry = PluginRegistry()
        registry.register("httpd", HttpdPlugin())
        registry.register("vlog")

        for plugin in registry:          # registration order
            print(plugin.name, plugin.state)
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}

    def register(self, name: str, handler: PluginProtocol | None = None) -> Plugin:
        """Allocate a record for a plugin.

        Raises:
            ValueError: If the name is already registered
        """
        if name in self._plugins:
            raise ValueError(f"Plugin {name!r} already registered")

        plugin = Plugin(name=name, handler=handler)
        self._plugins[name] = plugin
        logger.debug("plugin_allocated", plugin=name, inert=handler is None)
        return plugin

    def get(self, name: str) -> Plugin | None:
        """Get a plugin record by name."""
        return self._plugins.get(name)

    def __getitem__(self, name: str) -> Plugin:
        return self._plugins[name]

    def __iter__(self) -> Iterator[Plugin]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: str) -> bool:
        return name in self._plugins

    def names(self) -> list[str]:
        return list(self._plugins)

    def with_workers(self) -> list[Plugin]:
        """Plugins that recorded a worker, in registration order."""
        return [p for p in self._plugins.values() if p.worker is not None]

    def failed(self) -> list[Plugin]:
        return [p for p in self._plugins.values() if p.failed]

    def list_plugins(self) -> list[dict[str, Any]]:
        """List all plugins with their status."""
        return [p.to_dict() for p in self._plugins.values()]
