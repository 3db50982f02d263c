"""
Supervisor - Drives the plugin lifecycle from startup to the final join.

Phases, strictly in this order:
1. allocate    register every declared plugin (plugins may add flags)
2. parse       resolve the command line once, now that all flags exist
3. initialize  plugins set up state from the resolved config
   acquire     take the single-instance lock
   background  fork away unless -d, then re-record the PID
4. start       plugins start, spawning workers where needed
   join        wait for every worker, then report failed plugins
"""

import sys
from collections.abc import Callable, Sequence
from pathlib import Path

import structlog

from ..config import AgentConfig
from ..contracts import AllocatingPlugin, PluginProtocol
from ..core import AgentCore
from ..errors import DaemonizeFailure, GuardDegraded, InstanceConflict, UsageError
from ..plugins import Plugin, PluginState
from .daemon import daemonize
from .pid import PIDFile

__all__ = ["PluginFactory", "PluginSpec", "Supervisor"]

logger = structlog.get_logger(__name__)

PluginFactory = Callable[[], PluginProtocol]

# (name, factory); a None factory allocates an inert record
PluginSpec = tuple[str, PluginFactory | None]


class Supervisor:
    """Bootstraps the agent and blocks until all plugin workers finish.

    Example:
        supervisor = Supervisor([("httpd", HttpdPlugin), ("vlog", None)])
        sys.exit(supervisor.run(sys.argv[1:]))
    """

    def __init__(
        self,
        declared: Sequence[PluginSpec],
        core: AgentCore | None = None,
        daemonizer: Callable[[AgentConfig, Callable[[], None]], None] = daemonize,
        guard_factory: Callable[[Path], PIDFile] = PIDFile,
    ) -> None:
        self.declared = list(declared)
        self.core = core if core is not None else AgentCore()
        self.daemonizer = daemonizer
        self.guard_factory = guard_factory
        self.guard: PIDFile | None = None

    # Phase 1

    def allocate(self) -> None:
        """Register every declared plugin, in declared order."""
        for name, factory in self.declared:
            handler = factory() if factory is not None else None
            self.core.plugins.register(name, handler)
            if isinstance(handler, AllocatingPlugin):
                handler.allocate(self.core)
        logger.info("plugins_allocated", plugins=self.core.plugins.names())

    # Phase 2

    def parse(self, argv: Sequence[str]) -> AgentConfig:
        """Resolve the command line into the shared configuration.

        Raises:
            UsageError: On -h or invalid arguments
        """
        config = self.core.options.parse(argv)
        self.core.resolve(config)
        logger.debug("config_resolved", port=config.port, debug=config.debug)
        return config

    # Phase 3

    def initialize(self) -> None:
        """Initialize plugins in registration order."""
        if not self.core.resolved:
            raise RuntimeError("Plugins cannot initialize before the config is parsed")

        for plugin in self.core.plugins:
            if plugin.handler is not None:
                try:
                    plugin.handler.init(self.core)
                except Exception as e:
                    plugin.fail(e)
                    logger.exception("plugin_init_failed", plugin=plugin.name, error=str(e))
                    continue
            plugin.state = PluginState.INITIALIZED

    def acquire_guard(self) -> PIDFile | None:
        """Take the single-instance lock.

        Returns:
            The held guard, or None when running unprotected

        Raises:
            InstanceConflict: If another agent holds the lock
        """
        guard = self.guard_factory(self.core.config.pid_file)
        try:
            guard.acquire()
        except GuardDegraded as e:
            # Not fatal: carry on without instance protection
            print(f"Warning: {e}", file=sys.stderr)
            logger.warning("pid_file_unavailable", path=str(e.path), error=str(e.error))
            return None
        self.guard = guard
        return guard

    def background(self) -> None:
        """Detach unless running in the foreground.

        The daemonizer calls back into refresh_guard() once detached, so
        the new PID is on record before the launcher sees success.

        Raises:
            DaemonizeFailure: After releasing the guard
        """
        if self.core.config.debug:
            print("Plugins initialized. Debug mode (-d), not forking.")
            return

        print("Plugins initialized. Forking.")
        try:
            self.daemonizer(self.core.config, self.refresh_guard)
        except DaemonizeFailure:
            self.release_guard()
            raise
        except OSError as e:
            self.release_guard()
            raise DaemonizeFailure(f"Daemon setup failed: {e}") from e

    def refresh_guard(self) -> None:
        """Record the current PID in the held guard."""
        if self.guard is not None and self.guard.refresh():
            logger.debug("pid_file_refreshed", pid=self.guard.pid)

    # Phase 4

    def start(self) -> None:
        """Start plugins in registration order."""
        print("Starting plugins: ", end="")
        for plugin in self.core.plugins:
            print(f"{plugin.name} ", end="")
            if plugin.state is not PluginState.INITIALIZED:
                logger.warning("plugin_not_started", plugin=plugin.name, state=plugin.state.value)
                continue
            if plugin.handler is not None:
                try:
                    worker = plugin.handler.start(self.core, plugin.name)
                    if worker is not None:
                        plugin.attach_worker(worker)
                except Exception as e:
                    plugin.fail(e)
                    logger.exception("plugin_start_failed", plugin=plugin.name, error=str(e))
                    continue
            plugin.state = PluginState.STARTED
            logger.debug("plugin_started", plugin=plugin.name, worker=plugin.worker is not None)
        print(flush=True)

    def join(self) -> list[Plugin]:
        """Wait for every worker, without timeout, in registration order.

        Returns:
            Plugins that failed in any phase or whose worker raised
        """
        for plugin in self.core.plugins.with_workers():
            plugin.worker.join()
            if plugin.failed:
                plugin.state = PluginState.FAILED
            else:
                plugin.state = PluginState.TERMINATED

        failed = self.core.plugins.failed()
        for plugin in failed:
            logger.error("plugin_failed", plugin=plugin.name, error=str(plugin.error))
        return failed

    def release_guard(self) -> None:
        if self.guard is not None:
            self.guard.release()
            self.guard = None

    def run(self, argv: Sequence[str]) -> int:
        """Run the full lifecycle.

        Returns:
            Exit code: 0 once every worker returned cleanly, 1 on usage
            errors, a conflicting instance, a failed fork or failed plugins
        """
        self.allocate()

        try:
            self.parse(argv)
        except UsageError as e:
            if not e.help_requested:
                print(f"{self.core.options.prog}: {e.message}", file=sys.stderr)
            print(self.core.options.usage(), file=sys.stderr)
            return 1

        self.initialize()

        try:
            self.acquire_guard()
        except InstanceConflict as e:
            print(e, file=sys.stderr)
            logger.error("instance_conflict", path=str(e.path), pid=e.pid)
            return 1

        try:
            self.background()
        except DaemonizeFailure as e:
            print(f"Cannot daemonize: {e}", file=sys.stderr)
            return 1

        try:
            self.start()
            failed = self.join()
        finally:
            self.release_guard()

        return 1 if failed else 0
