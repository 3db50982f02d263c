"""
CLI Main - Entry point for the `varnish-agent` command.
"""

import sys

from ..builtins import DECLARED_PLUGINS
from ..config import AgentConfig
from ..lifecycle import Supervisor
from ..logging import configure_logging

__all__ = ["main"]


def main(args: list[str] | None = None) -> int:
    """Main entry point for the agent.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    if args is None:
        args = sys.argv[1:]

    configure_logging(AgentConfig().log_level)

    supervisor = Supervisor(DECLARED_PLUGINS)
    try:
        return supervisor.run(args)
    except KeyboardInterrupt:
        supervisor.release_guard()
        return 130


if __name__ == "__main__":
    sys.exit(main())
