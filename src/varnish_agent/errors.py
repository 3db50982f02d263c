"""
Errors raised by the supervisor core.

Each is raised where the condition is detected and handled in
Supervisor.run, which prints the diagnostic and picks the exit code.
"""

from pathlib import Path

__all__ = [
    "AgentError",
    "DaemonizeFailure",
    "GuardDegraded",
    "InstanceConflict",
    "UsageError",
]


class AgentError(Exception):
    """Base class for supervisor errors."""

    pass


class UsageError(AgentError):
    """Invalid arguments, or -h was given.

    A help request carries no message; only the usage text is printed.
    """

    def __init__(self, message: str | None = None) -> None:
        self.message = message
        super().__init__(message or "help requested")

    @property
    def help_requested(self) -> bool:
        return self.message is None


class InstanceConflict(AgentError):
    """Lock path is held by another live agent."""

    def __init__(self, pid: int | None, path: Path) -> None:
        self.pid = pid
        self.path = path
        shown = pid if pid is not None else "unknown"
        super().__init__(f"Daemon already running, pid: {shown}.")


class GuardDegraded(AgentError):
    """Lock file could not be created for a reason other than a conflict."""

    def __init__(self, path: Path, error: OSError) -> None:
        self.path = path
        self.error = error
        super().__init__(f"Cannot open or create pidfile {path}: {error}")


class DaemonizeFailure(AgentError):
    """The transition into the background failed."""

    pass
