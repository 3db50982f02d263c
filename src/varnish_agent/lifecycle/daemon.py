"""
Daemonization - Detach the agent into the background.

The original process stays until the daemon reports over a pipe that
setup finished, then exits with 0 or 1 accordingly. A failure in the
intermediate child or the daemon is thus seen by whoever launched us.
"""

import os
import sys
from collections.abc import Callable

import structlog

from ..config import AgentConfig
from ..errors import DaemonizeFailure

__all__ = ["daemonize"]

logger = structlog.get_logger(__name__)

READY = b"\x00"


def daemonize(config: AgentConfig, on_detached: Callable[[], None] | None = None) -> None:
    """Continue execution as a background daemon (double-fork).

    Only the final grandchild returns. The original process exits once
    the grandchild reports, and the intermediate child right after the
    second fork. Neither runs cleanup, so a PID file locked beforehand
    stays locked by the daemon.

    Args:
        config: Resolved configuration (log_file is used for stdio)
        on_detached: Run in the daemon before success is reported

    Raises:
        DaemonizeFailure: In the process where a fork or the setup failed
    """
    sys.stdout.flush()
    sys.stderr.flush()

    read_fd, write_fd = os.pipe()

    # First fork
    try:
        pid = os.fork()
    except OSError as e:
        os.close(read_fd)
        os.close(write_fd)
        raise DaemonizeFailure(f"Fork failed: {e}") from e
    if pid > 0:
        os.close(write_fd)
        os._exit(_await_daemon(read_fd))

    os.close(read_fd)
    try:
        _detach(config, on_detached)
    except DaemonizeFailure as e:
        _report(write_fd, str(e).encode())
        raise
    except OSError as e:
        failure = DaemonizeFailure(f"Daemon setup failed: {e}")
        _report(write_fd, str(failure).encode())
        raise failure from e

    _report(write_fd, READY)
    logger.info("daemonized", pid=os.getpid())


def _detach(config: AgentConfig, on_detached: Callable[[], None] | None) -> None:
    # Child - decouple from parent
    os.setsid()

    # Second fork
    try:
        pid = os.fork()
    except OSError as e:
        raise DaemonizeFailure(f"Second fork failed: {e}") from e
    if pid > 0:
        os._exit(0)

    # Grandchild - actual daemon
    os.chdir("/")
    _redirect_stdio(config)
    if on_detached is not None:
        on_detached()


def _report(fd: int, message: bytes) -> None:
    try:
        os.write(fd, message)
    except BrokenPipeError:
        # Launcher was killed before reading; nobody is left to tell
        logger.warning("launcher_gone", reported=message != READY)
    finally:
        os.close(fd)


def _await_daemon(fd: int) -> int:
    """Block until the daemon reports, returning the exit status to use."""
    try:
        message = os.read(fd, 4096)
    finally:
        os.close(fd)

    if message == READY:
        return 0
    # An empty read means every writer exited without reporting
    reason = message.decode(errors="replace") or "daemon exited during startup"
    print(f"Cannot daemonize: {reason}", file=sys.stderr, flush=True)
    return 1


def _redirect_stdio(config: AgentConfig) -> None:
    """Point fds 0-2 at /dev/null, or stdout/stderr at the log file."""
    null_fd = os.open(os.devnull, os.O_RDWR)
    if config.log_file is not None:
        try:
            out_fd = os.open(config.log_file, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o640)
        except OSError as e:
            logger.warning("log_file_unavailable", path=str(config.log_file), error=str(e))
            out_fd = os.dup(null_fd)
    else:
        out_fd = os.dup(null_fd)

    os.dup2(null_fd, 0)
    os.dup2(out_fd, 1)
    os.dup2(out_fd, 2)
    os.close(null_fd)
    os.close(out_fd)
