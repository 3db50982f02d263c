"""
PID File Management - Single-instance guard.

Handles:
- Creating the PID file under an exclusive lock
- Detecting a live agent holding the lock
- Reusing stale PID files left by a crash
- Rewriting the recorded PID after the process forks
"""

import fcntl
import os
from pathlib import Path

import structlog

from ..errors import GuardDegraded, InstanceConflict

__all__ = ["PIDFile"]

logger = structlog.get_logger(__name__)

PID_FILE_MODE = 0o600


class PIDFile:
    """Exclusive PID file for the agent process.

    The file is locked with flock() for as long as the agent runs. The
    lock dies with the process, so a file left behind by a crash is
    stale, not a conflict. The lock survives fork(), so the background
    process keeps it; refresh() then records its new PID.

    Example:
        pid_file = PIDFile("/var/run/varnish-agent.pid")

        try:
            pid_file.acquire()
        except InstanceConflict as e:
            sys.exit(f"Already running as PID {e.pid}")

        try:
            run_agent()
        finally:
            pid_file.release()
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.pid: int | None = None
        self.created = False
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> "PIDFile":
        """Lock the PID file and record the current process.

        Raises:
            InstanceConflict: If another process holds the lock
            GuardDegraded: If the file cannot be created or locked
        """
        if self._fd is not None:
            raise RuntimeError(f"PID file already held: {self.path}")

        existed = self.path.exists()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, PID_FILE_MODE)
        except OSError as e:
            raise GuardDegraded(self.path, e) from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            other = _read_fd(fd)
            os.close(fd)
            raise InstanceConflict(other, self.path) from None
        except OSError as e:
            os.close(fd)
            raise GuardDegraded(self.path, e) from e

        if existed:
            # Nobody holds the lock: previous owner died without cleanup
            logger.warning("stale_pid_file", path=str(self.path), pid=_read_fd(fd))

        self._fd = fd
        self.created = not existed
        self.write()
        return self

    def write(self, pid: int | None = None) -> None:
        """Record a PID in the held file (current process by default)."""
        if self._fd is None:
            raise RuntimeError(f"PID file not held: {self.path}")

        pid = os.getpid() if pid is None else pid
        os.ftruncate(self._fd, 0)
        os.pwrite(self._fd, f"{pid}\n".encode(), 0)
        self.pid = pid
        logger.info("pid_file_written", path=str(self.path), pid=pid)

    def refresh(self) -> bool:
        """Re-record the current PID, e.g. after daemonizing.

        Returns:
            True if the recorded PID changed
        """
        current = os.getpid()
        if current == self.pid:
            return False
        self.write(current)
        return True

    def read(self) -> int | None:
        """Read PID from file.

        Returns:
            PID as integer, or None if file doesn't exist or is invalid
        """
        try:
            return int(self.path.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None

    def release(self) -> bool:
        """Remove the PID file and drop the lock.

        Returns:
            True if file was removed, False if it didn't exist
        """
        removed = False
        if self._fd is not None:
            try:
                self.path.unlink()
                removed = True
            except FileNotFoundError:
                pass
            fcntl.flock(self._fd, fcntl.LOCK_UN)
            os.close(self._fd)
            self._fd = None
            logger.info("pid_file_removed", path=str(self.path))
        return removed

    def __enter__(self) -> "PIDFile":
        """Context manager: acquire on entry."""
        return self.acquire()

    def __exit__(self, *args) -> None:
        """Context manager: release on exit."""
        self.release()


def _read_fd(fd: int) -> int | None:
    """Read the PID recorded in an open PID file."""
    try:
        return int(os.pread(fd, 32, 0).decode().strip())
    except (OSError, ValueError):
        return None
