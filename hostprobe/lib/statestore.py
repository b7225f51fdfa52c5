"""Per-key persisted probe state with exclusive locking.

Each key (a device name for the block I/O probe) owns one state file holding
the raw text of the last sample. The file's modification time is the capture
time of that sample. A sibling ``.lock`` file is used for advisory locking so
that overlapping runs for the same key cannot both read the same baseline.
"""

import errno
import fcntl
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator


class StateError(Exception):
    """Error reading or writing persisted state."""

    pass


class StateLockedError(StateError):
    """State for a key is locked by another run."""

    pass


@dataclass(frozen=True)
class StateRecord:
    """Persisted state for one key."""

    content: str
    mtime: int


class StateStore:
    """File-backed state, one file per key under a common directory."""

    def __init__(self, directory: Path, prefix: str):
        """
        Args:
            directory: Directory holding state and lock files
            prefix: File name prefix, usually the probe name
        """
        self.directory = Path(directory)
        self.prefix = prefix
        self._locks: dict[str, int] = {}

    def path_for(self, key: str) -> Path:
        """State file path for a key."""
        if not key or os.sep in key or key in (".", ".."):
            raise StateError(f"Invalid state key: {key!r}")
        return self.directory / f"{self.prefix}_{key}.state"

    def lock_path_for(self, key: str) -> Path:
        path = self.path_for(key)
        return path.with_name(path.name + ".lock")

    def _ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StateError(f"Cannot create state directory {self.directory}: {e.strerror or e}") from e

    def is_locked(self, key: str) -> bool:
        """True if this store currently holds the lock for key."""
        return key in self._locks

    def acquire(self, key: str, blocking: bool = False) -> None:
        """
        Take the exclusive lock for key.

        Raises:
            StateLockedError: If non-blocking and another process holds it
            StateError: If the lock file can't be opened
        """
        if self.is_locked(key):
            return

        self._ensure_directory()
        lock_path = self.lock_path_for(key)
        try:
            fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise StateError(f"Cannot open lock file {lock_path}: {e.strerror or e}") from e

        flags = fcntl.LOCK_EX
        if not blocking:
            flags |= fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except OSError as e:
            os.close(fd)
            if e.errno in (errno.EAGAIN, errno.EACCES):
                raise StateLockedError(f"State for {key} is locked by another run") from e
            raise StateError(f"Cannot lock {lock_path}: {e.strerror or e}") from e

        self._locks[key] = fd

    def release(self, key: str) -> None:
        """Release the lock for key if held."""
        fd = self._locks.pop(key, None)
        if fd is None:
            return
        try:
            os.close(fd)
        except OSError as e:
            if e.errno != errno.EBADF:
                raise

    @contextmanager
    def locked(self, key: str, blocking: bool = False) -> Iterator[None]:
        """Hold the exclusive lock for key for the duration of the block."""
        self.acquire(key, blocking=blocking)
        try:
            yield
        finally:
            self.release(key)

    def load(self, key: str) -> StateRecord | None:
        """
        Load persisted state for key.

        Returns:
            The record, or None if no state exists yet

        Raises:
            StateError: If the state exists but can't be read
        """
        path = self.path_for(key)
        try:
            with open(path) as f:
                content = f.read()
                mtime = int(os.fstat(f.fileno()).st_mtime)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StateError(f"Cannot read state file {path}: {e}") from e
        return StateRecord(content=content, mtime=mtime)

    def save(self, key: str, content: str, mtime: int | None = None) -> None:
        """
        Atomically replace the state for key.

        Args:
            key: State key
            content: Text to persist
            mtime: Capture time to stamp on the file (default: now)

        Raises:
            StateError: If the state can't be written
        """
        path = self.path_for(key)
        self._ensure_directory()

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=str(self.directory), prefix=f".{path.name}.new", delete=False
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(content)
            if mtime is not None:
                os.utime(tmp_path, (mtime, mtime))
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
            raise StateError(f"Cannot write state file {path}: {e.strerror or e}") from e
