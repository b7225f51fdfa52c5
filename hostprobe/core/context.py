"""Execution context for testability."""

import os
import time
from pathlib import Path


class Context:
    """
    Wraps external reads for testability.

    In production: reads the real filesystem, clock and environment
    In tests: can be replaced with MockContext
    """

    def read_file(self, path: str) -> str:
        """Read file contents."""
        return Path(path).read_text()

    def file_exists(self, path: str) -> bool:
        """Check if file exists."""
        return Path(path).exists()

    def get_env(self, key: str, default: str | None = None) -> str | None:
        """Get environment variable."""
        return os.environ.get(key, default)

    def now(self) -> int:
        """Current wall-clock time in whole seconds since the epoch."""
        return int(time.time())
