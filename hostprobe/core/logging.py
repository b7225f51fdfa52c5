"""JSONL logging for probe runs."""

import json
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hostprobe.core.context import Context


# Log level ordering
LOG_LEVELS = {"debug": 0, "info": 1, "warning": 2, "error": 3}


def get_log_path(probe_name: str, base_path: Path) -> Path:
    """
    Get the log file path for a probe.

    Args:
        probe_name: Name of the probe (e.g. blkstat)
        base_path: Base directory for logs

    Returns:
        Path to the log file: {base}/{date}/{probe}.jsonl
    """
    today = date.today().isoformat()
    return base_path / today / f"{probe_name}.jsonl"


class ProbeLogger:
    """
    JSONL logger for probe runs.

    Writes structured log entries to a JSONL file. A logger without a
    log path accepts entries and drops them. The run log never decides a
    probe's result: if the file can't be opened or written, the logger
    prints one notice to stderr and drops entries for the rest of the run.
    """

    def __init__(self, probe_name: str, log_path: Path | None = None):
        """
        Initialize logger.

        Args:
            probe_name: Name of the probe being logged
            log_path: Path to log file (None disables logging)
        """
        self.probe_name = probe_name
        self.log_path = log_path
        self.failure: str | None = None
        self._file = None

    @property
    def enabled(self) -> bool:
        return self.log_path is not None and self.failure is None

    def _ensure_file(self) -> None:
        """Ensure log file is open."""
        if self._file is None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.log_path, "a")

    def _disable(self, error: OSError) -> None:
        if self.failure is None:
            self.failure = f"{self.log_path}: {error.strerror or error}"
            print(f"{self.probe_name}: run log disabled: {self.failure}", file=sys.stderr)

    def _log(self, level: str, message: str, **extra: Any) -> None:
        """Write a log entry."""
        if not self.enabled:
            return
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "probe": self.probe_name,
            "message": message,
            **extra,
        }
        try:
            self._ensure_file()
            self._file.write(json.dumps(entry, default=str) + "\n")
            self._file.flush()
        except OSError as e:
            self._disable(e)
            self.close()

    def debug(self, message: str, **extra: Any) -> None:
        """Log debug message."""
        self._log("debug", message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        """Log info message."""
        self._log("info", message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        """Log warning message."""
        self._log("warning", message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        """Log error message."""
        self._log("error", message, **extra)

    def close(self) -> None:
        """Close the log file."""
        log_file, self._file = self._file, None
        if log_file is not None:
            try:
                log_file.close()
            except OSError as e:
                self._disable(e)

    def __enter__(self) -> "ProbeLogger":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


def open_logger(probe_name: str, context: "Context | None" = None) -> ProbeLogger:
    """Create the run logger for a probe from the configured log directory."""
    from hostprobe.core.config import get_log_dir

    base_path = get_log_dir(context)
    if base_path is None:
        return ProbeLogger(probe_name)
    return ProbeLogger(probe_name, log_path=get_log_path(probe_name, base_path))


def query_logs(
    base_path: Path,
    probe: str,
    log_date: date | None = None,
    min_level: str = "debug",
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """
    Query log entries.

    Args:
        base_path: Base directory for logs
        probe: Probe name to query
        log_date: Date to query (default: today)
        min_level: Minimum log level to include
        limit: Maximum number of entries to return

    Returns:
        List of log entries matching criteria
    """
    if log_date is None:
        log_date = date.today()

    log_file = base_path / log_date.isoformat() / f"{probe}.jsonl"

    if not log_file.exists():
        return []

    min_level_num = LOG_LEVELS.get(min_level, 0)
    results = []

    with open(log_file) as f:
        for line in f:
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            entry_level = LOG_LEVELS.get(entry.get("level", "debug"), 0)
            if entry_level >= min_level_num:
                results.append(entry)
                if limit and len(results) >= limit:
                    break

    return results
