"""Result output helper for probes."""

import argparse
from enum import IntEnum
from typing import Any


class Severity(IntEnum):
    """Probe result states; the value is the process exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


class UsageError(Exception):
    """Invalid command-line usage."""

    pass


class ProbeArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("add_help", False)
        super().__init__(*args, **kwargs)

    def error(self, message: str) -> None:
        raise UsageError(message)


class Output:
    """Collects a probe's result and prints it as a single line."""

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.errors: list[str] = []
        self.severity: Severity | None = None
        self.message: str = ""
        self._printed: bool = False

    def emit(self, data: dict[str, Any]) -> None:
        """Store structured result data (measurements, thresholds)."""
        self.data.update(data)

    def error(self, message: str) -> None:
        """Record an error message."""
        self.errors.append(message)

    @property
    def summary(self) -> str:
        """Result message, or the first error if no result was set."""
        if self.message:
            return self.message
        if self.errors:
            return self.errors[0]
        return "no result"

    def line(self, label: str) -> str:
        """Format the result line, e.g. 'BLKSTAT OK: ...'."""
        severity = self.severity if self.severity is not None else Severity.UNKNOWN
        return f"{label} {severity.name}: {self.summary}"

    def result(self, label: str, severity: Severity, message: str) -> int:
        """
        Set the result, print it once and return the exit code.

        Args:
            label: Probe label printed before the severity (e.g. BLKSTAT)
            severity: Result severity
            message: Human-readable detail

        Returns:
            Exit code for the severity
        """
        self.severity = severity
        self.message = message
        if severity is Severity.UNKNOWN:
            self.error(message)
        if not self._printed:
            self._printed = True
            print(self.line(label))
        return int(severity)
