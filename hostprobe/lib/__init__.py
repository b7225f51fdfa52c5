"""Shared utility library for hostprobe probes."""

from hostprobe.lib.filesystem import FileError, file_exists, read_file
from hostprobe.lib.statestore import StateError, StateLockedError, StateRecord, StateStore

__all__ = [
    "FileError",
    "StateError",
    "StateLockedError",
    "StateRecord",
    "StateStore",
    "file_exists",
    "read_file",
]
