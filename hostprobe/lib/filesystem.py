"""Reading probe input files through the execution context."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostprobe.core.context import Context


class FileError(Exception):
    """Probe input file is missing, unreadable or not text."""

    pass


def _resolve(context: "Context | None") -> "Context":
    if context is None:
        from hostprobe.core.context import Context
        return Context()
    return context


def read_file(path: str, context: "Context | None" = None) -> str:
    """
    Read a probe input file as text.

    Args:
        path: Path to file
        context: Execution context (for testing)

    Raises:
        FileError: If the file is missing, can't be read or isn't valid text
    """
    try:
        return _resolve(context).read_file(path)
    except FileNotFoundError as e:
        raise FileError(f"File not found: {path}") from e
    except OSError as e:
        raise FileError(f"Cannot read {path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise FileError(f"Cannot decode {path}: {e.reason} at byte {e.start}") from e


def file_exists(path: str, context: "Context | None" = None) -> bool:
    """True if path exists."""
    return _resolve(context).file_exists(path)
