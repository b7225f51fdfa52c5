"""Core hostprobe functionality."""

from hostprobe.core.context import Context
from hostprobe.core.discovery import Probe, discover_probes, find_probe, probe_label
from hostprobe.core.metadata import MetadataError, parse_metadata, read_metadata, validate_metadata
from hostprobe.core.output import Output, Severity, UsageError

__all__ = [
    "Context",
    "MetadataError",
    "Output",
    "Probe",
    "Severity",
    "UsageError",
    "discover_probes",
    "find_probe",
    "parse_metadata",
    "probe_label",
    "read_metadata",
    "validate_metadata",
]
