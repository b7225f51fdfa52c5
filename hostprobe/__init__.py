"""hostprobe - monitoring probes for block I/O rates and kernel versions."""

__version__ = "0.1.0"
