"""Probe discovery."""

from dataclasses import dataclass
from pathlib import Path

from hostprobe.core.metadata import MetadataError, read_metadata

PROBES_PACKAGE = "hostprobe.probes"
PROBES_DIR = Path(__file__).resolve().parent.parent / "probes"


@dataclass
class Probe:
    """Represents a discovered probe module."""

    name: str
    module: str
    path: Path
    category: str
    tags: list[str]
    brief: str
    label: str
    privilege: str | None = None
    related: list[str] | None = None

    @classmethod
    def from_path(cls, path: Path, package: str = PROBES_PACKAGE) -> "Probe | None":
        """
        Create Probe from module path.

        Args:
            path: Path to probe module
            package: Dotted package the module lives in

        Returns:
            Probe instance, or None if no valid metadata
        """
        try:
            metadata = read_metadata(path)
        except MetadataError:
            return None

        if metadata is None:
            return None

        return cls(
            name=path.stem,
            module=f"{package}.{path.stem}",
            path=path,
            category=metadata["category"],
            tags=metadata["tags"],
            brief=metadata["brief"],
            label=metadata.get("label", path.stem.upper()),
            privilege=metadata.get("privilege"),
            related=metadata.get("related"),
        )


def discover_probes(directory: Path = PROBES_DIR, package: str = PROBES_PACKAGE) -> list[Probe]:
    """
    Discover all probe modules in directory.

    Args:
        directory: Directory to search
        package: Dotted package name matching the directory

    Returns:
        Discovered probes sorted by name
    """
    probes = []

    for path in sorted(directory.glob("*.py")):
        if path.name.startswith("_"):
            continue
        probe = Probe.from_path(path, package=package)
        if probe is not None:
            probes.append(probe)

    return probes


def find_probe(name: str, probes: list[Probe]) -> Probe | None:
    """Find a probe by name, accepting an optional .py suffix."""
    name = name.removesuffix(".py")
    for probe in probes:
        if probe.name == name:
            return probe
    return None


def probe_label(module_file: str) -> str:
    """
    Result label a probe module declares in its header.

    Raises:
        MetadataError: If the module has no valid header
    """
    path = Path(module_file)
    probe = Probe.from_path(path)
    if probe is None:
        raise MetadataError(f"No valid hostprobe header in {path}")
    return probe.label
