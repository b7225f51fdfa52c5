"""Probe metadata parsing from header comments."""

import re
from pathlib import Path
from typing import Any

import yaml


class MetadataError(Exception):
    """Error parsing or validating probe metadata."""

    pass


# Required fields in metadata
REQUIRED_FIELDS = {"category", "tags", "brief"}

# Valid privilege levels
VALID_PRIVILEGES = {"root", "user", None}

# Category pattern: parent/child
CATEGORY_PATTERN = re.compile(r"^[a-z]+/[a-z]+$")

# Label printed in front of the result line
LABEL_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")

# Maximum lines to search for header
MAX_HEADER_LINES = 20

HEADER_MARKER = "# hostprobe:"

# Header YAML lines are comments indented by two spaces
YAML_PREFIX = "#   "


def header_block(content: str) -> list[str]:
    """
    Return the YAML lines of a module's `# hostprobe:` header.

    The comment prefix is stripped. Only the first MAX_HEADER_LINES lines
    are searched; the block ends at the first line without the prefix.
    """
    lines = iter(content.splitlines()[:MAX_HEADER_LINES])
    for line in lines:
        if line.strip() == HEADER_MARKER:
            break
    else:
        return []

    block = []
    for line in lines:
        if not line.startswith(YAML_PREFIX):
            break
        block.append(line[len(YAML_PREFIX):])
    return block


def parse_metadata(content: str) -> dict[str, Any] | None:
    """
    Parse hostprobe metadata from module header comments.

    Args:
        content: Full module source

    Returns:
        Parsed metadata dict, or None if no header found

    Raises:
        MetadataError: If header found but malformed or missing required fields
    """
    block = header_block(content)
    if not block:
        return None

    try:
        metadata = yaml.safe_load("\n".join(block))
    except yaml.YAMLError as e:
        raise MetadataError(f"Invalid YAML in metadata: {e}") from e

    if not isinstance(metadata, dict):
        raise MetadataError("Metadata must be a YAML mapping")

    missing = REQUIRED_FIELDS - set(metadata.keys())
    if missing:
        raise MetadataError(f"Missing required fields: {', '.join(sorted(missing))}")

    return metadata


def read_metadata(path: Path) -> dict[str, Any] | None:
    """
    Parse the header of a module file.

    Raises:
        MetadataError: If the file can't be read or its header is malformed
    """
    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise MetadataError(f"Cannot read {path}: {e}") from e
    return parse_metadata(content)


def validate_metadata(metadata: dict[str, Any]) -> list[str]:
    """
    Validate metadata and return warnings.

    Args:
        metadata: Parsed metadata dict

    Returns:
        List of warning messages (empty if valid)
    """
    warnings = []

    category = metadata.get("category", "")
    if not CATEGORY_PATTERN.match(str(category)):
        warnings.append(f"Category '{category}' should be in format 'parent/child'")

    privilege = metadata.get("privilege")
    if privilege not in VALID_PRIVILEGES:
        warnings.append(f"Privilege '{privilege}' is not valid. Use 'root' or 'user'.")

    label = metadata.get("label")
    if label is not None and not LABEL_PATTERN.match(str(label)):
        warnings.append(f"Label '{label}' should be upper case (e.g. BLKSTAT)")

    if not metadata.get("tags"):
        warnings.append("Tags list should not be empty")

    return warnings
