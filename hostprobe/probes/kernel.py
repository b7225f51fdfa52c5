#!/usr/bin/env python3
# hostprobe:
#   category: baremetal/kernel
#   tags: [kernel, version, patching, compliance]
#   label: KERNEL
#   privilege: user
#   related: [blkstat]
#   brief: Check the running kernel is at least the desired version

"""
Check that the running kernel is at least the desired version.

The running version is read from /proc/version_signature (second field, e.g.
"3.2.0-30.48-generic"), falling back to /proc/sys/kernel/osrelease on
kernels that don't provide a version signature. Both the running and the
desired version are normalized to numeric tuples: "3.2.0-30.48-generic"
becomes (3, 2, 0, 30).

A running kernel behind the desired version is always CRITICAL; there is no
warning state.

Exit codes:
    0: OK, running kernel matches or is ahead of the desired version
    2: CRITICAL, running kernel is behind the desired version
    3: UNKNOWN, usage error or version can't be determined
"""

import argparse
import re
import sys

from hostprobe.core.context import Context
from hostprobe.core.discovery import probe_label
from hostprobe.core.logging import open_logger
from hostprobe.core.output import Output, ProbeArgumentParser, Severity, UsageError
from hostprobe.lib.filesystem import FileError, file_exists, read_file

PROBE_NAME = "kernel"
LABEL = probe_label(__file__)

VERSION_SIGNATURE = "/proc/version_signature"
OSRELEASE = "/proc/sys/kernel/osrelease"

DESIRED_PATTERN = re.compile(r"^[0-9][0-9.-]*$")

# <major.minor.patch>-<build><anything>
RELEASE_PATTERN = re.compile(r"^(\d+\.\d+\.\d+)-(\d+).*$")
# -rc1, -arch1-1 and other dash suffixes that don't start with a build number
FREE_TEXT_SUFFIX = re.compile(r"-[^0-9].*$")
NON_VERSION_CHARS = re.compile(r"[^0-9.]")


class VersionParseError(Exception):
    """Version string has no numeric components."""

    pass


EXTENDED_HELP = """\
The desired version may use dots and dashes, e.g. 3.2.0-48 or 3.2.0.48.
Versions are compared component by component up to the shorter of the two.
A desired version that is a prefix of the running one (e.g. 3.2 against a
running 3.2.0.48) is considered met.

Example:
  check_kernel -c 5.15.0-91

Exit codes: 0 OK, 2 CRITICAL, 3 UNKNOWN
"""


def create_parser() -> ProbeArgumentParser:
    """Create the argument parser."""
    parser = ProbeArgumentParser(
        prog="check_kernel",
        description="Check the running kernel against a desired version",
        epilog=EXTENDED_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help and exit")
    parser.add_argument(
        "-c", "--desired", required=True, metavar="VERSION",
        help="Desired kernel version (digits, dots and dashes)",
    )
    return parser


def normalize_version(raw: str) -> tuple[int, ...]:
    """
    Normalize a version string to a tuple of ints.

    "3.2.0-30.48-generic" -> (3, 2, 0, 30)
    "3.2.0.48" -> (3, 2, 0, 48)
    "6.8.0-rc1" -> (6, 8, 0)

    Raises:
        VersionParseError: If nothing numeric remains
    """
    value = RELEASE_PATTERN.sub(r"\1.\2", raw.strip())
    value = FREE_TEXT_SUFFIX.sub("", value)
    value = NON_VERSION_CHARS.sub("", value)
    parts = [p for p in value.split(".") if p]
    if not parts:
        raise VersionParseError(f"unable to parse version '{raw.strip()}'")
    return tuple(int(p) for p in parts)


def format_version(version: tuple[int, ...]) -> str:
    return ".".join(str(p) for p in version)


def compare_versions(running: tuple[int, ...], desired: tuple[int, ...]) -> tuple[Severity, str]:
    """Compare running against desired; returns severity and message."""
    have = format_version(running)
    want = format_version(desired)

    if running == desired:
        return Severity.OK, f"running kernel {have} is up to date"

    for r, d in zip(running, desired):
        if r < d:
            return Severity.CRITICAL, f"running kernel {have} is behind desired {want}"
        if r > d:
            return Severity.OK, f"running kernel {have} is ahead of desired {want}"

    # One is a prefix of the other
    if len(running) > len(desired):
        return Severity.OK, f"running kernel {have} matches desired {want}"

    return Severity.UNKNOWN, f"unable to compare running kernel {have} with desired {want}"


def read_running_version(context: Context) -> str:
    """
    Read the running kernel version string.

    Raises:
        FileError: If neither source can be read
        VersionParseError: If the version signature is malformed
    """
    if file_exists(VERSION_SIGNATURE, context):
        fields = read_file(VERSION_SIGNATURE, context).split()
        if len(fields) < 2:
            raise VersionParseError(f"unexpected {VERSION_SIGNATURE} format")
        return fields[1]

    release = read_file(OSRELEASE, context).strip()
    if not release:
        raise VersionParseError(f"{OSRELEASE} is empty")
    return release


def run(args: list[str], output: Output, context: Context) -> int:
    """
    Main entry point.

    Args:
        args: Command-line arguments
        output: Output helper
        context: Execution context

    Returns:
        0 = OK, 2 = CRITICAL, 3 = UNKNOWN
    """
    if "-h" in args or "--help" in args:
        print(create_parser().format_help(), end="")
        return 0

    try:
        opts = create_parser().parse_args(args)
        if not DESIRED_PATTERN.match(opts.desired):
            raise UsageError(f"invalid desired version '{opts.desired}'")
    except UsageError as e:
        return output.result(LABEL, Severity.UNKNOWN, f"usage error: {e}")

    with open_logger(PROBE_NAME, context) as logger:
        logger.debug("run started", desired=opts.desired)
        try:
            desired = normalize_version(opts.desired)
            raw = read_running_version(context)
            running = normalize_version(raw)
        except (FileError, VersionParseError) as e:
            logger.error(str(e), desired=opts.desired)
            return output.result(LABEL, Severity.UNKNOWN, str(e))

        severity, message = compare_versions(running, desired)
        output.emit({
            "running": raw,
            "running_version": format_version(running),
            "desired_version": format_version(desired),
        })
        logger.info(message, severity=severity.name, **output.data)

    return output.result(LABEL, severity, message)


def main(argv: list[str] | None = None) -> int:
    return run(sys.argv[1:] if argv is None else argv, Output(), Context())


if __name__ == "__main__":
    sys.exit(main())
