#!/usr/bin/env python3
# hostprobe:
#   category: baremetal/storage
#   tags: [block, disk, io, iops, bandwidth]
#   label: BLKSTAT
#   privilege: user
#   related: [kernel]
#   brief: Check block device IOPS and bandwidth since the previous run

"""
Check block device I/O rates against warning and critical thresholds.

Reads the cumulative counters in /sys/block/<device>/stat, compares them with
the counters saved by the previous run and reports:
- IOPS (completed reads + writes per second)
- Read bandwidth
- Write bandwidth

The previous run's raw stats line is kept in a per-device state file whose
modification time is the time that sample was taken. The very first run for a
device only records a baseline. Runs for the same device are serialized with
an exclusive lock on the state.

Exit codes:
    0: OK, all rates within thresholds
    1: WARNING, a warning threshold was exceeded
    2: CRITICAL, a critical threshold was exceeded
    3: UNKNOWN, usage error, missing data or untrustworthy counters
"""

import argparse
import math
import re
import sys
from dataclasses import dataclass

from hostprobe.core.config import get_state_dir
from hostprobe.core.context import Context
from hostprobe.core.discovery import probe_label
from hostprobe.core.logging import open_logger
from hostprobe.core.output import Output, ProbeArgumentParser, Severity, UsageError
from hostprobe.lib.filesystem import FileError, read_file
from hostprobe.lib.statestore import StateError, StateStore

PROBE_NAME = "blkstat"
LABEL = probe_label(__file__)

DEFAULT_DEVICE = "sda"
SECTOR_SIZE = 512

# /sys/block/<dev>/stat has 11 fields (15 or 17 on newer kernels)
STAT_FIELDS = 11
STAT_READ_OPS = 0
STAT_READ_SECTORS = 2
STAT_WRITE_OPS = 4
STAT_WRITE_SECTORS = 6

# sysfs turns "/" in kernel device names into "!" (cciss!c0d0)
DEVICE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:+!-]*$")

DIMENSIONS = ("iops", "read_rate", "write_rate")


class StatsParseError(Exception):
    """Block stats record is malformed."""

    pass


class RateError(Exception):
    """Two samples can't produce a trustworthy rate."""

    pass


@dataclass(frozen=True)
class Unit:
    divisor: int
    name: str


UNITS = {
    "b": Unit(1, "B"),
    "k": Unit(1024, "KiB"),
    "m": Unit(1048576, "MiB"),
}


@dataclass(frozen=True)
class Sample:
    """Cumulative device counters at a point in time."""

    read_ops: int
    read_sectors: int
    write_ops: int
    write_sectors: int
    timestamp: int


@dataclass(frozen=True)
class Thresholds:
    iops: float
    read_rate: float
    write_rate: float


@dataclass(frozen=True)
class ProbeConfig:
    """Validated probe settings."""

    device: str
    warning: Thresholds
    critical: Thresholds
    unit: str = "m"


@dataclass(frozen=True)
class Rates:
    """Per-second rates between two samples."""

    iops: float
    read_rate: float
    write_rate: float
    elapsed: int


EXTENDED_HELP = """\
Rates are measured over the interval since the previous run for the same
device. The first run for a device records a baseline and reports UNKNOWN.

Thresholds are comma separated triples IOPS,READ,WRITE where READ and WRITE
are bandwidth in the unit chosen with -u (b = bytes, k = KiB, m = MiB per
second). A value is exceeded only when the measured rate is strictly greater.
Critical thresholds are checked before warning thresholds.

Example:
  check_blkstat -d sda -w 200,50,50 -c 500,100,100 -u m

Exit codes: 0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN
"""


def create_parser() -> ProbeArgumentParser:
    """Create the argument parser."""
    parser = ProbeArgumentParser(
        prog="check_blkstat",
        description="Check block device IOPS and bandwidth against thresholds",
        epilog=EXTENDED_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help and exit")
    parser.add_argument(
        "-d", "--device", default=DEFAULT_DEVICE,
        help=f"Block device name (default: {DEFAULT_DEVICE})",
    )
    parser.add_argument(
        "-w", "--warning", required=True, metavar="IOPS,READ,WRITE",
        help="Warning thresholds",
    )
    parser.add_argument(
        "-c", "--critical", required=True, metavar="IOPS,READ,WRITE",
        help="Critical thresholds",
    )
    parser.add_argument(
        "-u", "--unit", default="m", choices=sorted(UNITS),
        help="Bandwidth unit: b, k or m (default: m)",
    )
    return parser


def parse_thresholds(value: str, name: str) -> Thresholds:
    """Parse an IOPS,READ,WRITE triple."""
    parts = value.split(",")
    if len(parts) != 3:
        raise UsageError(f"{name} thresholds must be IOPS,READ,WRITE, got '{value}'")

    limits = []
    for dimension, part in zip(DIMENSIONS, parts):
        part = part.strip()
        if not part:
            raise UsageError(f"{name} {dimension} threshold is empty")
        try:
            limit = float(part)
        except ValueError:
            raise UsageError(f"{name} {dimension} threshold is not a number: '{part}'")
        if not math.isfinite(limit) or limit < 0:
            raise UsageError(f"{name} {dimension} threshold must be a non-negative number")
        limits.append(limit)

    return Thresholds(*limits)


def build_config(args: list[str]) -> ProbeConfig:
    """Build the probe configuration from command-line arguments."""
    opts = create_parser().parse_args(args)

    if not DEVICE_PATTERN.match(opts.device):
        raise UsageError(f"invalid device name '{opts.device}'")

    warning = parse_thresholds(opts.warning, "warning")
    critical = parse_thresholds(opts.critical, "critical")

    for dimension in DIMENSIONS:
        if getattr(warning, dimension) > getattr(critical, dimension):
            raise UsageError(f"warning {dimension} threshold is above the critical one")

    return ProbeConfig(device=opts.device, warning=warning, critical=critical, unit=opts.unit)


def stat_path(device: str) -> str:
    return f"/sys/block/{device}/stat"


def parse_stats(content: str, timestamp: int, source: str = "current") -> Sample:
    """
    Parse a block device stat record.

    Format (11 fields, newer kernels append discard and flush counters):
    1. read I/Os
    2. read merges
    3. read sectors
    4. read ticks
    5. write I/Os
    6. write merges
    7. write sectors
    8. write ticks
    9. in_flight
    10. io_ticks
    11. time_in_queue

    Args:
        content: Raw record text
        timestamp: Capture time of the record
        source: Which sample this is, used in error messages

    Raises:
        StatsParseError: If the record is short or a required field isn't numeric
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        raise StatsParseError(f"{source} block stats are empty")

    fields = lines[0].split()
    if len(fields) < STAT_FIELDS:
        raise StatsParseError(
            f"{source} block stats have {len(fields)} fields, expected {STAT_FIELDS}"
        )

    values = {}
    for name, index in (
        ("read_ops", STAT_READ_OPS),
        ("read_sectors", STAT_READ_SECTORS),
        ("write_ops", STAT_WRITE_OPS),
        ("write_sectors", STAT_WRITE_SECTORS),
    ):
        field = fields[index]
        if not (field.isascii() and field.isdigit()):
            raise StatsParseError(f"{source} block stats field {index + 1} is not numeric: '{field}'")
        values[name] = int(field)

    return Sample(timestamp=timestamp, **values)


def calculate_rates(previous: Sample, current: Sample, divisor: int) -> Rates:
    """
    Calculate per-second rates between two samples.

    Raises:
        RateError: If less than a second elapsed or any counter went backwards
    """
    elapsed = current.timestamp - previous.timestamp
    if elapsed < 1:
        raise RateError(f"invalid time delta ({elapsed}s since previous sample)")

    deltas = {
        "read_ops": current.read_ops - previous.read_ops,
        "write_ops": current.write_ops - previous.write_ops,
        "read_sectors": current.read_sectors - previous.read_sectors,
        "write_sectors": current.write_sectors - previous.write_sectors,
    }
    negative = [name for name, delta in deltas.items() if delta < 0]
    if negative:
        raise RateError(f"invalid block stats delta ({', '.join(negative)} went backwards)")

    return Rates(
        iops=(deltas["read_ops"] + deltas["write_ops"]) / elapsed,
        read_rate=deltas["read_sectors"] * SECTOR_SIZE / elapsed / divisor,
        write_rate=deltas["write_sectors"] * SECTOR_SIZE / elapsed / divisor,
        elapsed=elapsed,
    )


def exceeded(rates: Rates, limits: Thresholds) -> list[str]:
    """Dimensions whose rate is strictly above the limit."""
    return [d for d in DIMENSIONS if getattr(rates, d) > getattr(limits, d)]


def evaluate(rates: Rates, config: ProbeConfig) -> tuple[Severity, list[str]]:
    """Evaluate rates, critical first. Returns severity and offending dimensions."""
    over = exceeded(rates, config.critical)
    if over:
        return Severity.CRITICAL, over

    over = exceeded(rates, config.warning)
    if over:
        return Severity.WARNING, over

    return Severity.OK, []


def format_rates(rates: Rates, unit: Unit) -> str:
    return (
        f"iops={rates.iops:.2f} "
        f"read={rates.read_rate:.2f} {unit.name}/s "
        f"write={rates.write_rate:.2f} {unit.name}/s "
        f"interval={rates.elapsed}s"
    )


def format_result(config: ProbeConfig, rates: Rates, severity: Severity, over: list[str]) -> str:
    message = f"{config.device} {format_rates(rates, UNITS[config.unit])}"
    if over:
        limits = config.critical if severity is Severity.CRITICAL else config.warning
        detail = ", ".join(f"{d} > {getattr(limits, d):g}" for d in over)
        message += f" ({severity.name.lower()}: {detail})"
    return message


def check(config: ProbeConfig, context: Context, store: StateStore, output: Output) -> tuple[Severity, str]:
    """
    Run one measurement under the device's state lock.

    The current stats line is persisted whenever it parsed, before the
    previous sample is evaluated, so the next run always has a baseline.

    Returns:
        Severity and result message

    Raises:
        FileError, StatsParseError, StateError, RateError
    """
    with store.locked(config.device):
        now = context.now()
        raw = read_file(stat_path(config.device), context=context)
        current = parse_stats(raw, now)

        try:
            record = store.load(config.device)
        finally:
            store.save(config.device, raw.strip() + "\n", mtime=now)

    if record is None:
        return Severity.UNKNOWN, f"insufficient data: first run for {config.device}, baseline recorded"

    previous = parse_stats(record.content, record.mtime, source="previous")
    rates = calculate_rates(previous, current, UNITS[config.unit].divisor)
    severity, over = evaluate(rates, config)

    output.emit({
        "device": config.device,
        "unit": UNITS[config.unit].name,
        "iops": round(rates.iops, 4),
        "read_rate": round(rates.read_rate, 6),
        "write_rate": round(rates.write_rate, 6),
        "elapsed": rates.elapsed,
        "exceeded": over,
    })

    return severity, format_result(config, rates, severity, over)


def run(args: list[str], output: Output, context: Context) -> int:
    """
    Main entry point.

    Args:
        args: Command-line arguments
        output: Output helper
        context: Execution context

    Returns:
        0 = OK, 1 = WARNING, 2 = CRITICAL, 3 = UNKNOWN
    """
    if "-h" in args or "--help" in args:
        print(create_parser().format_help(), end="")
        return 0

    try:
        config = build_config(args)
    except UsageError as e:
        return output.result(LABEL, Severity.UNKNOWN, f"usage error: {e}")

    store = StateStore(get_state_dir(context), PROBE_NAME)

    with open_logger(PROBE_NAME, context) as logger:
        logger.debug("run started", device=config.device, unit=config.unit)
        try:
            severity, message = check(config, context, store, output)
        except (FileError, StatsParseError, StateError, RateError) as e:
            logger.error(str(e), device=config.device)
            return output.result(LABEL, Severity.UNKNOWN, str(e))

        logger.info(message, severity=severity.name, **output.data)

    return output.result(LABEL, severity, message)


def main(argv: list[str] | None = None) -> int:
    return run(sys.argv[1:] if argv is None else argv, Output(), Context())


if __name__ == "__main__":
    sys.exit(main())
