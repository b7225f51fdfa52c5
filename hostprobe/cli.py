"""Command-line interface for hostprobe."""

import argparse
import importlib
import json
import sys

from hostprobe import __version__
from hostprobe.core import Context, Output, Severity, discover_probes, find_probe


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="hostprobe",
        description="Monitoring probes for block I/O rates and kernel versions",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"hostprobe {__version__}",
    )
    parser.add_argument(
        "--format",
        choices=["plain", "json"],
        default="plain",
        help="Output format for list and show (default: plain)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("list", help="List available probes")

    show_parser = subparsers.add_parser("show", help="Show probe details")
    show_parser.add_argument("probe", help="Probe name")

    run_parser = subparsers.add_parser("run", help="Run a probe")
    run_parser.add_argument("probe", help="Probe name")
    run_parser.add_argument(
        "args",
        nargs="*",
        help="Arguments passed to the probe (put them after --)",
    )

    return parser


def cmd_list(args: argparse.Namespace) -> int:
    """List available probes."""
    probes = discover_probes()

    if not probes:
        print("No probes found.")
        return 0

    for probe in probes:
        if args.format == "json":
            print(json.dumps({
                "name": probe.name,
                "category": probe.category,
                "tags": probe.tags,
                "brief": probe.brief,
            }))
        else:
            print(f"{probe.name:20} {probe.brief}")

    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show probe details."""
    probe = find_probe(args.probe, discover_probes())

    if probe is None:
        print(f"Probe not found: {args.probe}", file=sys.stderr)
        return int(Severity.UNKNOWN)

    if args.format == "json":
        print(json.dumps({
            "name": probe.name,
            "module": probe.module,
            "path": str(probe.path),
            "category": probe.category,
            "tags": probe.tags,
            "brief": probe.brief,
            "label": probe.label,
            "privilege": probe.privilege,
            "related": probe.related,
        }, indent=2))
    else:
        print(f"Name:     {probe.name}")
        print(f"Module:   {probe.module}")
        print(f"Category: {probe.category}")
        print(f"Tags:     {', '.join(probe.tags)}")
        print(f"Brief:    {probe.brief}")
        print(f"Label:    {probe.label}")
        if probe.privilege:
            print(f"Privilege: {probe.privilege}")
        if probe.related:
            print(f"Related:  {', '.join(probe.related)}")

    return 0


def cmd_run(args: argparse.Namespace, context: Context | None = None) -> int:
    """Run a probe in-process and return its exit code."""
    probe = find_probe(args.probe, discover_probes())

    if probe is None:
        print(f"Probe not found: {args.probe}", file=sys.stderr)
        return int(Severity.UNKNOWN)

    module = importlib.import_module(probe.module)
    return module.run(list(args.args), Output(), context or Context())


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "list": cmd_list,
        "show": cmd_show,
        "run": cmd_run,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
