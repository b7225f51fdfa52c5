"""Monitoring probes. Each module exposes run(args, output, context)."""
