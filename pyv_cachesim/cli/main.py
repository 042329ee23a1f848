from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from ..config import SimConfig
from ..errors import CacheSimError
from ..isa.trace import read_trace
from ..runtime.simulator import run as run_sim
from ..utils.logging import get_logger
from ..utils.reporting import generate_report, generate_report_json, format_report, format_sets


def _configure_logging(args):
    get_logger("pyv-cachesim", logging.DEBUG if getattr(args, "verbose", False) else logging.INFO)


def cmd_run(args):
    """Handles the 'run' command."""
    config = SimConfig.from_args(args)

    # 1. Run the trace through the hierarchy
    if args.trace and args.trace != "-":
        with open(args.trace, "r") as f:
            result = run_sim(read_trace(f), config)
    else:
        result = run_sim(read_trace(sys.stdin), config)
    resolved = result.config

    # 2. Generate reports
    if args.no_files:
        print(format_report(generate_report_json(result, resolved)))
    else:
        generate_report(result, resolved)

    if args.dump_sets:
        for level in result.hierarchy.levels:
            print(format_sets(level))

    if args.json:
        Path(args.json).parent.mkdir(parents=True, exist_ok=True)
        with open(args.json, "w") as f:
            json.dump(generate_report_json(result, resolved), f, indent=4)
    return 0


def cmd_config(args):
    """Handles the 'config' command."""
    config = SimConfig.from_args(args)
    resolved = config.resolve()
    if config.config_files:
        print(f"# merged from: {', '.join(config.config_files)}")
    print(resolved.to_yaml(), end="")
    return 0


def build_parser():
    p = argparse.ArgumentParser(
        prog="pyv-cachesim",
        description="Two-level cache hierarchy simulator (split L1, shared L2, main memory)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Log every cache access step")
    sub = p.add_subparsers(dest="cmd", required=True)

    # --- Run Command ---
    pr = sub.add_parser("run", help="Simulate a trace and report statistics",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    pr.add_argument("trace", nargs='?', default=None,
                    help="Path to trace file ('-' or omitted reads stdin)")
    pr.add_argument("-c", "--config", action="append", default=None,
                    help="YAML config file; may be repeated, later files override earlier ones")
    pr.add_argument("--report", type=str, default=None,
                    help="Directory to save simulation reports")
    pr.add_argument("--json", type=str, default=None,
                    help="Additional path to write the JSON report to")
    pr.add_argument("--no-files", action="store_true", dest="no_files",
                    help="Print the text report only, without writing report files")
    pr.add_argument("--dump-sets", action="store_true", dest="dump_sets",
                    help="Print the contents of every cache set after the run")
    pr.set_defaults(func=cmd_run)

    # --- Config Command ---
    pc = sub.add_parser("config", help="Print the resolved configuration",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    pc.add_argument("-c", "--config", action="append", default=None,
                    help="YAML config file; may be repeated, later files override earlier ones")
    pc.set_defaults(func=cmd_config)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    try:
        return args.func(args)
    except (CacheSimError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
