#!/usr/bin/env python3
"""
Mystic Alert CLI Entry Point

Run with: python -m mystic_alert [-v] [--json-logs] <command> [args]

Every command except ``run`` prints one JSON object. Commands that fail
print ``{"error": ..., "message": ...}`` and exit with status 1.
"""

import argparse
import json
import logging
import sys

from .core import get_utc_timestamp
from .core.logging import configure_logging


def output_json(data: dict) -> None:
    print(json.dumps(data, indent=2))


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="mystic-alert",
        description="Pit Panda mystic feed alerts for Discord",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level (overrides MYSTIC_LOG_LEVEL)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Write logs to stderr as JSON lines",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    from .commands import mystics

    mystics.register_parsers(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the command and map its result to an exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(
        level=logging.DEBUG if args.verbose else None,
        json_output=args.json_logs,
    )

    try:
        result = args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        output_json(
            {
                "error": "command_error",
                "command": args.command,
                "message": str(e),
                "query_timestamp": get_utc_timestamp(),
            }
        )
        return 1

    if result:
        output_json(result)
    return 1 if "error" in (result or {}) else 0


if __name__ == "__main__":
    sys.exit(main())
