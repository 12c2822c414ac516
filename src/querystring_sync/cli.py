"""Command line tool: encode a state to a query string and back.

Both commands run the same controller code a host application would, so
the output is exactly what ends up in (or comes out of) the address bar.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import load_config
from .config_schema import to_sync_options
from .errors import QueryStringSyncError
from .formats.json import to_jsonable
from .logger import setup_logging
from .sync import QueryStringSync

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DECODE_ERROR = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="querystring-sync",
        description="Encode application state into URL query strings and back",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Encode the difference between a state and its baseline
  querystring-sync encode '{"page": 2, "tags": ["a"]}' --baseline '{"page": 1, "tags": []}'

  # Decode a query string onto a baseline
  querystring-sync decode '?state=page:2' --baseline '{"page": 1}'

  # One parameter per field, plain format
  querystring-sync --mode standalone --format plain encode '{"user": {"name": "Ann"}}'
        """,
    )

    parser.add_argument(
        "--format",
        choices=["marked", "plain", "json"],
        help="Query string format (overrides QS_SYNC_FORMAT and config files)",
    )
    parser.add_argument(
        "--mode",
        choices=["namespaced", "standalone"],
        help="One parameter for the whole state, or one per top-level field",
    )
    parser.add_argument("--key", help="Parameter name in namespaced mode")
    parser.add_argument("--prefix", help="Parameter prefix in standalone mode")
    parser.add_argument(
        "--sync-null",
        action="store_true",
        default=None,
        help="Write null values that differ from the baseline",
    )
    parser.add_argument(
        "--sync-undefined",
        action="store_true",
        default=None,
        help="Write undefined values that differ from the baseline",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"querystring-sync version {__version__}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    encode = commands.add_parser(
        "encode", help="Print the query string for a JSON state"
    )
    encode.add_argument("state", help="Current state as a JSON object")

    decode = commands.add_parser(
        "decode", help="Print the state restored from a query string"
    )
    decode.add_argument("query", help="Query string, with or without '?'")

    for command in (encode, decode):
        command.add_argument(
            "--baseline",
            default="{}",
            help="Initial state as a JSON object (default: {})",
        )
        command.add_argument(
            "--pathname",
            default="/",
            help="Route passed to the selection (default: /)",
        )

    return parser


def _load_object(text: str, name: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name} is not valid JSON: {e.msg}") from e
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a JSON object")
    return value


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()

    overrides = {
        "format": args.format,
        "mode": args.mode,
        "key": args.key,
        "prefix": args.prefix,
        "sync_null": args.sync_null,
        "sync_undefined": args.sync_undefined,
    }

    try:
        config = load_config(cli_overrides=overrides)
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file or config.logging.file,
        debug_format=config.logging.format,
        level=config.logging.level,
    )

    try:
        sync = QueryStringSync(to_sync_options(config))
        baseline = _load_object(args.baseline, "--baseline")
        state = _load_object(args.state, "state") if args.command == "encode" else None
    except (ValidationError, ValueError, QueryStringSyncError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    if state is not None:
        update = sync.compute(state, baseline, args.pathname)
        query = sync.apply("", update, baseline)
        print(f"?{query}" if query else "")
        return EXIT_OK

    result = sync.load(args.query, baseline, args.pathname)
    print(json.dumps(to_jsonable(result.state), indent=2, ensure_ascii=False))
    if result.clean:
        print(f"Error: could not decode query: {result.error}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    return EXIT_OK


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
