"""boltview command line: browse a bucket store and print JSON."""

import argparse
import dataclasses
import json
import logging
import sys
from typing import Any, Sequence

from .config import Config, parse_log_level, setup_logging
from .errors import BoltviewError, NotFound
from .inspector import Inspector
from .search import MAX_RESULTS
from .store import open_store

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boltview", description="Read-only browser for bucket stores"
    )
    parser.add_argument("--db", help="Override BOLTVIEW_DB for this command")
    parser.add_argument(
        "--storage", choices=("bolt", "disk"), help="Override BOLTVIEW_STORAGE"
    )
    parser.add_argument("--log-level", help="Override BOLTVIEW_LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("buckets", help="Tree of all buckets")

    bucket = commands.add_parser("bucket", help="One bucket with its keys")
    bucket.add_argument("path")

    key = commands.add_parser("key", help="One classified value")
    key.add_argument("path")
    key.add_argument("key")
    key.add_argument("--full", action="store_true", help="Do not bound the hex preview")

    search = commands.add_parser("search", help="Find keys by name")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=MAX_RESULTS)

    for name, help_text in (
        ("decode-time", "Decode a marshaled timestamp value"),
        ("decode-envelope", "Decode a typed-payload envelope value"),
    ):
        decoder = commands.add_parser(name, help=help_text)
        decoder.add_argument("path")
        decoder.add_argument("key")

    commands.add_parser("stats", help="Database facts")
    return parser


def to_jsonable(result: Any) -> Any:
    """Convert inspector results into JSON-serializable structures."""
    if isinstance(result, list):
        return [to_jsonable(item) for item in result]
    if isinstance(result, bytes):
        return result.decode("utf-8", "replace")
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        data = {f.name: to_jsonable(getattr(result, f.name)) for f in dataclasses.fields(result)}
        for prop in ("is_json", "payload_size"):
            if hasattr(result, prop):
                data[prop] = getattr(result, prop)
        return data
    return result


def run(inspector: Inspector, args: argparse.Namespace) -> Any:
    if args.command == "buckets":
        return inspector.buckets()
    if args.command == "bucket":
        return inspector.bucket(args.path)
    if args.command == "key":
        return inspector.key(args.path, args.key, full=args.full)
    if args.command == "search":
        return inspector.search(args.query, args.limit)
    if args.command == "decode-time":
        return inspector.decode_time(args.path, args.key)
    if args.command == "decode-envelope":
        return inspector.decode_envelope(args.path, args.key)
    if args.command == "stats":
        return inspector.stats()
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = Config.from_env()
        level = parse_log_level(args.log_level) if args.log_level else config.log_level
        setup_logging(level)
        backend = open_store(args.storage or config.storage, path=args.db or config.db_path)
        result = run(Inspector(backend), args)
    except NotFound as e:
        logger.warning("%s", e)
        print(f"error: {e}", file=sys.stderr)
        if e.available:
            print(f"available buckets: {', '.join(e.available)}", file=sys.stderr)
        return 1
    except (BoltviewError, ValueError) as e:
        logger.warning("%s failed: %s", args.command, e)
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(to_jsonable(result), indent=2))
    return 0
