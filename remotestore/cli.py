"""
Command-line front-end: remotestore [--url URL] [--token TOKEN] get|set|delete|list ...
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Optional, Sequence

from .client import RemoteStoreClient
from .codec import is_json_key
from .connection import TOKEN_ENV, URL_ENV
from .errors import DecodeError, RemoteStoreError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="remotestore", description=__doc__)
    p.add_argument("--url", default=os.environ.get(URL_ENV), help=f"store base URL (env {URL_ENV})")
    p.add_argument("--token", default=os.environ.get(TOKEN_ENV), help=f"authorization token (env {TOKEN_ENV})")
    p.add_argument("--timeout", type=float, default=30.0)
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser("get", help="print the value stored under KEY")
    g.add_argument("key")
    g.add_argument("--raw", action="store_true", help="do not decode .json/.txt values")

    s = sub.add_parser("set", help="store VALUE under KEY (JSON for .json keys; '-' streams stdin)")
    s.add_argument("key")
    s.add_argument("value")

    d = sub.add_parser("delete", help="delete KEY")
    d.add_argument("key")

    ls = sub.add_parser("list", help="list entries under PREFIX")
    ls.add_argument("prefix", nargs="?", default="")
    return p


def _emit(value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bytes):
        sys.stdout.buffer.write(value)
        sys.stdout.buffer.flush()
    elif isinstance(value, str):
        print(value)
    else:
        print(json.dumps(value, indent=2))


def _parse_value(key: str, text: str) -> Any:
    """Command-line values for `.json` keys are JSON documents."""
    if not is_json_key(key):
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"value for {key!r} is not valid JSON: {e}") from e


async def _run(args: argparse.Namespace) -> Any:
    async with RemoteStoreClient(args.token, args.url, timeout=args.timeout) as store:
        if args.command == "get":
            value = await store.get(args.key, raw=args.raw)
            if value is None or (value == {} and is_json_key(args.key) and not args.raw):
                logger.warning("%s not found", args.key)
            return value
        if args.command == "set":
            data = sys.stdin.buffer if args.value == "-" else _parse_value(args.key, args.value)
            await store.set(args.key, data)
            return None
        if args.command == "delete":
            await store.delete(args.key)
            return None
        return await store.list(args.prefix)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        result = asyncio.run(_run(args))
    except RemoteStoreError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    _emit(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
