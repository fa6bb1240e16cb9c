# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""knox command line.

Subcommands:

* ``presign BUCKET KEY``: print a presigned GET URL
* ``ls [BUCKET]``: list buckets, or objects in a bucket
* ``put BUCKET SRC KEY``: upload a local file
* ``get BUCKET KEY``: download an object
* ``head BUCKET KEY``: show object headers
* ``rm BUCKET KEY``: delete an object

Credentials and endpoint come from ``~/.config/knox/knox.yaml`` (or
``--config``).

Exit codes: 0 on a 2xx response, 1 on configuration error, 2 on
transport error, 3 on any other HTTP status.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx

from knox.client import Client, Outcome
from knox.config import ClientConfig
from knox.context import BucketContext
from knox.errors import ConfigurationError
from knox.logging import configure_logging
from knox.request import RequestBuilder


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_TRANSPORT = 2
EXIT_STATUS = 3

#: Default lifetime of presigned URLs, in seconds.
DEFAULT_EXPIRES = 3600


def _report(outcome: Outcome, *, show_body: bool = False) -> int:
    """Print an outcome and map it to an exit code."""
    error, response = outcome
    if error is not None:
        print(f"Error: {error}", file=sys.stderr)
        return EXIT_TRANSPORT
    assert response is not None
    print(f"{response.status_code} {response.reason_phrase}", file=sys.stderr)
    if show_body and response.content:
        print(response.text)
    return EXIT_OK if response.is_success else EXIT_STATUS


def cmd_presign(config: ClientConfig, args: argparse.Namespace) -> int:
    """Handle presign command (no network access)."""
    context = BucketContext.under(config.context, args.bucket)
    expiration = time.time() + args.expires
    print(RequestBuilder(config).signed_url(context, args.key, expiration))
    return EXIT_OK


async def _ls(client: Client, args: argparse.Namespace) -> int:
    if args.bucket:
        outcome = await client.bucket(args.bucket).list(prefix=args.prefix)
    else:
        outcome = await client.bucket_list()
    return _report(outcome, show_body=True)


async def _put(client: Client, args: argparse.Namespace) -> int:
    bucket = client.bucket(args.bucket)
    return _report(await bucket.put_file(args.src, args.key))


async def _get(client: Client, args: argparse.Namespace) -> int:
    outcome = await client.bucket(args.bucket).get_file(args.key)
    code = _report(outcome)
    if code == EXIT_OK and outcome.response is not None:
        if args.output is None:
            sys.stdout.buffer.write(outcome.response.content)
        else:
            args.output.write_bytes(outcome.response.content)
    return code


async def _head(client: Client, args: argparse.Namespace) -> int:
    outcome = await client.bucket(args.bucket).head_file(args.key)
    if outcome.response is not None:
        for name, value in outcome.response.headers.items():
            print(f"{name}: {value}")
    return _report(outcome)


async def _rm(client: Client, args: argparse.Namespace) -> int:
    return _report(await client.bucket(args.bucket).delete_file(args.key))


_NETWORK_COMMANDS: dict[
    str, Callable[[Client, argparse.Namespace], Awaitable[int]]
] = {
    "ls": _ls,
    "put": _put,
    "get": _get,
    "head": _head,
    "rm": _rm,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="knox",
        description="Signed requests against S3-style object storage",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (shows strings-to-sign)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to knox.yaml (default: ~/.config/knox/knox.yaml)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    presign = sub.add_parser("presign", help="Print a presigned GET URL")
    presign.add_argument("bucket")
    presign.add_argument("key")
    presign.add_argument(
        "--expires",
        type=int,
        default=DEFAULT_EXPIRES,
        metavar="SECONDS",
        help=f"URL lifetime in seconds (default: {DEFAULT_EXPIRES})",
    )

    ls = sub.add_parser("ls", help="List buckets or bucket contents")
    ls.add_argument("bucket", nargs="?")
    ls.add_argument("--prefix", default=None)

    put = sub.add_parser("put", help="Upload a local file")
    put.add_argument("bucket")
    put.add_argument("src", type=Path)
    put.add_argument("key")

    get = sub.add_parser("get", help="Download an object")
    get.add_argument("bucket")
    get.add_argument("key")
    get.add_argument("-o", "--output", type=Path, default=None)

    for name, help_text in (
        ("head", "Show object headers"),
        ("rm", "Delete an object"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("bucket")
        cmd.add_argument("key")

    return parser


async def _run_network(
    config: ClientConfig,
    args: argparse.Namespace,
    transport: httpx.AsyncBaseTransport | None,
) -> int:
    async with Client(config, transport=transport) as client:
        return await _NETWORK_COMMANDS[args.command](client, args)


def main(
    argv: list[str] | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].
        transport: HTTP transport override (used by tests).

    Returns:
        Exit code.
    """
    args = _build_parser().parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.debug else logging.WARNING,
        add_secret_filter=True,
    )

    try:
        config = ClientConfig.from_yaml(config_path=args.config)
        if args.command == "presign":
            return cmd_presign(config, args)
        return asyncio.run(_run_network(config, args, transport))
    except ConfigurationError as e:
        logger.debug("Configuration error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG
