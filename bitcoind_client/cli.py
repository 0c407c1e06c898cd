"""Command line entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional, Sequence

from requests import RequestException

from .client import Client
from .config import ClientConfig, load_config
from .errors import BitcoindClientError, RpcError

LOGGER = logging.getLogger(__name__)


def _resolve_log_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


def _parse_parameter(raw: str) -> Any:
    """Decode ``raw`` as JSON, falling back to the literal string like bitcoin-cli."""

    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _format_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    if isinstance(result, bytes):
        return result.hex()
    return json.dumps(result, indent=2, default=str)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bitcoin Core RPC client")
    parser.add_argument("--host", help="RPC host (default: localhost)")
    parser.add_argument("--port", type=int, help="RPC port (default depends on --network)")
    parser.add_argument("--network", help="mainnet, testnet or regtest")
    parser.add_argument("--username", help="RPC username")
    parser.add_argument("--password", help="RPC password")
    parser.add_argument("--datadir", help="Data directory used to find the auth cookie")
    parser.add_argument("--daemon-version", dest="version", help="Daemon version used to gate methods")
    parser.add_argument("--wallet", help="Wallet name for multi-wallet routing")
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")
    parser.add_argument("--list-methods", action="store_true", help="List known RPC methods and exit")
    parser.add_argument("method", nargs="?", help="RPC method to call")
    parser.add_argument("params", nargs="*", help="Method parameters, JSON-decoded when possible")
    return parser


def _build_config(args: argparse.Namespace) -> ClientConfig:
    overrides = {
        key: value
        for key, value in (
            ("host", args.host),
            ("port", args.port),
            ("network", args.network),
            ("username", args.username),
            ("password", args.password),
            ("datadir", args.datadir),
            ("version", args.version),
            ("wallet", args.wallet),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    return load_config(**overrides)


def _list_methods(client: Client) -> List[str]:
    lines = []
    for descriptor in sorted(client.registry, key=lambda item: (item.category or "", item.key)):
        marker = "" if client.capabilities.is_supported(descriptor.key) else " (unsupported)"
        lines.append(f"{descriptor.category or '-'}\t{descriptor.key}{marker}")
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = _build_config(args)
        log_level = _resolve_log_level(config.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        client = Client(config)
    except BitcoindClientError as exc:
        parser.error(str(exc))

    with client:
        if args.list_methods:
            print("\n".join(_list_methods(client)))
            return 0

        if not args.method:
            parser.error("a method is required unless --list-methods is given")

        params = [_parse_parameter(raw) for raw in args.params]
        try:
            result = client.command(args.method, *params)
        except RpcError as exc:
            print(f"error code: {exc.code}\nerror message:\n{exc.message}", file=sys.stderr)
            return 1
        except (BitcoindClientError, RequestException) as exc:
            LOGGER.error("Call to %s failed: %s", args.method, exc)
            return 1

    if result is not None:
        print(_format_result(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
