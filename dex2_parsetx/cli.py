"""Command-line interface for inspecting Dex2 transactions.

The CLI is a thin façade over the RPC client, the call-data decoder and the
operation-sequence decoder so operators can audit a transaction or a raw
payload without writing Python.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from typing import Sequence

from .config import ConfigurationError, load_node_config
from .dex2 import InputDecodeError, decode_input_data
from .rpc_client import (
    EthereumRPCClient,
    RPCError,
    RPCTransportError,
    TransactionNotFoundError,
    decode_transaction,
)
from .sequence import SequenceDecodeError, decode_sequence

logger = logging.getLogger(__name__)

_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _parse_word(raw: str) -> int:
    text = raw.strip().replace("_", "")
    try:
        value = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
    except ValueError as exc:
        raise CLIError(f"invalid uint256 word: {raw}") from exc
    if value < 0 or value >= 1 << 256:
        raise CLIError(f"word does not fit in uint256: {raw}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dex2-parsetx", description="Decode Dex2 contract calls and exeSequence payloads"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    tx_parser = subparsers.add_parser("tx", help="fetch a transaction by hash and decode its input")
    tx_parser.add_argument("tx_hash", help="Transaction hash (0x followed by 64 hex digits)")
    tx_parser.add_argument("--config", default=None, help="Path to a YAML config file")
    tx_parser.add_argument("--node-url", default=None, help="Ethereum JSON-RPC endpoint")
    tx_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (default: 8)",
    )

    input_parser = subparsers.add_parser("input", help="decode raw Dex2 call data")
    input_parser.add_argument("data", help="Call data as 0x-prefixed hex")

    sequence_parser = subparsers.add_parser(
        "sequence", help="decode an exeSequence header and body given as words"
    )
    sequence_parser.add_argument(
        "--header",
        default=None,
        help="Header word (decimal or 0x hex); omit to skip the header",
    )
    sequence_parser.add_argument(
        "words", nargs="*", help="Body words in order (decimal or 0x hex)"
    )
    return parser


def cmd_tx(args: argparse.Namespace) -> None:
    if not _TX_HASH_RE.match(args.tx_hash):
        raise CLIError(f"invalid transaction hash: {args.tx_hash}")
    overrides = {}
    if args.node_url is not None:
        overrides["url"] = args.node_url
    if args.timeout is not None:
        overrides["timeout_seconds"] = args.timeout
    config = load_node_config(config_path=args.config, overrides=overrides)
    client = EthereumRPCClient(config)
    print(decode_transaction(client, args.tx_hash))


def cmd_input(args: argparse.Namespace) -> None:
    print(decode_input_data(args.data))


def cmd_sequence(args: argparse.Namespace) -> None:
    header = _parse_word(args.header) if args.header is not None else None
    body = [_parse_word(word) for word in args.words]
    result = decode_sequence(header, body)
    result.raise_for_error()
    print(result.text, end="")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        if args.command == "tx":
            cmd_tx(args)
        elif args.command == "input":
            cmd_input(args)
        elif args.command == "sequence":
            cmd_sequence(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except SequenceDecodeError as exc:
        if exc.partial_trace:
            print(exc.partial_trace, end="")
        parser.exit(1, f"error: {exc}\n")
    except (
        CLIError,
        ConfigurationError,
        InputDecodeError,
        RPCError,
        RPCTransportError,
        TransactionNotFoundError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
