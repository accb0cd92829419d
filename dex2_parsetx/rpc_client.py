"""Typed JSON-RPC client for Ethereum nodes.

Only the read path needed to inspect a Dex2 transaction is implemented. The
client forwards well-typed requests and surfaces errors clearly; it never
interprets the call data itself (see :mod:`dex2_parsetx.dex2`).
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests
from eth_utils import decode_hex
from requests import RequestException, Response

from .config import NodeConfig, load_node_config
from .dex2 import decode_input_data
from .tokens import DEFAULT_TOKENS, TokenInfo

logger = logging.getLogger(__name__)


class RPCError(RuntimeError):
    """Raised when the node responds with a JSON-RPC error."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransactionNotFoundError(RuntimeError):
    """Raised when the node does not know the requested transaction."""


@dataclass(frozen=True)
class Transaction:
    """Subset of ``eth_getTransactionByHash`` used for decoding."""

    hash: str
    nonce: int
    block_hash: Optional[str]
    block_number: Optional[int]
    input: bytes

    @property
    def is_pending(self) -> bool:
        return self.block_hash is None

    @classmethod
    def from_rpc(cls, payload: Mapping[str, Any]) -> "Transaction":
        try:
            block_hash = payload.get("blockHash")
            if block_hash is not None and int(block_hash, 16) == 0:
                block_hash = None
            raw_number = payload.get("blockNumber")
            block_number = int(raw_number, 16) if raw_number is not None else None
            tx = cls(
                hash=payload["hash"],
                nonce=int(payload["nonce"], 16),
                block_hash=block_hash,
                block_number=block_number,
                input=decode_hex(payload.get("input") or "0x"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RPCTransportError(f"Malformed transaction payload: {exc}") from exc
        if (tx.block_hash is None) != (tx.block_number is None):
            raise RPCTransportError(
                f"blockHash and blockNumber should be both or none null: {dict(payload)}"
            )
        return tx


class EthereumRPCClient:
    """Thin JSON-RPC client for Ethereum compatible nodes.

    The node URL and per-request timeout come from :class:`NodeConfig`, which
    can be overridden with ``DEX2_NODE_URL`` and ``DEX2_NODE_TIMEOUT`` or the
    ``node`` section of ``~/.dex2-parsetx.yaml``.
    """

    def __init__(self, config: NodeConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self._session = session or requests.Session()

    @classmethod
    def from_env(cls) -> "EthereumRPCClient":
        """Instantiate a client using environment variables or config file."""

        return cls(load_node_config())

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self.config.url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                timeout=self.config.timeout_seconds,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                "RPC connection failed. Ensure the Ethereum node is reachable and DEX2_NODE_URL "
                "(or ~/.dex2-parsetx.yaml) points to the right endpoint."
            ) from exc
        self._raise_for_status(response)
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise RPCTransportError("RPC server returned a non-object response")
        if result.get("error"):
            error = result["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        try:
            err_body = response.json()
        except ValueError:
            err_body = response.text
        logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
        logger.error("RPC error body: %s", err_body)
        raise RPCTransportError(
            f"RPC server returned HTTP {response.status_code}; check the node URL and credentials.",
            status_code=response.status_code,
        )

    def get_transaction_by_hash(self, tx_hash: str) -> Transaction:
        """Fetch a transaction; unconfirmed ones have no block hash or number."""

        result = self.call("eth_getTransactionByHash", [tx_hash])
        if result is None:
            raise TransactionNotFoundError(f"transaction {tx_hash} not found")
        return Transaction.from_rpc(result)


def decode_transaction(
    client: EthereumRPCClient,
    tx_hash: str,
    tokens: Mapping[int, TokenInfo] = DEFAULT_TOKENS,
) -> str:
    """Fetch *tx_hash* and describe its Dex2 call."""

    transaction = client.get_transaction_by_hash(tx_hash)
    if transaction.is_pending:
        logger.info("Transaction %s is not confirmed yet", tx_hash)
    return decode_input_data(transaction.input, tokens)
