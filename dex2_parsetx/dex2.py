"""Decoding of Dex2 contract call data into readable summaries.

Only the methods that matter for auditing balances are known here. The
``exeSequence`` payload is handed to :mod:`dex2_parsetx.sequence`; the
deposit and withdraw helpers are rendered in a single line each.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Sequence, Tuple, Union

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, keccak, to_checksum_address

from .sequence import decode_sequence
from .tokens import DEFAULT_TOKENS, TokenInfo, format_token, token_name

logger = logging.getLogger(__name__)

SELECTOR_SIZE = 4

Renderer = Callable[[Tuple[Any, ...], Mapping[int, TokenInfo]], str]


class InputDecodeError(ValueError):
    """Raised when call data cannot be matched to a Dex2 method."""


@dataclass(frozen=True)
class Dex2Method:
    name: str
    arg_types: Tuple[str, ...]
    render: Renderer

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.arg_types)})"

    @property
    def selector(self) -> bytes:
        return keccak(text=self.signature)[:SELECTOR_SIZE]


def _render_deposit_eth(args: Tuple[Any, ...], tokens: Mapping[int, TokenInfo]) -> str:
    (trader,) = args
    return f"Deposit ETH by {to_checksum_address(trader)}"


def _render_deposit_token(args: Tuple[Any, ...], tokens: Mapping[int, TokenInfo]) -> str:
    trader, token_code, original_amount = args
    return f"Deposit {format_token(token_code, original_amount, tokens)} by {to_checksum_address(trader)}"


def _render_withdraw_eth(args: Tuple[Any, ...], tokens: Mapping[int, TokenInfo]) -> str:
    (trader,) = args
    return f"Withdraw ETH for {to_checksum_address(trader)}"


def _render_withdraw_token(args: Tuple[Any, ...], tokens: Mapping[int, TokenInfo]) -> str:
    trader, token_code = args
    return f"Withdraw Token ({token_name(token_code, tokens)}) for {to_checksum_address(trader)}"


def _render_exe_sequence(args: Tuple[Any, ...], tokens: Mapping[int, TokenInfo]) -> str:
    header, body = args
    result = decode_sequence(header, list(body))
    result.raise_for_error()
    return result.text


def build_method_table(methods: Sequence[Dex2Method]) -> Mapping[bytes, Dex2Method]:
    """Return a read-only selector -> method mapping."""

    table = {}
    for method in methods:
        if method.selector in table:
            raise ValueError(f"selector clash between {table[method.selector].name} and {method.name}")
        table[method.selector] = method
    return MappingProxyType(table)


DEX2_METHODS: Mapping[bytes, Dex2Method] = build_method_table(
    [
        Dex2Method("depositEth", ("address",), _render_deposit_eth),
        Dex2Method("depositToken", ("address", "uint16", "uint256"), _render_deposit_token),
        Dex2Method("withdrawEth", ("address",), _render_withdraw_eth),
        Dex2Method("withdrawToken", ("address", "uint16"), _render_withdraw_token),
        Dex2Method("exeSequence", ("uint256", "uint256[]"), _render_exe_sequence),
    ]
)


def _as_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    try:
        return decode_hex(data.strip())
    except ValueError as exc:
        raise InputDecodeError(f"invalid hex input data: {exc}") from exc


def decode_input_data(
    data: Union[bytes, str],
    tokens: Mapping[int, TokenInfo] = DEFAULT_TOKENS,
    methods: Mapping[bytes, Dex2Method] = DEX2_METHODS,
) -> str:
    """Describe a Dex2 call given its raw input data.

    Raises :class:`InputDecodeError` for unknown or malformed calls and
    :class:`~dex2_parsetx.sequence.SequenceDecodeError` (with
    ``partial_trace`` populated) when an ``exeSequence`` payload is invalid.
    """

    raw = _as_bytes(data)
    if len(raw) < SELECTOR_SIZE:
        raise InputDecodeError("invalid data length")

    selector, payload = raw[:SELECTOR_SIZE], raw[SELECTOR_SIZE:]
    method = methods.get(selector)
    if method is None:
        raise InputDecodeError(f"no Dex2 method with selector 0x{selector.hex()}")
    logger.debug("Decoding %s call", method.name)

    try:
        args = abi_decode(list(method.arg_types), payload)
    except (DecodingError, ValueError) as exc:
        raise InputDecodeError(f"cannot decode {method.signature} arguments: {exc}") from exc
    return method.render(tuple(args), tokens)
