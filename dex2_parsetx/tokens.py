"""Token metadata for Dex2 token codes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from types import MappingProxyType
from typing import Mapping

logger = logging.getLogger(__name__)

AMOUNT_QUANTUM = Decimal("1e-8")


@dataclass(frozen=True)
class TokenInfo:
    """Display name plus the number of base units in one whole token."""

    name: str
    scale: int


def build_token_table(entries: Mapping[int, TokenInfo]) -> Mapping[int, TokenInfo]:
    """Return a read-only copy of *entries* keyed by token code."""

    table = {}
    for code, info in entries.items():
        if not 0 <= code <= 0xFFFF:
            raise ValueError(f"token code out of uint16 range: {code}")
        if info.scale <= 0:
            raise ValueError(f"token {info.name} has non-positive scale {info.scale}")
        table[code] = info
    return MappingProxyType(table)


DEFAULT_TOKENS: Mapping[int, TokenInfo] = build_token_table(
    {
        0: TokenInfo("ETH", 10**18),
        100: TokenInfo("LOOM", 10**18),
        101: TokenInfo("KNC", 10**18),
        102: TokenInfo("ZIL", 10**12),
        103: TokenInfo("CTXC", 10**18),
        104: TokenInfo("YEE", 10**18),
        105: TokenInfo("QKC", 10**18),
        106: TokenInfo("MEDX", 10**8),
        107: TokenInfo("PAL", 10**18),
        108: TokenInfo("HPB", 10**18),
        109: TokenInfo("XUC", 10**18),
        110: TokenInfo("BUT", 10**18),
        116: TokenInfo("TTC", 10**18),
        117: TokenInfo("AIT", 10**18),
        118: TokenInfo("HSC", 10**18),
        119: TokenInfo("SNTR", 10**4),
        120: TokenInfo("MTC", 10**18),
        121: TokenInfo("VITE", 10**18),
        122: TokenInfo("XYO", 10**18),
        123: TokenInfo("TAU", 10**18),
        124: TokenInfo("SNT", 10**18),
        125: TokenInfo("TFD", 10**18),
        126: TokenInfo("LND", 10**18),
        127: TokenInfo("MVC", 10**18),
        128: TokenInfo("TOMO", 10**18),
        129: TokenInfo("TRAC", 10**18),
        130: TokenInfo("PAI", 10**18),
        131: TokenInfo("EDR", 10**18),
        132: TokenInfo("MAN", 10**18),
        133: TokenInfo("HYDRO", 10**18),
        134: TokenInfo("DAG", 10**8),
    }
)


def normalize_amount(amount: int, scale: int) -> str:
    """Render ``amount / scale`` with exactly eight fractional digits."""

    # uint256 amounts need more than the default 28 significant digits.
    with localcontext() as ctx:
        ctx.prec = 100
        value = (Decimal(amount) / Decimal(scale)).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN)
    return f"{value:f}"


def token_name(code: int, tokens: Mapping[int, TokenInfo] = DEFAULT_TOKENS) -> str:
    info = tokens.get(code)
    if info is None:
        logger.warning("tokenCode %s does not exist", code)
        return f"#{code}"
    return info.name


def format_token(code: int, amount: int, tokens: Mapping[int, TokenInfo] = DEFAULT_TOKENS) -> str:
    """Return ``Token(<name>): <amount>`` for a raw on-chain amount.

    Unknown codes are rendered as ``Token(#<code>)`` with the raw amount.
    """

    info = tokens.get(code)
    if info is None:
        logger.warning("tokenCode %s does not exist", code)
        return f"Token(#{code}): {amount}"
    return f"Token({info.name}): {normalize_amount(amount, info.scale)}"
