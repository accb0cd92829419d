"""Domain models for decoded Dex2 operation sequences.

Each operation packed into an ``exeSequence`` body is represented by one of
the frozen dataclasses below. They carry the raw integer fields exactly as
they were unpacked; rendering them for humans is the job of
:mod:`dex2_parsetx.sequence`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

OPCODE_MAGIC = 0xDE

OP_CONFIRM_DEPOSIT = 0xDE01
OP_INITIATE_WITHDRAW = 0xDE02
OP_MATCH_ORDERS = 0xDE03
OP_HARD_CANCEL_ORDER = 0xDE04
OP_SET_FEE_RATES = 0xDE05
OP_SET_FEE_REBATE_PERCENT = 0xDE06

# Signature "v" values accepted for a new order; 0 marks an existing order.
EXISTING_ORDER_MARKER = 0
SIGNATURE_V_VALUES = frozenset({27, 28})


@dataclass(frozen=True)
class SequenceHeader:
    begin_index: int
    new_logic_time_sec: int


@dataclass(frozen=True)
class ExistingOrderRef:
    """Reference to an order the exchange already knows by its order key."""

    trader: int
    nonce: int


@dataclass(frozen=True)
class NewOrder:
    """A signed order submitted inline with the match."""

    trader: int
    nonce: int
    pair_id: int
    action: int
    ioc: int
    price_e8: int
    amount_e8: int
    expire_time_sec: int
    r: int
    s: int
    t: int


OrderOperand = Union[ExistingOrderRef, NewOrder]


@dataclass(frozen=True)
class ConfirmDeposit:
    deposit_index: int


@dataclass(frozen=True)
class InitiateWithdraw:
    trader_addr: int
    token_code: int
    amount_e8: int

    def pack(self) -> int:
        """Return the 240-bit payload that follows the opcode.

        Fields sit low bits first in decode order: traderAddr, tokenCode,
        amountE8.
        """

        return self.trader_addr | (self.token_code << 160) | (self.amount_e8 << 176)


@dataclass(frozen=True)
class MatchOrders:
    maker: OrderOperand
    taker: OrderOperand


@dataclass(frozen=True)
class HardCancelOrder:
    pass


@dataclass(frozen=True)
class SetFeeRates:
    pass


@dataclass(frozen=True)
class SetFeeRebatePercent:
    pass


Operation = Union[
    ConfirmDeposit,
    InitiateWithdraw,
    MatchOrders,
    HardCancelOrder,
    SetFeeRates,
    SetFeeRebatePercent,
]
