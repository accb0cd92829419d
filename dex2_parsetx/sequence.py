"""Decoder for the bit-packed operation sequence of ``exeSequence`` calls.

An ``exeSequence(header, body)`` call carries an optional header word and a
body of 256-bit words. Every operation starts with a 16-bit opcode in the low
bits of a body word; most operations fit in that one word, while
``MatchOrders`` may pull up to seven more words for inline signed orders.

The decoder is pure: it reads integers and produces a text trace. When a word
is malformed, decoding stops and the trace rendered so far is returned along
with a :class:`SequenceDecodeError`, so the caller can see exactly how far the
payload made sense.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .bitfield import BitFieldReader, check_word
from .operations import (
    EXISTING_ORDER_MARKER,
    OP_CONFIRM_DEPOSIT,
    OP_HARD_CANCEL_ORDER,
    OP_INITIATE_WITHDRAW,
    OP_MATCH_ORDERS,
    OP_SET_FEE_RATES,
    OP_SET_FEE_REBATE_PERCENT,
    OPCODE_MAGIC,
    SIGNATURE_V_VALUES,
    ConfirmDeposit,
    ExistingOrderRef,
    HardCancelOrder,
    InitiateWithdraw,
    MatchOrders,
    NewOrder,
    Operation,
    OrderOperand,
    SequenceHeader,
    SetFeeRates,
    SetFeeRebatePercent,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_LINE = "  <to be implemented>"


class ErrorKind(Enum):
    EMPTY_BODY = "EmptyBody"
    INVALID_HEADER = "InvalidHeader"
    WRONG_MAGIC_NUMBER = "WrongMagicNumber"
    INVALID_OPCODE = "InvalidOpcode"
    INSUFFICIENT_INPUTS = "InsufficientInputs"
    INVALID_DISCRIMINATOR = "InvalidDiscriminator"
    EXTRA_BITS_IN_FIELD = "ExtraBitsInField"
    ZERO_SIGNATURE_COMPONENT = "ZeroSignatureComponent"


class SequenceDecodeError(ValueError):
    """Raised when an operation sequence is structurally invalid.

    ``partial_trace`` holds the text rendered before the failure, including
    the lines of the operation that failed.
    """

    def __init__(self, kind: ErrorKind, message: str, partial_trace: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.partial_trace = partial_trace


class TraceRenderer:
    """Accumulates newline-terminated trace lines."""

    def __init__(self) -> None:
        self._lines: List[str] = []

    def line(self, text: str) -> None:
        self._lines.append(text)

    def blank(self) -> None:
        self._lines.append("")

    def text(self) -> str:
        return "".join(f"{line}\n" for line in self._lines)


@dataclass(frozen=True)
class DecodedOperation:
    """An operation together with the body words it was read from."""

    start: int
    word_count: int
    operation: Operation


@dataclass(frozen=True)
class SequenceTrace:
    text: str
    header: Optional[SequenceHeader]
    operations: Tuple[DecodedOperation, ...]
    error: Optional[SequenceDecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class _SequenceDecoder:
    def __init__(self, header: Optional[int], body: Tuple[int, ...]) -> None:
        self.header_word = header
        self.body = body
        self.out = TraceRenderer()
        self.header: Optional[SequenceHeader] = None
        self.operations: List[DecodedOperation] = []
        self._handlers: Dict[int, Callable[[BitFieldReader, int], Tuple[int, Operation]]] = {
            OP_CONFIRM_DEPOSIT: self._confirm_deposit,
            OP_INITIATE_WITHDRAW: self._initiate_withdraw,
            OP_MATCH_ORDERS: self._match_orders,
            OP_HARD_CANCEL_ORDER: self._hard_cancel_order,
            OP_SET_FEE_RATES: self._set_fee_rates,
            OP_SET_FEE_REBATE_PERCENT: self._set_fee_rebate_percent,
        }

    def run(self) -> None:
        if not self.body:
            raise SequenceDecodeError(ErrorKind.EMPTY_BODY, "empty body")
        if self.header_word is not None:
            self._decode_header(self.header_word)
        self.out.line(f"len(body): {len(self.body)}")

        index = 0
        while index < len(self.body):
            reader = BitFieldReader(self.body[index])
            opcode = reader.pop_uint16()
            if opcode >> 8 != OPCODE_MAGIC:
                raise SequenceDecodeError(
                    ErrorKind.WRONG_MAGIC_NUMBER,
                    f"wrong magic number in opcode {opcode:#06x} at body[{index}]",
                )
            handler = self._handlers.get(opcode)
            if handler is None:
                raise SequenceDecodeError(ErrorKind.INVALID_OPCODE, f"invalid opcode {opcode:#x}")
            consumed, operation = handler(reader, index)
            self.operations.append(DecodedOperation(index, consumed, operation))
            index += consumed
            if index < len(self.body):
                self.out.blank()

    def _decode_header(self, word: int) -> None:
        # <newLogicTimeSec>(64) <beginIndex>(64)
        reader = BitFieldReader(word)
        begin_index = reader.pop_uint64()
        new_logic_time_sec = reader.pop_uint64()
        if not reader.remainder_is_zero():
            raise SequenceDecodeError(
                ErrorKind.INVALID_HEADER, f"invalid header: extra bits {reader.remainder():#x}"
            )
        self.out.line(f"newLogicTimeSec: {new_logic_time_sec}")
        self.out.line(f"beginIndex: {begin_index}")
        self.header = SequenceHeader(begin_index=begin_index, new_logic_time_sec=new_logic_time_sec)

    def _confirm_deposit(self, reader: BitFieldReader, index: int) -> Tuple[int, Operation]:
        self.out.line("operation ConfirmDeposit:")
        deposit_index = reader.remainder()
        self.out.line(f"  depositIndex:  {deposit_index}")
        return 1, ConfirmDeposit(deposit_index=deposit_index)

    def _initiate_withdraw(self, reader: BitFieldReader, index: int) -> Tuple[int, Operation]:
        # <amountE8>(64) <tokenCode>(16) <traderAddr>(160) <opcode>(16)
        self.out.line("operation InitiateWithdraw:")
        trader_addr = reader.pop_uint160()
        self.out.line(f"  traderAddr: {trader_addr:#x}")
        token_code = reader.pop_uint16()
        self.out.line(f"  tokenCode: {token_code}")
        amount_e8 = reader.pop_uint64()
        self.out.line(f"  amountE8: {amount_e8}")
        return 1, InitiateWithdraw(trader_addr=trader_addr, token_code=token_code, amount_e8=amount_e8)

    def _match_orders(self, reader: BitFieldReader, index: int) -> Tuple[int, Operation]:
        self.out.line("operation MatchOrders:")
        # The maker must leave room for the taker word before any field is read.
        maker, maker_extra = self._order_operand("maker", 1, reader, index, words_after=1)

        taker_index = index + 1 + maker_extra
        taker_reader = BitFieldReader(self.body[taker_index])
        taker, taker_extra = self._order_operand("taker", 2, taker_reader, taker_index, words_after=0)

        consumed = 1 + maker_extra + 1 + taker_extra
        return consumed, MatchOrders(maker=maker, taker=taker)

    def _require_words(self, index: int, extra: int, words_after: int, side: str) -> None:
        if index + extra + words_after >= len(self.body):
            raise SequenceDecodeError(
                ErrorKind.INSUFFICIENT_INPUTS,
                f"not enough inputs for matching order: {side} order at body[{index}] "
                f"needs {extra + words_after} more words",
            )

    def _order_operand(
        self, side: str, ordinal: int, reader: BitFieldReader, index: int, words_after: int
    ) -> Tuple[OrderOperand, int]:
        """Decode one side of a match starting at ``body[index]``.

        ``words_after`` counts the words that must still follow this operand.
        Returns the operand and how many words past ``body[index]`` it used.
        """

        v = reader.pop_uint8()
        if v == EXISTING_ORDER_MARKER:
            self.out.line(f"  {side}Order (existing):")
            self._require_words(index, 0, words_after, side)
            trader, nonce = self._order_key(reader)
            return ExistingOrderRef(trader=trader, nonce=nonce), 0

        self.out.line(f"  {side}Order (new, v{ordinal}={v}):")
        if v not in SIGNATURE_V_VALUES:
            raise SequenceDecodeError(ErrorKind.INVALID_DISCRIMINATOR, f"invalid v{ordinal}: {v}")
        self._require_words(index, 3, words_after, side)
        trader, nonce = self._order_key(reader)

        # <expireTimeSec>(64) <amountE8>(64) <priceE8>(64) <ioc>(8) <action>(8) <pairId>(32)
        details = BitFieldReader(self.body[index + 1])
        pair_id = details.pop_uint32()
        self.out.line(f"    pairId  : {pair_id}")
        action = details.pop_uint8()
        self.out.line(f"    action  : {action}")
        ioc = details.pop_uint8()
        self.out.line(f"    ioc     : {ioc}")
        price_e8 = details.pop_uint64()
        self.out.line(f"    priceE8 : {price_e8}")
        amount_e8 = details.pop_uint64()
        self.out.line(f"    amountE8: {amount_e8}")
        expire_time_sec = details.pop_uint64()
        self.out.line(f"    expire  : {expire_time_sec}")
        if not details.remainder_is_zero():
            raise SequenceDecodeError(
                ErrorKind.EXTRA_BITS_IN_FIELD, f"extra data in order bits: {details.remainder():#x}"
            )

        s = self._signature_word(index + 2, "s")
        t = self._signature_word(index + 3, "t")
        order = NewOrder(
            trader=trader,
            nonce=nonce,
            pair_id=pair_id,
            action=action,
            ioc=ioc,
            price_e8=price_e8,
            amount_e8=amount_e8,
            expire_time_sec=expire_time_sec,
            r=v,
            s=s,
            t=t,
        )
        return order, 3

    def _order_key(self, reader: BitFieldReader) -> Tuple[int, int]:
        trader = reader.pop_uint160()
        self.out.line(f"    trader: {trader:#x}")
        nonce = reader.pop_uint64()
        self.out.line(f"    nonce: {nonce}")
        if not reader.remainder_is_zero():
            raise SequenceDecodeError(
                ErrorKind.EXTRA_BITS_IN_FIELD, f"extra bits in orderKey: {reader.remainder():#x}"
            )
        return trader, nonce

    def _signature_word(self, index: int, label: str) -> int:
        word = self.body[index]
        if word == 0:
            raise SequenceDecodeError(
                ErrorKind.ZERO_SIGNATURE_COMPONENT, f"signature uint256 {label} is zero"
            )
        self.out.line(f"    {label:<8}: {word:#x}")
        return word

    # Layouts of the remaining operations are not known yet.

    def _hard_cancel_order(self, reader: BitFieldReader, index: int) -> Tuple[int, Operation]:
        self.out.line("operation HardCancelOrder:")
        self.out.line(PLACEHOLDER_LINE)
        return 1, HardCancelOrder()

    def _set_fee_rates(self, reader: BitFieldReader, index: int) -> Tuple[int, Operation]:
        self.out.line("operation SetFeeRates:")
        self.out.line(PLACEHOLDER_LINE)
        return 1, SetFeeRates()

    def _set_fee_rebate_percent(self, reader: BitFieldReader, index: int) -> Tuple[int, Operation]:
        self.out.line("operation SetFeeRebatePercent:")
        self.out.line(PLACEHOLDER_LINE)
        return 1, SetFeeRebatePercent()


def decode_sequence(header: Optional[int], body: Sequence[int]) -> SequenceTrace:
    """Decode an ``exeSequence`` header and body into a :class:`SequenceTrace`.

    ``header`` may be ``None`` to skip the header section. Values that are not
    unsigned 256-bit integers raise :class:`ValueError`; every structural
    problem in the payload is reported through ``SequenceTrace.error``.
    """

    if header is not None:
        check_word(header, name="header")
    words = tuple(check_word(word, name=f"body[{i}]") for i, word in enumerate(body))

    decoder = _SequenceDecoder(header, words)
    error: Optional[SequenceDecodeError] = None
    try:
        decoder.run()
    except SequenceDecodeError as exc:
        exc.partial_trace = decoder.out.text()
        logger.debug("Sequence decode stopped after %d operations: %s", len(decoder.operations), exc)
        error = exc
    else:
        logger.debug("Decoded %d operations from %d body words", len(decoder.operations), len(words))

    return SequenceTrace(
        text=decoder.out.text(),
        header=decoder.header,
        operations=tuple(decoder.operations),
        error=error,
    )


def decode(header: Optional[int], body: Sequence[int]) -> Tuple[str, Optional[SequenceDecodeError]]:
    """Return ``(trace_text, error)`` for an operation sequence."""

    result = decode_sequence(header, body)
    return result.text, result.error
